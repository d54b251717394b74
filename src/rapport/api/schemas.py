"""
Pydantic request/response models for the Rapport API.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.models import Vibe


# =============================================================================
# REQUEST MODELS
# =============================================================================

class StartSessionRequest(BaseModel):
    """Request to start a new facilitated conversation."""
    vibe: Vibe = Field(Vibe.MIXED, description="Mood of the session: fun, thoughtful, deep or mixed")


class SegmentRequest(BaseModel):
    """One speech event from the speech-to-text collaborator."""
    speaker_id: str = Field(..., description="Participant identity from the transport")
    speaker_name: str = Field(..., description="Display name used in the transcript")
    text: str
    is_final: bool = True
    timestamp_ms: Optional[float] = Field(None, description="Epoch milliseconds; defaults to server time")


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class QuestionData(BaseModel):
    """A question presented to the pair."""
    question_text: str
    domain: str
    reasoning: str = ""
    follow_up: Optional[str] = None
    vibe: str
    fallback: bool = False


class AnalysisData(BaseModel):
    explored_domains: List[str]
    unexplored_domains: List[str]
    connection_depth: int
    suggested_domain: str
    reasoning: str = ""
    fallback: bool = False


class StartSessionResponse(BaseModel):
    session_id: str
    vibe: str
    state: str


class SegmentResponse(BaseModel):
    segment_count: int
    state: str


class SessionStateResponse(BaseModel):
    """Current engine state for a session."""
    session_id: str
    vibe: str
    state: str
    current_question: Optional[QuestionData] = None
    analysis: Optional[AnalysisData] = None
    asked_questions: List[str] = []
    questions_answered: int = 0
    questions_skipped: int = 0
    segment_count: int = 0


class QuestionResponse(BaseModel):
    state: str
    question: Optional[QuestionData] = None


class TranscriptResponse(BaseModel):
    transcript: str


class SessionReportResponse(BaseModel):
    """Everything the reflection screen needs."""
    session_id: str
    vibe: str
    duration_minutes: int
    key_themes: List[str]
    insights: str
    connection_depth: int
    summary_fallback: bool = False
    questions_asked: int
    questions_answered: int
    questions_skipped: int
    top_questions: List[str]
    vibe_breakdown: Dict[str, int]
    domain_breakdown: Dict[str, int]
