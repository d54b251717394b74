"""
REST API routes for Rapport.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from ..core.models import TranscriptSegment
from ..core.scheduler import FacilitationScheduler
from .schemas import (
    QuestionData,
    QuestionResponse,
    SegmentRequest,
    SegmentResponse,
    SessionReportResponse,
    SessionStateResponse,
    StartSessionRequest,
    StartSessionResponse,
    TranscriptResponse,
)
from .session import SessionManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

# Global session manager (created on first use)
session_manager: Optional[SessionManager] = None


def get_session_manager() -> SessionManager:
    global session_manager
    if session_manager is None:
        session_manager = SessionManager()
    return session_manager


def _get_scheduler(session_id: str, allow_ended: bool = True) -> FacilitationScheduler:
    scheduler = get_session_manager().get_scheduler(session_id)
    if scheduler is None:
        raise HTTPException(404, f"Session {session_id} not found")
    if not allow_ended and scheduler.is_ended:
        raise HTTPException(409, f"Session {session_id} has ended")
    return scheduler


def _question_response(scheduler: FacilitationScheduler) -> QuestionResponse:
    question = scheduler.current_question
    return QuestionResponse(
        state=scheduler.state,
        question=QuestionData(**question.to_dict()) if question else None,
    )


@router.get("/status")
async def status():
    """Check whether the reasoning service is configured."""
    client = get_session_manager().client
    return {"llm_available": bool(client and client.is_available)}


@router.post("/session/start", response_model=StartSessionResponse)
async def start_session(request: StartSessionRequest = StartSessionRequest()):
    """Start a new facilitated conversation."""
    sm = get_session_manager()
    session_id = sm.create_session(request.vibe)
    scheduler = sm.get_scheduler(session_id)
    if scheduler is None:
        raise HTTPException(500, "Failed to create session")
    return StartSessionResponse(
        session_id=session_id,
        vibe=scheduler.vibe.value,
        state=scheduler.state,
    )


@router.get("/session/{session_id}", response_model=SessionStateResponse)
async def get_state(session_id: str):
    scheduler = _get_scheduler(session_id)
    return SessionStateResponse(**scheduler.snapshot())


@router.post("/session/{session_id}/segments", response_model=SegmentResponse)
async def ingest_segment(session_id: str, request: SegmentRequest):
    """Feed one speech event (interim or final) into the session transcript."""
    scheduler = _get_scheduler(session_id, allow_ended=False)
    scheduler.ingest(TranscriptSegment(
        speaker_id=request.speaker_id,
        speaker_name=request.speaker_name,
        text=request.text,
        timestamp_ms=request.timestamp_ms if request.timestamp_ms is not None else scheduler.now_ms(),
        is_final=request.is_final,
    ))
    return SegmentResponse(segment_count=len(scheduler.reconciler), state=scheduler.state)


@router.get("/session/{session_id}/transcript", response_model=TranscriptResponse)
async def get_transcript(
    session_id: str,
    window_minutes: Optional[float] = Query(None, gt=0),
):
    """Full transcript, or only the trailing window when window_minutes is given."""
    scheduler = _get_scheduler(session_id)
    if window_minutes is None:
        return TranscriptResponse(transcript=scheduler.reconciler.full_transcript())
    return TranscriptResponse(transcript=scheduler.reconciler.recent_transcript(window_minutes))


@router.post("/session/{session_id}/next", response_model=QuestionResponse)
async def next_question(session_id: str):
    """Skip the timing gate and surface a question now."""
    scheduler = _get_scheduler(session_id, allow_ended=False)
    await scheduler.force_next()
    return _question_response(scheduler)


@router.post("/session/{session_id}/dismiss", response_model=QuestionResponse)
async def dismiss_question(session_id: str):
    scheduler = _get_scheduler(session_id, allow_ended=False)
    scheduler.dismiss()
    return _question_response(scheduler)


@router.post("/session/{session_id}/skip", response_model=QuestionResponse)
async def skip_question(session_id: str):
    scheduler = _get_scheduler(session_id, allow_ended=False)
    scheduler.skip()
    return _question_response(scheduler)


@router.post("/session/{session_id}/end", response_model=SessionReportResponse)
async def end_session(session_id: str):
    """End the conversation and return the reflection report."""
    _get_scheduler(session_id)
    report = await get_session_manager().end_session(session_id)
    if report is None:
        raise HTTPException(404, f"Session {session_id} not found")
    return SessionReportResponse(**report.to_dict())
