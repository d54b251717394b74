"""
Session-scoped data model for the facilitation engine.

Everything here lives for one conversation and is discarded at the end;
nothing is persisted.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


class Vibe(str, enum.Enum):
    FUN = "fun"
    THOUGHTFUL = "thoughtful"
    DEEP = "deep"
    MIXED = "mixed"


# Tones a single question can take; "mixed" sessions rotate through these
QUESTION_TONES = [Vibe.FUN, Vibe.THOUGHTFUL, Vibe.DEEP]


class ConnectionDomain(str, enum.Enum):
    VALUES_BELIEFS = "values_beliefs"
    PERSONAL_HISTORY = "personal_history"
    ASPIRATIONS = "aspirations"
    EMOTIONS = "emotions"
    RELATIONAL_STYLE = "relational_style"
    CURRENT_SITUATION = "current_situation"


ALL_DOMAINS: List[ConnectionDomain] = list(ConnectionDomain)


def parse_domain(value: Any) -> Optional[ConnectionDomain]:
    """Lenient domain lookup: accepts enum values, names and 'Values/Beliefs'-style labels."""
    if isinstance(value, ConnectionDomain):
        return value
    if not isinstance(value, str):
        return None
    key = value.strip().lower().replace("/", "_").replace(" ", "_").replace("-", "_")
    try:
        return ConnectionDomain(key)
    except ValueError:
        return None


def question_tone(vibe: Vibe, n_asked: int) -> Vibe:
    """Tone for the next question: the session vibe, or a rotation for mixed sessions."""
    if vibe != Vibe.MIXED:
        return vibe
    return QUESTION_TONES[n_asked % len(QUESTION_TONES)]


@dataclass(frozen=True)
class TranscriptSegment:
    """One unit of transcribed speech. Interim segments have is_final=False."""
    speaker_id: str
    speaker_name: str
    text: str
    timestamp_ms: float
    is_final: bool = True

    def as_line(self) -> str:
        return f"{self.speaker_name}: {self.text}"


@dataclass
class ConversationAnalysis:
    """Which connection domains have been covered, and how deep things are."""
    explored_domains: List[ConnectionDomain] = field(default_factory=list)
    unexplored_domains: List[ConnectionDomain] = field(default_factory=lambda: list(ALL_DOMAINS))
    connection_depth: int = 1                       # 0-10
    suggested_domain: ConnectionDomain = ConnectionDomain.CURRENT_SITUATION
    reasoning: str = ""
    fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "explored_domains": [d.value for d in self.explored_domains],
            "unexplored_domains": [d.value for d in self.unexplored_domains],
            "connection_depth": self.connection_depth,
            "suggested_domain": self.suggested_domain.value,
            "reasoning": self.reasoning,
            "fallback": self.fallback,
        }


@dataclass(frozen=True)
class GeneratedQuestion:
    question_text: str
    domain: ConnectionDomain
    reasoning: str = ""
    follow_up: Optional[str] = None
    vibe: Vibe = Vibe.MIXED         # tone actually targeted
    fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question_text": self.question_text,
            "domain": self.domain.value,
            "reasoning": self.reasoning,
            "follow_up": self.follow_up,
            "vibe": self.vibe.value,
            "fallback": self.fallback,
        }


@dataclass
class SessionSummary:
    key_themes: List[str]
    insights: str
    connection_depth: int           # 0-10
    fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SessionReport:
    """Everything the reflection stage shows once the conversation ends."""
    session_id: str
    vibe: Vibe
    duration_minutes: int
    summary: SessionSummary
    questions_asked: int
    questions_answered: int
    questions_skipped: int
    top_questions: List[str] = field(default_factory=list)
    vibe_breakdown: Dict[str, int] = field(default_factory=dict)     # percent per tone
    domain_breakdown: Dict[str, int] = field(default_factory=dict)   # count per domain

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "vibe": self.vibe.value,
            "duration_minutes": self.duration_minutes,
            "key_themes": list(self.summary.key_themes),
            "insights": self.summary.insights,
            "connection_depth": self.summary.connection_depth,
            "summary_fallback": self.summary.fallback,
            "questions_asked": self.questions_asked,
            "questions_answered": self.questions_answered,
            "questions_skipped": self.questions_skipped,
            "top_questions": list(self.top_questions),
            "vibe_breakdown": dict(self.vibe_breakdown),
            "domain_breakdown": dict(self.domain_breakdown),
        }
