"""
SessionSummarizer: closing themes, insight and depth score for the
reflection stage.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..core.models import SessionSummary, Vibe
from .client import LLMClient
from .prompts import SUMMARY_PROMPT, SUMMARY_SYSTEM_PROMPT
from .result import coerce_depth, request_json

logger = logging.getLogger(__name__)

MAX_THEMES = 5

DEFAULT_THEMES = ["Shared experiences", "Personal growth", "Future aspirations"]
DEFAULT_INSIGHTS = (
    "You shared meaningful moments and learned more about each other. "
    "The conversation touched on both lighthearted and deeper topics."
)
DEFAULT_DEPTH = 5


def fallback_summary() -> SessionSummary:
    return SessionSummary(
        key_themes=list(DEFAULT_THEMES),
        insights=DEFAULT_INSIGHTS,
        connection_depth=DEFAULT_DEPTH,
        fallback=True,
    )


def _themes(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        return []
    return [t.strip() for t in raw if isinstance(t, str) and t.strip()][:MAX_THEMES]


class SessionSummarizer:
    """Never raises: session termination must not wait on a healthy service."""

    def __init__(self, client: Optional[LLMClient]):
        self.client = client

    async def summarize(
        self,
        full_transcript: str,
        vibe: Vibe,
        duration_minutes: int,
        questions_answered: int,
    ) -> SessionSummary:
        prompt = SUMMARY_PROMPT.format(
            duration=duration_minutes,
            vibe=vibe.value,
            answered=questions_answered,
            transcript=full_transcript or "(no transcript captured)",
        )
        result = await request_json(self.client, SUMMARY_SYSTEM_PROMPT, prompt, temperature=0.7)
        if not result.ok:
            logger.warning(f"[SessionSummarizer] Falling back: {result.error}")
            return fallback_summary()
        return self._parse(result.value)

    def _parse(self, payload: Dict[str, Any]) -> SessionSummary:
        insights = payload.get("insights")
        summary = SessionSummary(
            key_themes=_themes(payload.get("keyThemes")) or list(DEFAULT_THEMES),
            insights=insights.strip() if isinstance(insights, str) and insights.strip() else DEFAULT_INSIGHTS,
            connection_depth=coerce_depth(payload.get("connectionDepth"), default=DEFAULT_DEPTH),
        )
        logger.info(
            f"[SessionSummarizer] {len(summary.key_themes)} themes, depth={summary.connection_depth}/10"
        )
        return summary
