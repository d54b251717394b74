"""
QuestionGenerator: produces the next reflective question for the pair.

The prompt is built from the latest conversation analysis, the tail of the
recent transcript and the last few questions already asked, so the service
can build on what was said and avoid repeating itself. Falls back to a fixed
per-vibe question whenever the service can't deliver.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from ..content.question_bank import fallback_question, next_starter_question
from ..core.models import (
    ConnectionDomain,
    ConversationAnalysis,
    GeneratedQuestion,
    Vibe,
    parse_domain,
    question_tone,
)
from .client import LLMClient
from .prompts import QUESTION_PROMPT, QUESTION_SYSTEM_PROMPT
from .result import request_json

logger = logging.getLogger(__name__)

RECENT_TRANSCRIPT_CHARS = 500
ASKED_CONTEXT_COUNT = 3
FALLBACK_REASONING = "fallback used"


def build_question_prompt(
    vibe: Vibe,
    analysis: ConversationAnalysis,
    recent_transcript: str,
    asked_questions: Sequence[str],
) -> str:
    tone = question_tone(vibe, len(asked_questions))
    vibe_label = tone.value if vibe == tone else f"{tone.value} (session vibe: {vibe.value})"
    return QUESTION_PROMPT.format(
        vibe=vibe_label,
        depth=analysis.connection_depth,
        explored=", ".join(d.value for d in analysis.explored_domains) or "none yet",
        domain=analysis.suggested_domain.value,
        reasoning=analysis.reasoning or "n/a",
        recent=recent_transcript[-RECENT_TRANSCRIPT_CHARS:] or "(nothing yet)",
        asked=", ".join(asked_questions[-ASKED_CONTEXT_COUNT:]) or "none",
    )


class QuestionGenerator:
    """
    LLM-powered question engine.

    generate() always returns a question: the service's when it answers with
    something usable, the fixed fallback otherwise.
    """

    def __init__(self, client: Optional[LLMClient] = None):
        self.client = client

    @property
    def is_available(self) -> bool:
        return self.client is not None and self.client.is_available

    async def generate(
        self,
        vibe: Vibe,
        analysis: ConversationAnalysis,
        recent_transcript: str,
        asked_questions: Sequence[str],
    ) -> GeneratedQuestion:
        tone = question_tone(vibe, len(asked_questions))
        prompt = build_question_prompt(vibe, analysis, recent_transcript, asked_questions)

        result = await request_json(self.client, QUESTION_SYSTEM_PROMPT, prompt, temperature=0.8)
        if not result.ok:
            logger.warning(f"[QuestionGenerator] Falling back: {result.error}")
            return self.fallback(vibe, tone)

        question = self._parse(result.value, analysis, tone)
        if question is None:
            logger.warning("[QuestionGenerator] Falling back: response had no question text")
            return self.fallback(vibe, tone)

        logger.info(f"[QuestionGenerator] {question.domain.value}/{tone.value}: {question.question_text!r}")
        return question

    def fallback(self, vibe: Vibe, tone: Optional[Vibe] = None) -> GeneratedQuestion:
        return GeneratedQuestion(
            question_text=fallback_question(vibe),
            domain=ConnectionDomain.CURRENT_SITUATION,
            reasoning=FALLBACK_REASONING,
            vibe=tone or vibe,
            fallback=True,
        )

    def starter_question(self, vibe: Vibe, asked_questions: Sequence[str]) -> GeneratedQuestion:
        """Opening question from the static deck, for when no analysis exists yet."""
        tone = question_tone(vibe, len(asked_questions))
        starter = next_starter_question(tone, asked_questions)
        if starter is None:
            return self.fallback(vibe, tone)
        return GeneratedQuestion(
            question_text=starter.question_text,
            domain=starter.domain,
            reasoning="starter question: not enough conversation to analyze yet",
            vibe=tone,
            fallback=True,
        )

    def _parse(
        self,
        payload: Dict[str, Any],
        analysis: ConversationAnalysis,
        tone: Vibe,
    ) -> Optional[GeneratedQuestion]:
        text = payload.get("question") or payload.get("questionText")
        if not isinstance(text, str) or not text.strip():
            return None

        domain = parse_domain(payload.get("domain")) or analysis.suggested_domain
        follow_up = payload.get("followUp")
        reasoning = payload.get("reasoning")
        return GeneratedQuestion(
            question_text=text.strip(),
            domain=domain,
            reasoning=reasoning if isinstance(reasoning, str) else "",
            follow_up=follow_up.strip() if isinstance(follow_up, str) and follow_up.strip() else None,
            vibe=tone,
        )
