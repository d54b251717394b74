"""
TimingGate: decides whether now is a good moment to interject a question.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .client import LLMClient
from .prompts import TIMING_PROMPT, TIMING_SYSTEM_PROMPT
from .result import request_text

logger = logging.getLogger(__name__)

QUESTION_COOLDOWN_MS = 60_000
SPEECH_QUIET_WINDOW_MS = 5_000
FAILURE_ALLOW_AFTER_MS = 120_000
TIMING_CONTEXT_CHARS = 300


def is_affirmative(answer: str) -> bool:
    """True for 'yes', 'Yes.', 'yes - there is a lull', etc."""
    words = re.findall(r"[a-z]+", answer.lower())
    return bool(words) and words[0] == "yes"


class TimingGate:
    """
    Two hard rules are checked locally before the reasoning service is asked:

      1. cooldown: no question within 60s of the previous one (or of the
         gate's own previous allow)
      2. quiet window: nobody spoke within the last 5s

    Only then does the service judge the conversational flow. If that call
    fails, the gate allows once two minutes have passed since the last
    question.
    """

    def __init__(
        self,
        client: Optional[LLMClient],
        cooldown_ms: float = QUESTION_COOLDOWN_MS,
        quiet_window_ms: float = SPEECH_QUIET_WINDOW_MS,
        failure_allow_after_ms: float = FAILURE_ALLOW_AFTER_MS,
    ):
        self.client = client
        self.cooldown_ms = cooldown_ms
        self.quiet_window_ms = quiet_window_ms
        self.failure_allow_after_ms = failure_allow_after_ms
        self._last_allowed_ms: Optional[float] = None

    def hard_deny_reason(
        self,
        last_question_ms: float,
        now_ms: float,
        last_speech_ms: Optional[float] = None,
    ) -> Optional[str]:
        last_event = last_question_ms
        if self._last_allowed_ms is not None:
            last_event = max(last_event, self._last_allowed_ms)
        if now_ms - last_event < self.cooldown_ms:
            return "cooldown"
        if last_speech_ms is not None and now_ms - last_speech_ms < self.quiet_window_ms:
            return "speech in progress"
        return None

    async def should_ask(
        self,
        recent_transcript: str,
        last_question_ms: float,
        now_ms: float,
        last_speech_ms: Optional[float] = None,
    ) -> bool:
        reason = self.hard_deny_reason(last_question_ms, now_ms, last_speech_ms)
        if reason is not None:
            logger.debug(f"[TimingGate] Denied ({reason})")
            return False

        prompt = TIMING_PROMPT.format(recent=recent_transcript[-TIMING_CONTEXT_CHARS:])
        result = await request_text(
            self.client, TIMING_SYSTEM_PROMPT, prompt, temperature=0.3, max_tokens=10
        )
        if result.ok:
            allowed = is_affirmative(result.value)
            logger.info(f"[TimingGate] Service says {result.value!r} -> {'ask' if allowed else 'wait'}")
        else:
            allowed = now_ms - last_question_ms > self.failure_allow_after_ms
            logger.warning(
                f"[TimingGate] Judgment unavailable ({result.error}), "
                f"{'allowing' if allowed else 'holding'} on elapsed time"
            )

        if allowed and self._last_allowed_ms is not None \
                and now_ms - self._last_allowed_ms < self.cooldown_ms:
            # another check allowed while this one was waiting on the service
            allowed = False
        if allowed:
            self._last_allowed_ms = now_ms
        return allowed
