"""
ConversationAnalyzer: works out which connection domains a conversation has
covered so far and which one to steer towards next.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..core.models import (
    ALL_DOMAINS,
    ConnectionDomain,
    ConversationAnalysis,
    Vibe,
    parse_domain,
)
from .client import LLMClient
from .prompts import ANALYSIS_PROMPT, ANALYSIS_SYSTEM_PROMPT
from .result import coerce_depth, request_json

logger = logging.getLogger(__name__)

MIN_TRANSCRIPT_CHARS = 100


def fallback_analysis(reason: str = "") -> ConversationAnalysis:
    """Nothing explored yet; start with the current situation, the safest opener."""
    reasoning = "Fallback analysis: starting with the current situation as a comfortable entry point."
    if reason:
        reasoning += f" ({reason})"
    return ConversationAnalysis(
        explored_domains=[],
        unexplored_domains=list(ALL_DOMAINS),
        connection_depth=1,
        suggested_domain=ConnectionDomain.CURRENT_SITUATION,
        reasoning=reasoning,
        fallback=True,
    )


def _domain_list(raw: Any) -> List[ConnectionDomain]:
    if not isinstance(raw, list):
        return []
    domains: List[ConnectionDomain] = []
    for item in raw:
        domain = parse_domain(item)
        if domain is not None and domain not in domains:
            domains.append(domain)
    return domains


def parse_analysis(payload: Dict[str, Any]) -> ConversationAnalysis:
    """Build an analysis from a service response, repairing what's missing or invalid."""
    explored = _domain_list(payload.get("exploredDomains"))
    unexplored = [d for d in _domain_list(payload.get("unexploredDomains")) if d not in explored]
    if not unexplored:
        unexplored = [d for d in ALL_DOMAINS if d not in explored]

    suggested = parse_domain(payload.get("suggestedDomain"))
    if suggested is None:
        suggested = unexplored[0] if unexplored else ConnectionDomain.CURRENT_SITUATION

    reasoning = payload.get("reasoning")
    return ConversationAnalysis(
        explored_domains=explored,
        unexplored_domains=unexplored,
        connection_depth=coerce_depth(payload.get("connectionDepth"), default=1),
        suggested_domain=suggested,
        reasoning=reasoning if isinstance(reasoning, str) else "",
    )


class ConversationAnalyzer:
    """
    Assesses conversational breadth and depth via the reasoning service.

    Stateless per call: rate limiting and single-flight are the scheduler's
    business. Falls back to a fixed starting analysis on any service error.
    """

    def __init__(
        self,
        client: Optional[LLMClient],
        min_transcript_chars: int = MIN_TRANSCRIPT_CHARS,
    ):
        self.client = client
        self.min_transcript_chars = min_transcript_chars

    def has_enough_signal(self, transcript_text: str) -> bool:
        return len(transcript_text or "") >= self.min_transcript_chars

    async def analyze(
        self,
        transcript_text: str,
        vibe: Vibe,
        asked_questions: Sequence[str],
        previous: Optional[ConversationAnalysis] = None,
    ) -> Optional[ConversationAnalysis]:
        """
        Analyze the transcript.

        Returns `previous` unchanged when the transcript is too short to say
        anything useful, the parsed analysis on success, and the fallback
        analysis when the service fails.
        """
        if not self.has_enough_signal(transcript_text):
            logger.debug(
                f"[ConversationAnalyzer] Transcript too short "
                f"({len(transcript_text or '')} < {self.min_transcript_chars} chars), skipping"
            )
            return previous

        prompt = ANALYSIS_PROMPT.format(
            vibe=vibe.value,
            transcript=transcript_text,
            asked=", ".join(asked_questions) or "none",
        )
        result = await request_json(self.client, ANALYSIS_SYSTEM_PROMPT, prompt, temperature=0.7)
        if not result.ok:
            logger.warning(f"[ConversationAnalyzer] Falling back: {result.error}")
            return fallback_analysis(result.error)

        analysis = parse_analysis(result.value)
        logger.info(
            f"[ConversationAnalyzer] depth={analysis.connection_depth}/10, "
            f"explored={[d.value for d in analysis.explored_domains]}, "
            f"next={analysis.suggested_domain.value}"
        )
        return analysis
