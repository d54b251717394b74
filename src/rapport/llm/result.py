"""
Result type for reasoning-service calls.

Components never see exceptions from the service: every call comes back as
an LLMResult holding either the parsed payload or an error description, and
the caller branches to its own deterministic default.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from .client import LLMAPIError, LLMClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LLMResult:
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: str) -> "LLMResult":
        return cls(value=None, error=error)


def _messages(system: str, user: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


async def _complete(
    client: Optional[LLMClient],
    system: str,
    user: str,
    **kwargs: Any,
) -> LLMResult:
    if client is None:
        return LLMResult.failure("no LLM client configured")
    try:
        content = await asyncio.to_thread(
            client.chat_completion, _messages(system, user), **kwargs
        )
    except (LLMAPIError, requests.RequestException) as e:
        return LLMResult.failure(str(e))
    if not isinstance(content, str) or not content.strip():
        return LLMResult.failure("empty response")
    return LLMResult(value=content)


async def request_text(
    client: Optional[LLMClient],
    system: str,
    user: str,
    temperature: float = 0.3,
    max_tokens: int = 10,
) -> LLMResult:
    """Plain-text completion; value is the stripped response string."""
    result = await _complete(
        client, system, user, temperature=temperature, max_tokens=max_tokens
    )
    if not result.ok:
        return result
    return LLMResult(value=result.value.strip())


async def request_json(
    client: Optional[LLMClient],
    system: str,
    user: str,
    temperature: float = 0.7,
    max_tokens: int = 512,
) -> LLMResult:
    """JSON-mode completion; value is the decoded object (always a dict)."""
    result = await _complete(
        client,
        system,
        user,
        temperature=temperature,
        max_tokens=max_tokens,
        response_format={"type": "json_object"},
    )
    if not result.ok:
        return result
    try:
        payload = json.loads(result.value)
    except json.JSONDecodeError as e:
        return LLMResult.failure(f"invalid JSON: {e}")
    if not isinstance(payload, dict):
        return LLMResult.failure(f"expected a JSON object, got {type(payload).__name__}")
    return LLMResult(value=payload)


def coerce_depth(value: Any, default: int) -> int:
    """Clamp a 0-10 depth score, tolerating floats and numeric strings."""
    try:
        depth = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(0, min(10, depth))
