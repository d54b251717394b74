"""Shared fakes: a scripted reasoning-service client and a controllable clock."""

import json

import pytest

from rapport.llm.client import LLMAPIError
from rapport.llm.prompts import (
    ANALYSIS_SYSTEM_PROMPT,
    QUESTION_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    TIMING_SYSTEM_PROMPT,
)

_KINDS = {
    ANALYSIS_SYSTEM_PROMPT: "analysis",
    QUESTION_SYSTEM_PROMPT: "question",
    TIMING_SYSTEM_PROMPT: "timing",
    SUMMARY_SYSTEM_PROMPT: "summary",
}


class ScriptedClient:
    """
    Stands in for LLMClient. Responses are scripted per request kind;
    dicts are JSON-encoded, exceptions are raised. The last scripted
    response of a kind repeats once the script runs out.
    """

    def __init__(self, **scripts):
        self.scripts = {kind: list(responses) for kind, responses in scripts.items()}
        self.calls = []

    @property
    def is_available(self):
        return True

    def calls_of(self, kind):
        return [c for c in self.calls if c["kind"] == kind]

    def chat_completion(self, messages, temperature=0.1, max_tokens=512,
                        response_format=None, model_override=None):
        kind = _KINDS.get(messages[0]["content"], "unknown")
        self.calls.append({
            "kind": kind,
            "messages": messages,
            "temperature": temperature,
            "response_format": response_format,
        })
        script = self.scripts.get(kind)
        if not script:
            raise LLMAPIError(500, f"no scripted response for {kind}")
        response = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, (dict, list)):
            return json.dumps(response)
        return response


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms=1_000_000_000.0):
        self.now = start_ms

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds * 1000


@pytest.fixture
def make_client():
    return ScriptedClient


@pytest.fixture
def failing_client():
    """Every request kind fails at the transport level."""
    error = LLMAPIError(0, "Connection error: unreachable")
    return ScriptedClient(analysis=[error], question=[error], timing=[error], summary=[error])


@pytest.fixture
def clock():
    return FakeClock()
