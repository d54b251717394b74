"""Tests for llm/timing.py: hard timing rules and the service judgment."""

import asyncio

import pytest

from rapport.llm.timing import TimingGate, is_affirmative

RECENT = "Alice: So that was the whole trip.\nBob: Wow."
NOW = 10_000_000.0


def run(coro):
    return asyncio.run(coro)


class TestHardRules:
    def test_cooldown_denies_without_call(self, make_client):
        client = make_client(timing=["yes"])
        gate = TimingGate(client)
        assert run(gate.should_ask(RECENT, NOW - 30_000, NOW)) is False
        assert client.calls == []

    def test_recent_speech_denies_without_call(self, make_client):
        client = make_client(timing=["yes"])
        gate = TimingGate(client)
        assert run(gate.should_ask(RECENT, 0.0, NOW, last_speech_ms=NOW - 2_000)) is False
        assert client.calls == []

    def test_quiet_conversation_consults_service(self, make_client):
        client = make_client(timing=["yes"])
        gate = TimingGate(client)
        assert run(gate.should_ask(RECENT, 0.0, NOW, last_speech_ms=NOW - 8_000)) is True
        assert len(client.calls_of("timing")) == 1

    def test_prompt_uses_tail_of_window(self, make_client):
        client = make_client(timing=["no"])
        long_text = "x" * 1000 + "THE END"
        run(TimingGate(client).should_ask(long_text, 0.0, NOW))
        prompt = client.calls_of("timing")[0]["messages"][1]["content"]
        assert "THE END" in prompt
        assert "x" * 400 not in prompt


class TestServiceJudgment:
    @pytest.mark.parametrize("answer,expected", [
        ("yes", True), ("Yes.", True), ("YES - there's a lull", True),
        ("no", False), ("No.", False), ("maybe", False), ("", False),
    ])
    def test_is_affirmative(self, answer, expected):
        assert is_affirmative(answer) is expected

    def test_service_says_no(self, make_client):
        gate = TimingGate(make_client(timing=["no"]))
        assert run(gate.should_ask(RECENT, 0.0, NOW)) is False

    def test_failure_allows_after_two_minutes(self, failing_client):
        gate = TimingGate(failing_client)
        assert run(gate.should_ask(RECENT, NOW - 121_000, NOW)) is True

    def test_failure_holds_before_two_minutes(self, failing_client):
        gate = TimingGate(failing_client)
        assert run(gate.should_ask(RECENT, NOW - 90_000, NOW)) is False


class TestNeverTwiceWithinCooldown:
    def test_gate_remembers_its_own_allows(self, make_client):
        """Even if the caller never records a question, allows are 60s apart."""
        gate = TimingGate(make_client(timing=["yes"]))
        allowed_at = []
        for step in range(0, 300, 5):
            now = NOW + step * 1000
            if run(gate.should_ask(RECENT, 0.0, now)):
                allowed_at.append(now)

        assert len(allowed_at) >= 2
        for prev, cur in zip(allowed_at, allowed_at[1:]):
            assert cur - prev >= 60_000

    def test_concurrent_checks_allow_once(self, make_client):
        gate = TimingGate(make_client(timing=["yes"]))

        async def both():
            return await asyncio.gather(
                gate.should_ask(RECENT, 0.0, NOW),
                gate.should_ask(RECENT, 0.0, NOW),
            )

        assert sorted(run(both())) == [False, True]
