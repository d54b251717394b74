"""Tests for llm/client.py and llm/result.py: HTTP wrapper and result type."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest
import requests

from rapport.core.models import ConversationAnalysis, Vibe
from rapport.core.scheduler import FacilitationScheduler
from rapport.llm.client import LLMAPIError, LLMClient, build_client
from rapport.llm.result import request_json, request_text
from rapport.llm.summarizer import DEFAULT_THEMES


def _response(status, payload=None, text="", headers=None):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    resp.text = text
    resp.headers = headers or {}
    return resp


def _ok(content):
    return _response(200, {"choices": [{"message": {"content": content}}]})


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("LLM_API_KEY", "OPENAI_API_KEY", "GROQ_API_KEY", "MISTRAL_API_KEY",
                "LLM_BASE_URL", "LLM_MODEL", "LLM_TIMEOUT",
                "LLM_FALLBACK_API_KEY", "LLM_FALLBACK_BASE_URL", "LLM_FALLBACK_MODEL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def client():
    return LLMClient(api_key="test-key", base_url="https://llm.example/v1", model="m", max_retries=1)


class TestLLMClient:
    def test_missing_key_raises(self):
        with pytest.raises(LLMAPIError) as exc:
            LLMClient(api_key="", base_url="https://llm.example/v1", model="m")
        assert exc.value.status_code == 401

    def test_build_client_returns_none_without_key(self):
        assert build_client() is None

    def test_key_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert LLMClient(base_url="https://llm.example/v1").api_key == "sk-env"

    def test_chat_completion_returns_content(self, client):
        with patch("rapport.llm.client.requests.post", return_value=_ok("hello")) as post:
            assert client.chat_completion([{"role": "user", "content": "hi"}]) == "hello"
        body = post.call_args.kwargs["json"]
        assert body["model"] == "m"
        assert post.call_args.args[0] == "https://llm.example/v1/chat/completions"

    def test_auth_error_is_not_retried(self, client):
        with patch("rapport.llm.client.requests.post", return_value=_response(401, text="bad key")) as post:
            with pytest.raises(LLMAPIError):
                client.chat_completion([{"role": "user", "content": "hi"}])
        assert post.call_count == 1

    def test_timeout_is_retried_then_raised(self, client):
        with patch("rapport.llm.client.requests.post", side_effect=requests.exceptions.Timeout()) as post, \
                patch("rapport.llm.client.time.sleep"):
            with pytest.raises(LLMAPIError) as exc:
                client.chat_completion([{"role": "user", "content": "hi"}])
        assert exc.value.status_code == 408
        assert post.call_count == 2

    def test_rate_limit_uses_fallback_provider(self, monkeypatch):
        monkeypatch.setenv("LLM_FALLBACK_API_KEY", "fb-key")
        monkeypatch.setenv("LLM_FALLBACK_BASE_URL", "https://fallback.example/v1")
        client = LLMClient(api_key="test-key", base_url="https://llm.example/v1", model="m")

        responses = [_response(429, headers={"Retry-After": "3"}), _ok("from fallback")]
        with patch("rapport.llm.client.requests.post", side_effect=responses) as post:
            assert client.chat_completion([{"role": "user", "content": "hi"}]) == "from fallback"
        assert post.call_args.args[0] == "https://fallback.example/v1/chat/completions"

    def test_malformed_payload_raises_api_error(self, client):
        with patch("rapport.llm.client.requests.post", return_value=_response(200, {"nope": []})), \
                patch("rapport.llm.client.time.sleep"):
            with pytest.raises(LLMAPIError):
                client.chat_completion([{"role": "user", "content": "hi"}])

    @pytest.mark.parametrize("message", [None, "just a string", ["content"]])
    def test_non_object_message_raises_api_error(self, client, message):
        payload = {"choices": [{"message": message}]}
        with patch("rapport.llm.client.requests.post", return_value=_response(200, payload)), \
                patch("rapport.llm.client.time.sleep"):
            with pytest.raises(LLMAPIError) as exc:
                client.chat_completion([{"role": "user", "content": "hi"}])
        assert exc.value.status_code == 502


class TestMalformedResponsesInSession:
    """A broken completion payload must end in fallbacks, never in an exception."""

    @pytest.fixture
    def scheduler(self, client, clock):
        return FacilitationScheduler(Vibe.FUN, client=client, clock=clock)

    def test_end_still_reports(self, scheduler):
        payload = {"choices": [{"message": None}]}
        with patch("rapport.llm.client.requests.post", return_value=_response(200, payload)), \
                patch("rapport.llm.client.time.sleep"):
            report = asyncio.run(scheduler.end())
        assert report.summary.fallback
        assert report.summary.key_themes == DEFAULT_THEMES

    def test_force_next_presents_fallback(self, scheduler, clock):
        scheduler.analysis = ConversationAnalysis()
        payload = {"choices": [{"message": "not an object"}]}
        with patch("rapport.llm.client.requests.post", return_value=_response(200, payload)), \
                patch("rapport.llm.client.time.sleep"):
            q = asyncio.run(scheduler.force_next())
        assert q.fallback
        assert q.question_text == "What's something that made you laugh recently?"


class TestLLMResult:
    def test_request_json_success(self, client):
        with patch.object(client, "chat_completion", return_value='{"a": 1}') as cc:
            result = asyncio.run(request_json(client, "sys", "user"))
        assert result.ok
        assert result.value == {"a": 1}
        assert cc.call_args.kwargs["response_format"] == {"type": "json_object"}

    def test_request_json_rejects_non_object(self, client):
        with patch.object(client, "chat_completion", return_value="[1, 2]"):
            result = asyncio.run(request_json(client, "sys", "user"))
        assert not result.ok

    def test_api_error_becomes_failure(self, client):
        with patch.object(client, "chat_completion", side_effect=LLMAPIError(500, "boom")):
            result = asyncio.run(request_text(client, "sys", "user"))
        assert not result.ok
        assert "boom" in result.error

    def test_empty_content_is_failure(self, client):
        with patch.object(client, "chat_completion", return_value="   "):
            assert not asyncio.run(request_text(client, "sys", "user")).ok

    def test_no_client_is_failure(self):
        result = asyncio.run(request_json(None, "sys", "user"))
        assert not result.ok
        assert result.value is None
