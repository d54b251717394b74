"""
HTTP wrapper for OpenAI-compatible /v1/chat/completions endpoints.

Supports any provider (OpenAI, Groq, Mistral, Together, etc.) with automatic
fallback: when the primary provider returns 429, tries the fallback.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import requests

from ..config import load_dotenv

logger = logging.getLogger(__name__)


class LLMAPIError(Exception):
    """Raised when the LLM API returns an error."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"LLM API error {status_code}: {message}")


@dataclass
class LLMClient:
    """
    HTTP wrapper for OpenAI-compatible /v1/chat/completions endpoints.

    Supports automatic fallback: if the primary provider is rate-limited (429),
    the request is retried on the fallback provider.

    Configure via environment variables:
        LLM_API_KEY / OPENAI_API_KEY / GROQ_API_KEY / MISTRAL_API_KEY — API key
        LLM_BASE_URL — API base URL (default: OpenAI)
        LLM_MODEL — Default model name
        LLM_TIMEOUT — Per-request timeout in seconds
        LLM_FALLBACK_BASE_URL / LLM_FALLBACK_MODEL / LLM_FALLBACK_API_KEY —
            optional second provider used on 429
    """

    api_key: str = ""
    model: str = ""
    base_url: str = ""
    timeout: float = 0.0
    max_retries: int = 2
    # Fallback provider (auto-configured from env)
    _fallback: Optional[Tuple[str, str, str]] = field(default=None, repr=False)

    def __post_init__(self):
        load_dotenv()
        if not self.base_url:
            self.base_url = os.environ.get(
                "LLM_BASE_URL", "https://api.openai.com/v1"
            ).strip().rstrip("/")
        if not self.model:
            self.model = os.environ.get("LLM_MODEL", "gpt-4o-mini").strip()
        if not self.timeout:
            try:
                self.timeout = float(os.environ.get("LLM_TIMEOUT", "20"))
            except ValueError:
                self.timeout = 20.0
        if not self.api_key:
            self.api_key = self._load_api_key()
        self._fallback = self._load_fallback()

    def _load_api_key(self) -> str:
        """Load API key from environment variable."""
        for env_var in ("LLM_API_KEY", "OPENAI_API_KEY", "GROQ_API_KEY", "MISTRAL_API_KEY"):
            key = os.environ.get(env_var, "").strip()
            if key:
                return key

        raise LLMAPIError(
            401,
            "No LLM_API_KEY, OPENAI_API_KEY, GROQ_API_KEY, or MISTRAL_API_KEY found in env or .env file",
        )

    def _load_fallback(self) -> Optional[Tuple[str, str, str]]:
        """Load fallback provider if a second API key is available."""
        fallback_key = os.environ.get("LLM_FALLBACK_API_KEY", "").strip()
        fallback_url = os.environ.get("LLM_FALLBACK_BASE_URL", "").strip().rstrip("/")
        if not fallback_key or not fallback_url or fallback_key == self.api_key:
            return None
        fallback_model = os.environ.get("LLM_FALLBACK_MODEL", "").strip() or self.model
        logger.info(f"[LLMClient] Fallback provider: {fallback_url}")
        return (fallback_url, fallback_model, fallback_key)

    def _headers(self, api_key: Optional[str] = None) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key or self.api_key}",
            "Content-Type": "application/json",
        }

    def _do_request(
        self,
        url: str,
        body: Dict[str, Any],
        api_key: Optional[str] = None,
    ) -> str:
        """Make a single chat completion request. Returns content or raises."""
        resp = requests.post(
            url,
            headers=self._headers(api_key),
            json=body,
            timeout=self.timeout,
        )

        if resp.status_code == 200:
            try:
                data = resp.json()
                message = data["choices"][0]["message"]
                if not isinstance(message, dict):
                    raise TypeError(f"message is {type(message).__name__}, not an object")
                return message.get("content") or ""
            except (ValueError, KeyError, IndexError, TypeError) as e:
                raise LLMAPIError(502, f"Malformed completion payload: {e}")

        if resp.status_code in (400, 401, 403, 404):
            raise LLMAPIError(resp.status_code, resp.text)

        if resp.status_code == 429:
            retry_after = resp.headers.get("Retry-After", "?")
            raise LLMAPIError(429, f"Rate limited (Retry-After: {retry_after}s)")

        raise LLMAPIError(resp.status_code, resp.text)

    def chat_completion(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.1,
        max_tokens: int = 512,
        response_format: Optional[Dict[str, str]] = None,
        model_override: Optional[str] = None,
    ) -> str:
        """
        Call /v1/chat/completions on the primary provider.
        On 429, automatically tries the fallback provider if configured.

        Returns the assistant's response content as a string.
        Raises LLMAPIError on failure.
        """
        body: Dict[str, Any] = {
            "model": model_override or self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if response_format is not None:
            body["response_format"] = response_format

        url = f"{self.base_url}/chat/completions"

        last_error = None
        for attempt in range(self.max_retries + 1):
            try:
                return self._do_request(url, body)
            except LLMAPIError as e:
                if e.status_code == 429 and self._fallback:
                    fb_url, fb_model, fb_key = self._fallback
                    fb_body = {**body, "model": fb_model}
                    logger.info(f"[LLMClient] Primary rate-limited, trying fallback ({fb_url})")
                    try:
                        return self._do_request(
                            f"{fb_url}/chat/completions", fb_body, api_key=fb_key
                        )
                    except LLMAPIError as fb_e:
                        logger.warning(f"[LLMClient] Fallback also failed: {fb_e}")
                        last_error = e  # report primary error
                        break
                elif e.status_code in (429, 400, 401, 403, 404):
                    # Retrying won't help; let the caller fall back now
                    raise
                else:
                    last_error = e
            except requests.exceptions.Timeout:
                logger.warning(f"[LLMClient] Request timed out (attempt {attempt + 1}/{self.max_retries + 1})")
                last_error = LLMAPIError(408, "Request timed out")
            except requests.exceptions.ConnectionError as e:
                logger.warning(f"[LLMClient] Connection error: {e}")
                last_error = LLMAPIError(0, f"Connection error: {e}")

            if attempt < self.max_retries:
                time.sleep(2 ** attempt)

        raise last_error  # type: ignore

    @property
    def is_available(self) -> bool:
        """Check if the client has a valid API key configured."""
        return bool(self.api_key)


def build_client() -> Optional[LLMClient]:
    """Create a client from the environment, or None when no key is configured."""
    try:
        return LLMClient()
    except LLMAPIError as e:
        logger.warning(f"[LLMClient] Unavailable, every call will use fallbacks: {e}")
        return None
