from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import structlog

from supplychain.core.exceptions import (
    LLMRequestError,
    LLMUnavailableError,
    RateLimitedError,
)

logger = structlog.get_logger(__name__)


def _retry_after(response: httpx.Response) -> Optional[float]:
    raw = response.headers.get("Retry-After")
    try:
        return float(raw) if raw is not None else None
    except ValueError:
        return None


class GeminiClient:
    """
    Клиент generateContent у Gemini.

    Один вызов = один HTTP запрос, без своих ретраев:
    повторами на 429 занимается BackoffRetrier, всем остальным - оркестратор.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise LLMUnavailableError("GEMINI_API_KEY is not set")

        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.2,
                "maxOutputTokens": 1024,
                "responseMimeType": "application/json",
            },
        }
        headers = {
            "x-goog-api-key": self.api_key,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.post(self.url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise LLMRequestError(f"Gemini transport error: {e}") from e

        if r.status_code == 429:
            raise RateLimitedError("Gemini quota exceeded", retry_after=_retry_after(r))
        try:
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise LLMRequestError(f"Gemini {e.response.status_code}: {e.response.text}") from e

        try:
            data = r.json()
        except ValueError as e:
            raise LLMRequestError("Gemini returned non-JSON body") from e
        return self._extract_text(data)

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            raise LLMRequestError(f"No candidates in response: {data.get('promptFeedback')}")
        parts = ((candidates[0].get("content") or {}).get("parts")) or []
        text = "".join(p.get("text", "") for p in parts).strip()
        if not text:
            raise LLMRequestError("Empty candidate text")
        return text
