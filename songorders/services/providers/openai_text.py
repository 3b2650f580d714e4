from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from songorders.config import Settings
from songorders.domain.errors import ProviderError, ProviderTimeout

logger = logging.getLogger("generation_provider")


class ProviderConfig(BaseModel):
    model: str = "gpt-4o-mini"
    timeout_ms: int = Field(default=30000, gt=0)
    api_key: str = ""
    base_url: str = "https://api.openai.com/v1"

    @classmethod
    def from_settings(cls, s: Settings) -> "ProviderConfig":
        return cls(
            model=s.LYRICS_MODEL,
            timeout_ms=s.LYRICS_TIMEOUT_MS,
            api_key=s.OPENAI_API_KEY,
            base_url=s.OPENAI_BASE_URL,
        )


class _NonSuccess(Exception):
    """Primary protocol answered, but not with something usable."""

    def __init__(self, detail: str, status: Optional[int] = None):
        super().__init__(detail)
        self.status = status


def _safe_json(resp: httpx.Response) -> Dict[str, Any]:
    text = (resp.text or "").strip()
    if not text:
        raise _NonSuccess("EMPTY_BODY", resp.status_code)
    try:
        obj = resp.json()
    except json.JSONDecodeError as e:
        raise _NonSuccess(f"INVALID_JSON: {e}", resp.status_code) from e
    if not isinstance(obj, dict):
        raise _NonSuccess(f"UNEXPECTED_JSON_TYPE: {type(obj).__name__}", resp.status_code)
    return obj


def _chat_content(data: Dict[str, Any]) -> str:
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        raise _NonSuccess("missing choices")
    message = choices[0].get("message")
    if not isinstance(message, dict):
        raise _NonSuccess("missing choices[0].message")
    content = message.get("content")
    return content if isinstance(content, str) else ""


def _responses_text(data: Dict[str, Any]) -> str:
    out = data.get("output_text")
    if isinstance(out, str):
        return out
    if isinstance(out, list):
        return "\n".join(str(x) for x in out if isinstance(x, str))
    raise ProviderError("fallback response missing output_text", code="invalid_response")


class OpenAITextProvider:
    """
    Text completion adapter.

    Primary call: chat completions ({model, messages, temperature?, max_tokens?}).
    If that answers with a non-success response, exactly one fallback call is
    made with the responses shape ({model, input, temperature?, max_output_tokens?})
    against the same provider. Both paths return plain text.

    A client-side deadline bounds every call; hitting it raises ProviderTimeout
    and does not trigger the fallback.
    """

    provider_name = "openai"

    def __init__(self, config: ProviderConfig, *, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.base = config.base_url.rstrip("/")
        self._client = client

    def _headers(self) -> Dict[str, str]:
        if not self.config.api_key:
            raise ProviderError("provider api key is not configured", code="provider_not_configured")
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    async def _post(self, path: str, payload: Dict[str, Any], timeout_s: float) -> httpx.Response:
        url = f"{self.base}{path}"
        headers = self._headers()
        try:
            if self._client is not None:
                return await asyncio.wait_for(
                    self._client.post(url, headers=headers, json=payload, timeout=timeout_s),
                    timeout=timeout_s,
                )
            async with httpx.AsyncClient(timeout=timeout_s) as client:
                return await asyncio.wait_for(
                    client.post(url, headers=headers, json=payload),
                    timeout=timeout_s,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning("provider call timed out path=%s timeout_s=%s", path, timeout_s)
            raise ProviderTimeout(f"request timeout after {timeout_s:.1f}s") from e
        except httpx.TransportError as e:
            raise ProviderError(f"request failed: {e}", code="provider_unreachable") from e

    async def complete(
        self,
        messages: List[Dict[str, str]],
        *,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout_ms: Optional[int] = None,
    ) -> str:
        timeout_s = float(timeout_ms or self.config.timeout_ms) / 1000.0
        logger.info(
            "provider call model=%s messages=%s temperature=%s",
            self.config.model,
            len(messages),
            temperature,
        )

        chat_payload: Dict[str, Any] = {"model": self.config.model, "messages": messages}
        if temperature is not None:
            chat_payload["temperature"] = float(temperature)
        if max_tokens:
            chat_payload["max_tokens"] = int(max_tokens)

        r = await self._post("/chat/completions", chat_payload, timeout_s)
        try:
            if r.status_code >= 400:
                raise _NonSuccess(f"HTTP {r.status_code}", r.status_code)
            return _chat_content(_safe_json(r))
        except _NonSuccess as e:
            logger.warning(
                "chat completion failed, trying fallback status=%s detail=%s body=%s",
                e.status,
                str(e),
                (r.text or "")[:200],
            )

        resp_payload: Dict[str, Any] = {
            "model": self.config.model,
            "input": [{"role": m["role"], "content": m["content"]} for m in messages],
        }
        if temperature is not None:
            resp_payload["temperature"] = float(temperature)
        if max_tokens:
            resp_payload["max_output_tokens"] = int(max_tokens)

        r2 = await self._post("/responses", resp_payload, timeout_s)
        if r2.status_code >= 400:
            logger.error("fallback call failed status=%s body=%s", r2.status_code, (r2.text or "")[:200])
            raise ProviderError(
                f"provider error: {r.status_code} then {r2.status_code}",
                upstream_status=r2.status_code,
            )
        try:
            data = _safe_json(r2)
        except _NonSuccess as e:
            raise ProviderError(f"fallback response unreadable: {e}", code="invalid_response") from e
        return _responses_text(data)
