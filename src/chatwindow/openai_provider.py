"""OpenAI-compatible completion backend over HTTP."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import requests

from .config import BackendConfig
from .errors import BackendError
from .provider import (
    ChatRequest,
    ChatResponse,
    LLMProvider,
    ProviderCapabilities,
    TokenUsage,
)

logger = logging.getLogger(__name__)


class OpenAIChatProvider(LLMProvider):
    """Calls ``POST {base_url}/chat/completions``.

    All connection settings come from the :class:`BackendConfig` given at
    construction; the provider holds no process-wide state. The blocking
    ``requests`` call runs in a worker thread so :meth:`chat` can be awaited.
    """

    def __init__(self, config: BackendConfig) -> None:
        self._config = config
        self._url = f"{config.base_url.rstrip('/')}/chat/completions"

    def name(self) -> str:
        return "openai"

    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(streaming=False)

    async def chat(self, request: ChatRequest) -> ChatResponse:
        return await asyncio.to_thread(self.chat_sync, request)

    def chat_sync(self, request: ChatRequest) -> ChatResponse:
        """Blocking variant of :meth:`chat`."""
        payload = self._payload(request)
        try:
            resp = requests.post(
                self._url,
                json=payload,
                headers={"Authorization": f"Bearer {self._config.api_key}"},
                timeout=self._config.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("completion request to %s failed: %s", self._url, exc)
            msg = f"completion request failed: {exc}"
            raise BackendError(msg) from exc

        if resp.status_code >= 400:
            logger.warning("completion backend returned HTTP %d", resp.status_code)
            msg = f"completion backend returned HTTP {resp.status_code}: {resp.text[:200]}"
            raise BackendError(msg, status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as exc:
            msg = "completion backend returned a non-JSON body"
            raise BackendError(msg, status_code=resp.status_code) from exc
        return self._parse(data, resp.status_code)

    def _payload(self, request: ChatRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": request.model or self._config.default_model,
            "messages": [{"role": m.role.value, "content": m.content} for m in request.messages],
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        return payload

    @staticmethod
    def _parse(data: Any, status_code: int) -> ChatResponse:
        try:
            content = data["choices"][0]["message"]["content"] or ""
            raw_usage = data.get("usage")
            usage = None
            if raw_usage:
                usage = TokenUsage(
                    prompt_tokens=int(raw_usage.get("prompt_tokens", 0)),
                    completion_tokens=int(raw_usage.get("completion_tokens", 0)),
                )
            return ChatResponse(content=content, usage=usage)
        except (KeyError, IndexError, TypeError, AttributeError, ValueError) as exc:
            msg = "completion backend returned a malformed body"
            raise BackendError(msg, status_code=status_code) from exc
