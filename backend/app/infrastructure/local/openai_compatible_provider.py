"""
OpenAI-compatible streaming provider.

Talks to any hosted chat-completion API that accepts
POST {api_base}/chat/completions with "stream": true and answers with
"data: {...}" lines terminated by "data: [DONE]" (SambaNova, OpenAI, vLLM,
LiteLLM proxy, ...).
"""

import json
from typing import Any, AsyncIterator, Optional

import httpx

from app.core.exceptions import UpstreamUnavailableError
from app.core.logger import logger
from app.interfaces.llm_provider import ILLMProvider, IUpstreamStream
from app.models.chat import PromptMessage

_DATA_PREFIX = "data:"
_DONE = "[DONE]"


class OpenAICompatibleStream(IUpstreamStream):
    """Streaming completion backed by an open httpx response."""

    def __init__(self, response: httpx.Response, model: str):
        self._response = response
        self._model = model
        self._token_count: Optional[int] = None
        self._closed = False

    @property
    def token_count(self) -> Optional[int]:
        return self._token_count

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aiter__(self) -> AsyncIterator[str]:
        chunk_count = 0
        try:
            async for line in self._response.aiter_lines():
                line = line.strip()
                if not line.startswith(_DATA_PREFIX):
                    continue
                data = line[len(_DATA_PREFIX):].strip()
                if data == _DONE:
                    logger.info(f"{self._model}: stream finished, chunks={chunk_count}")
                    return

                try:
                    payload = json.loads(data)
                except json.JSONDecodeError:
                    logger.warning(f"{self._model}: skipping undecodable stream line")
                    continue
                if not isinstance(payload, dict):
                    continue

                if payload.get("error"):
                    raise UpstreamUnavailableError(f"Upstream stream error: {payload['error']}")

                self._record_usage(payload)
                for content in self._extract_deltas(payload):
                    chunk_count += 1
                    yield content
        except httpx.TimeoutException as e:
            raise UpstreamUnavailableError(f"Upstream read timed out: {e}") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(f"Upstream stream broke: {e}") from e

        logger.warning(f"{self._model}: stream ended without [DONE], chunks={chunk_count}")

    @staticmethod
    def _extract_deltas(payload: dict[str, Any]) -> list[str]:
        choices = payload.get("choices")
        if not isinstance(choices, list):
            return []
        deltas = []
        for choice in choices:
            delta = choice.get("delta") if isinstance(choice, dict) else None
            content = delta.get("content") if isinstance(delta, dict) else None
            if isinstance(content, str) and content:
                deltas.append(content)
        return deltas

    def _record_usage(self, payload: dict[str, Any]) -> None:
        usage = payload.get("usage")
        if isinstance(usage, dict) and isinstance(usage.get("completion_tokens"), int):
            self._token_count = usage["completion_tokens"]

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()


class OpenAICompatibleProvider(ILLMProvider):
    """LLM provider for OpenAI-compatible streaming endpoints."""

    def __init__(
        self,
        model_name: str,
        api_base: str,
        api_key: str,
        timeout_seconds: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
        available_models: Optional[list[str]] = None,
    ):
        """
        Initialize provider.

        Args:
            model_name: Default model identifier sent upstream
            api_base: Base URL including the version prefix (e.g. https://api.sambanova.ai/v1)
            api_key: Bearer token for the upstream API
            timeout_seconds: Connect/read timeout; a read stall longer than this fails the stream
            client: Optional pre-built client (tests inject a MockTransport here)
            available_models: Selectable model IDs; defaults to just model_name
        """
        self._model_name = model_name
        self._api_base = api_base.rstrip("/")
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))
        self._available_models = list(available_models or [model_name])

    def get_model_name(self) -> str:
        """Get human-readable model name."""
        return f"{self._model_name} @ {self._api_base}"

    def get_available_models(self) -> list[str]:
        return list(self._available_models)

    async def open_stream(
        self,
        messages: list[PromptMessage],
        max_tokens: int,
        model: Optional[str] = None,
    ) -> OpenAICompatibleStream:
        model_id = model or self._model_name
        body = {
            "model": model_id,
            "messages": [{"role": m.role.value, "content": m.content} for m in messages],
            "max_tokens": max_tokens,
            "stream": True,
        }
        request = self._client.build_request(
            "POST",
            f"{self._api_base}/chat/completions",
            json=body,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Accept": "text/event-stream",
            },
        )

        logger.info(f"Opening upstream stream: model={model_id}, messages={len(messages)}")
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(f"Upstream request failed: {e}") from e

        if response.status_code >= 400:
            detail = (await response.aread())[:500].decode("utf-8", errors="replace")
            await response.aclose()
            raise UpstreamUnavailableError(
                f"Upstream returned {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        return OpenAICompatibleStream(response, model_id)

    async def aclose(self) -> None:
        """Close the shared HTTP client."""
        await self._client.aclose()
