"""Local model daemon adapter (Ollama HTTP protocol).

Besides the chat capabilities shared by every adapter, the daemon exposes
model management: list, pull, ps, show and delete.
"""

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx

from ...cancellation import CancellationToken
from ...config import DEFAULT_CONTEXT_LENGTH, DEFAULT_OLLAMA_URL, DEFAULT_TEMPERATURE
from ...errors import StreamError
from ..base import LLMProvider
from ..models import ChatMessage, LLMResponse, ProviderName, StreamingResponse


def _error_detail(response: httpx.Response) -> str:
    try:
        return response.json().get("error") or response.text
    except (ValueError, AttributeError):
        return response.text or f"HTTP {response.status_code}"


def _usage_from(data: dict[str, Any]) -> dict[str, int] | None:
    if "eval_count" not in data and "prompt_eval_count" not in data:
        return None
    prompt_tokens = data.get("prompt_eval_count", 0)
    completion_tokens = data.get("eval_count", 0)
    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": prompt_tokens + completion_tokens,
    }


def _same_model(installed: str, wanted: str) -> bool:
    """Compare names the way the daemon does ("llama3" means "llama3:latest")."""
    if installed.lower() == wanted.lower():
        return True
    if ":" not in wanted:
        return installed.lower() == f"{wanted.lower()}:latest"
    return False


class OllamaProvider(LLMProvider):
    """Adapter for a locally running Ollama daemon.

    Hidden design decisions:
    - NDJSON streaming over HTTP
    - Context size sent per request as options.num_ctx
    - Untagged model names resolve to ":latest"
    - No client-side timeout: local models may take long to load
    """

    def __init__(
        self,
        base_url: str = DEFAULT_OLLAMA_URL,
        **client_kwargs: Any
    ):
        """Initialize adapter.

        Args:
            base_url: Daemon URL
            **client_kwargs: Additional kwargs for httpx.AsyncClient
                (e.g. transport= for tests)
        """
        client_kwargs.setdefault("timeout", None)
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(base_url=self._base_url, **client_kwargs)

    @property
    def provider(self) -> ProviderName:
        return ProviderName.OLLAMA

    @property
    def base_url(self) -> str:
        return self._base_url

    def _chat_payload(
        self,
        messages: list[ChatMessage],
        model: str,
        stream: bool,
        context_length: int | None,
        temperature: float,
        **kwargs: Any
    ) -> dict[str, Any]:
        options = {
            "temperature": temperature,
            "num_ctx": context_length or DEFAULT_CONTEXT_LENGTH,
            **kwargs.pop("options", {}),
        }
        return {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "stream": stream,
            "options": options,
            **kwargs,
        }

    async def generate(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        context_length: int | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        **kwargs: Any
    ) -> LLMResponse:
        """Generate a complete reply via /api/chat with streaming disabled."""
        payload = self._chat_payload(messages, model, False, context_length, temperature, **kwargs)
        try:
            response = await self._client.post("/api/chat", json=payload)
        except httpx.HTTPError as e:
            raise StreamError(str(e), provider=self.provider.value) from e
        if response.is_error:
            raise StreamError(_error_detail(response), provider=self.provider.value)

        data = response.json()
        return LLMResponse(
            content=data.get("message", {}).get("content", ""),
            model=data.get("model", model),
            usage=_usage_from(data),
        )

    async def stream(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        cancel_token: CancellationToken | None = None,
        context_length: int | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        **kwargs: Any
    ) -> StreamingResponse:
        """Stream a reply via /api/chat; the request starts on first iteration."""
        payload = self._chat_payload(messages, model, True, context_length, temperature, **kwargs)
        usage: dict[str, Any] = {}
        return StreamingResponse(self._chat_stream_generator(payload, cancel_token, usage), usage)

    async def _chat_stream_generator(
        self,
        payload: dict[str, Any],
        cancel_token: CancellationToken | None,
        usage: dict[str, Any],
    ) -> AsyncIterator[str]:
        try:
            async with self._client.stream("POST", "/api/chat", json=payload) as response:
                if response.is_error:
                    await response.aread()
                    raise StreamError(_error_detail(response), provider=self.provider.value)

                async for line in response.aiter_lines():
                    if cancel_token is not None and cancel_token.cancelled:
                        return
                    if not line.strip():
                        continue
                    data = json.loads(line)
                    if "error" in data:
                        raise StreamError(data["error"], provider=self.provider.value)
                    content = data.get("message", {}).get("content")
                    if content:
                        yield content
                    if data.get("done"):
                        usage.update(_usage_from(data) or {})
                        return
        except httpx.HTTPError as e:
            raise StreamError(str(e), provider=self.provider.value) from e

    # Daemon management

    async def list_models(self) -> list[str]:
        """Names of installed models (GET /api/tags)."""
        response = await self._client.get("/api/tags")
        response.raise_for_status()
        return [m["name"] for m in response.json().get("models", [])]

    async def has_model(self, model: str) -> bool:
        """Whether the daemon is reachable and the model is installed."""
        try:
            installed = await self.list_models()
        except httpx.HTTPError:
            return False
        return any(_same_model(name, model) for name in installed)

    async def running_models(self) -> list[dict[str, Any]]:
        """Models currently loaded in memory (GET /api/ps)."""
        response = await self._client.get("/api/ps")
        response.raise_for_status()
        return response.json().get("models", [])

    async def is_running(self) -> bool:
        """Whether the daemon answers at all."""
        try:
            await self.running_models()
        except httpx.HTTPError:
            return False
        return True

    async def show_model(self, model: str) -> dict[str, Any] | None:
        """Model details (POST /api/show), or None if not installed."""
        response = await self._client.post("/api/show", json={"model": model})
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        response.raise_for_status()
        return response.json()

    async def delete_model(self, model: str) -> None:
        """Remove an installed model (DELETE /api/delete)."""
        response = await self._client.request("DELETE", "/api/delete", json={"model": model})
        response.raise_for_status()

    async def pull_model(
        self,
        model: str,
        cancel_token: CancellationToken | None = None
    ) -> AsyncIterator[dict[str, Any]]:
        """Download a model, yielding progress events (POST /api/pull).

        Each event carries the daemon's ``status`` and, while layers are
        downloading, a ``percent`` computed from ``completed``/``total``.
        Cancelling the token stops the download.
        """
        async with self._client.stream("POST", "/api/pull", json={"model": model, "stream": True}) as response:
            if response.is_error:
                await response.aread()
                raise StreamError(_error_detail(response), provider=self.provider.value)
            async for line in response.aiter_lines():
                if cancel_token is not None and cancel_token.cancelled:
                    return
                if not line.strip():
                    continue
                event = json.loads(line)
                if "error" in event:
                    raise StreamError(event["error"], provider=self.provider.value)
                if event.get("total") and "completed" in event:
                    event["percent"] = round(event["completed"] / event["total"] * 100)
                yield event

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
