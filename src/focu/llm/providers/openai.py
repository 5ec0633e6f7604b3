from collections.abc import AsyncIterator
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from ...cancellation import CancellationToken
from ...config import DEFAULT_TEMPERATURE, OPENAI_BASE_URL
from ...errors import StreamError
from ..base import LLMProvider
from ..models import ChatMessage, LLMResponse, ProviderName, StreamingResponse


def _to_openai_messages(messages: list[ChatMessage]) -> list[dict[str, str]]:
    return [{"role": msg.role, "content": msg.content} for msg in messages]


class OpenAIProvider(LLMProvider):
    """OpenAI chat-completions adapter.

    Hidden design decisions:
    - OpenAI API client initialization
    - Message format conversion
    - Usage capture from the final stream chunk
    - Authentication mechanism

    Subclasses reuse the same wire format against other endpoints.
    """

    _provider = ProviderName.OPENAI

    def __init__(
        self,
        api_key: str,
        base_url: str | None = OPENAI_BASE_URL,
        organization: str | None = None,
        **client_kwargs: Any
    ):
        """Initialize OpenAI adapter.

        Args:
            api_key: API key
            base_url: API base URL
            organization: Optional organization ID
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        self._base_url = base_url
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            organization=organization,
            **client_kwargs
        )

    @property
    def provider(self) -> ProviderName:
        return self._provider

    @property
    def base_url(self) -> str | None:
        return self._base_url

    async def generate(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        context_length: int | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        **kwargs: Any
    ) -> LLMResponse:
        """Generate a chat completion.

        context_length is ignored: hosted endpoints size their own context.
        """
        try:
            completion = await self._client.chat.completions.create(
                model=model,
                messages=_to_openai_messages(messages),
                temperature=temperature,
                **kwargs
            )
        except OpenAIError as e:
            raise StreamError(str(e), provider=self.provider.value) from e

        usage = None
        if completion.usage:
            usage = {
                "prompt_tokens": completion.usage.prompt_tokens,
                "completion_tokens": completion.usage.completion_tokens,
                "total_tokens": completion.usage.total_tokens
            }

        return LLMResponse(
            content=completion.choices[0].message.content or "",
            model=completion.model or model,
            usage=usage
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
        """Generate a streaming chat completion.

        The request is only sent once iteration starts.
        """
        usage: dict[str, Any] = {}
        return StreamingResponse(
            self._chat_stream_generator(
                model, _to_openai_messages(messages), temperature, cancel_token, usage, **kwargs
            ),
            usage,
        )

    async def _chat_stream_generator(
        self,
        model: str,
        messages: list[dict[str, str]],
        temperature: float,
        cancel_token: CancellationToken | None,
        usage: dict[str, Any],
        **kwargs: Any,
    ) -> AsyncIterator[str]:
        """Internal generator for Chat Completions streaming with usage capture."""
        request_params: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "stream": True,
            "stream_options": {"include_usage": True},
            **kwargs,
        }

        try:
            stream = await self._client.chat.completions.create(**request_params)
        except OpenAIError as e:
            raise StreamError(str(e), provider=self.provider.value) from e

        try:
            async for chunk in stream:
                if cancel_token is not None and cancel_token.cancelled:
                    return
                if chunk.usage is not None:
                    usage.update({
                        "prompt_tokens": chunk.usage.prompt_tokens,
                        "completion_tokens": chunk.usage.completion_tokens,
                        "total_tokens": chunk.usage.total_tokens,
                    })
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except OpenAIError as e:
            raise StreamError(str(e), provider=self.provider.value) from e
        finally:
            await stream.close()

    async def close(self) -> None:
        """Close the OpenAI client.

        Note: Uses the OpenAI SDK's async context manager for proper cleanup.
        See: https://github.com/openai/openai-python#async-usage
        """
        await self._client.close()
