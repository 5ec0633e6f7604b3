from abc import ABC, abstractmethod
from typing import Any

from ..cancellation import CancellationToken
from ..config import DEFAULT_TEMPERATURE
from .models import ChatMessage, LLMResponse, ProviderName, StreamingResponse


class LLMProvider(ABC):
    """Abstract base class for model adapters.

    This module hides the design decision of which backend serves a model.
    Implementations must handle provider-specific details like:
    - Client setup and authentication
    - Request/response format conversion
    - Wrapping transport failures as StreamError

    Every adapter exposes the same two capabilities, so callers never
    branch on the provider:
        stream = await adapter.stream(messages, model, cancel_token=token)
        response = await adapter.generate(messages, model)

    Supports async context manager protocol for proper resource cleanup:
        async with adapter:
            response = await adapter.generate(messages, model)
        # Automatically cleaned up
    """

    @property
    @abstractmethod
    def provider(self) -> ProviderName:
        """Provider served by this adapter."""

    @abstractmethod
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

        Args:
            messages: Ordered prompt messages
            model: Model identifier understood by this provider
            cancel_token: Checked before each chunk is yielded; once
                cancelled the stream ends without yielding further chunks
            context_length: Context size hint for providers that need one
            temperature: Sampling temperature (0.0 to 2.0)
            **kwargs: Provider-specific parameters

        Returns:
            StreamingResponse yielding text deltas in receipt order. It is
            lazy, finite and cannot be restarted.

        Raises:
            StreamError: On transport or provider failure
        """

    @abstractmethod
    async def generate(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        context_length: int | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        **kwargs: Any
    ) -> LLMResponse:
        """Generate a complete chat completion.

        Args:
            messages: Ordered prompt messages
            model: Model identifier understood by this provider
            context_length: Context size hint for providers that need one
            temperature: Sampling temperature
            **kwargs: Provider-specific parameters

        Returns:
            LLMResponse containing generated content and metadata

        Raises:
            StreamError: On transport or provider failure
        """

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""

    async def __aenter__(self) -> "LLMProvider":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
