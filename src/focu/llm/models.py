from collections.abc import AsyncIterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProviderName(str, Enum):
    """Backends a model can be served from."""

    OLLAMA = "ollama"
    OPENAI = "openai"
    OPENAI_COMPATIBLE = "openai-compatible"
    OPENROUTER = "openrouter"


class StreamingResponse:
    """Wrapper for streaming LLM responses that captures usage info.

    Acts as an async iterator for text chunks while storing token usage
    that becomes available at the end of the stream. The usage dict is
    owned by this response, so concurrent streams from one adapter never
    share it.

    Usage:
        stream = await adapter.stream(messages, model)
        async for chunk in stream:
            print(chunk, end="")
        # After iteration, usage is available
        print(stream.usage)  # {"prompt_tokens": 100, "completion_tokens": 50, ...}
    """

    def __init__(self, async_iter: AsyncIterator[str], usage: dict[str, Any] | None = None):
        """Initialize with an async iterator of text chunks.

        Args:
            async_iter: Async iterator yielding text chunks
            usage: Dict the producing generator fills in at end of stream
        """
        self._iter = async_iter
        self._usage = usage if usage is not None else {}

    @property
    def usage(self) -> dict[str, Any] | None:
        """Get token usage info (available after iteration completes)."""
        return self._usage or None

    def set_usage(self, usage: dict[str, Any]) -> None:
        """Set token usage info."""
        self._usage.clear()
        self._usage.update(usage)

    def __aiter__(self) -> "StreamingResponse":
        return self

    async def __anext__(self) -> str:
        return await self._iter.__anext__()

    async def aclose(self) -> None:
        """Stop the underlying generator and release its transport."""
        aclose = getattr(self._iter, "aclose", None)
        if aclose is not None:
            await aclose()


class ChatMessage(BaseModel):
    """Represents a chat message sent to a model."""

    model_config = ConfigDict(frozen=True)

    role: str = Field(description="Role of the message sender: 'user', 'assistant', or 'system'")
    content: str = Field(description="Content of the message")


class LLMResponse(BaseModel):
    """Complete (non-streamed) response from a model."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Generated text content")
    model: str = Field(description="Model that generated the response")
    usage: dict[str, int] | None = Field(
        default=None,
        description="Token usage information"
    )


class ModelInfo(BaseModel):
    """Catalog entry describing one selectable model."""

    id: str = Field(description="Identifier sent to the provider")
    display_name: str
    provider: ProviderName
    description: str = ""
    context_length: int | None = Field(default=None, description="Maximum context in tokens")
    tags: list[str] = Field(default_factory=list)


DEFAULT_MODELS: list[ModelInfo] = [
    ModelInfo(
        id="cognitivecomputations/dolphin3.0-mistral-24b:free",
        display_name="Dolphin 3.0 Mistral 24B (Free)",
        provider=ProviderName.OPENROUTER,
        description="General purpose instruct model from the Dolphin series.",
        context_length=32768,
        tags=["Featured", "Free"],
    ),
    ModelInfo(
        id="google/gemini-2.0-flash-lite-001",
        display_name="Gemini 2.0 Flash Lite",
        provider=ProviderName.OPENROUTER,
        context_length=1048576,
        tags=["Featured"],
    ),
    ModelInfo(
        id="google/gemini-2.0-flash-001",
        display_name="Gemini 2.0 Flash",
        provider=ProviderName.OPENROUTER,
        context_length=1000000,
        tags=["Featured"],
    ),
    ModelInfo(
        id="mistralai/mistral-nemo",
        display_name="Mistral Nemo",
        provider=ProviderName.OPENROUTER,
        context_length=128000,
        tags=["Featured"],
    ),
    ModelInfo(
        id="gpt-4o",
        display_name="GPT-4o",
        provider=ProviderName.OPENAI,
        context_length=128000,
    ),
    ModelInfo(
        id="gpt-4o-mini",
        display_name="GPT-4o mini",
        provider=ProviderName.OPENAI,
        context_length=128000,
        tags=["Featured"],
    ),
]
