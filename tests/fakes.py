"""Fake adapters and repositories shared by the tests."""
import asyncio
from typing import Any

from focu.cancellation import CancellationToken
from focu.llm import ChatMessage, LLMProvider, LLMResponse, ModelInfo, ProviderName, StreamingResponse
from focu.registry import ProviderConfig, ProviderRegistry
from focu.secrets import InMemorySecretStore
from focu.storage import InMemoryChatRepository

CLOUD_MODEL = "cloud-model"
LOCAL_MODEL = "local-model"


class Gate:
    """Script step that pauses a fake stream until released."""

    def __init__(self):
        self.reached = asyncio.Event()
        self.release = asyncio.Event()


class ScriptedAdapter(LLMProvider):
    """Adapter that replays scripted chunks, keyed by the last prompt message.

    A script is a list of steps: strings are yielded as chunks, a Gate
    pauses the stream, and an exception instance is raised.
    """

    def __init__(
        self,
        provider: ProviderName = ProviderName.OPENROUTER,
        replies: dict[str, list[Any]] | None = None,
        default: list[Any] | None = None,
        completion: str = "Morning plans",
        installed: list[str] | None = None,
    ):
        self._provider = provider
        self.replies = dict(replies or {})
        self.default = default if default is not None else ["ok"]
        self.completion = completion
        self.installed = set(installed or [])
        self.stream_calls: list[dict[str, Any]] = []
        self.generate_calls: list[list[ChatMessage]] = []
        self.closed = False

    @property
    def provider(self) -> ProviderName:
        return self._provider

    async def stream(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        cancel_token: CancellationToken | None = None,
        context_length: int | None = None,
        temperature: float = 0.7,
        **kwargs: Any
    ) -> StreamingResponse:
        self.stream_calls.append({
            "messages": messages,
            "model": model,
            "context_length": context_length,
            "cancel_token": cancel_token,
        })
        script = self.replies.get(messages[-1].content, self.default)
        return StreamingResponse(self._play(script, cancel_token))

    async def _play(self, script: list[Any], token: CancellationToken | None):
        for step in script:
            if isinstance(step, Gate):
                step.reached.set()
                await step.release.wait()
                continue
            if isinstance(step, Exception):
                raise step
            if token is not None and token.cancelled:
                return
            yield step

    async def generate(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        context_length: int | None = None,
        temperature: float = 0.7,
        **kwargs: Any
    ) -> LLMResponse:
        self.generate_calls.append(messages)
        if isinstance(self.completion, Exception):
            raise self.completion
        return LLMResponse(content=self.completion, model=model)

    async def list_models(self) -> list[str]:
        return sorted(self.installed)

    async def has_model(self, model: str) -> bool:
        return model in self.installed

    async def close(self) -> None:
        self.closed = True


class RecordingRepository(InMemoryChatRepository):
    """In-memory repository that remembers every message text write."""

    def __init__(self):
        super().__init__()
        self.updates: list[tuple[int, str]] = []

    async def update_message(self, message_id: int, text: str) -> None:
        await super().update_message(message_id, text)
        self.updates.append((message_id, text))


def make_registry(adapters: dict[ProviderName, LLMProvider]) -> ProviderRegistry:
    """Registry with one cloud and one local model served by the given adapters."""
    return ProviderRegistry(
        InMemorySecretStore({"openrouter": "sk-test"}),
        configs=[ProviderConfig(name=ProviderName.OPENROUTER)],
        models=[
            ModelInfo(id=CLOUD_MODEL, display_name="Cloud", provider=ProviderName.OPENROUTER),
            ModelInfo(id=LOCAL_MODEL, display_name="Local", provider=ProviderName.OLLAMA),
        ],
        active_model=CLOUD_MODEL,
        adapter_factory=lambda provider, **config: adapters[provider],
    )
