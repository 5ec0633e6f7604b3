"""Shared plumbing for one-shot generation tasks run on a finished chat."""

from ..llm.models import ChatMessage
from ..registry import ProviderRegistry
from ..storage.base import ChatRepository
from ..storage.models import Message, MessageRole


def transcript(messages: list[Message]) -> list[ChatMessage]:
    """Non-system, non-blank messages as model input."""
    return [
        ChatMessage(role=m.role.value, content=m.text)
        for m in messages
        if m.role != MessageRole.SYSTEM and m.text.strip()
    ]


class PostProcessor:
    """Base for generators that read a chat and write a derived field.

    Subclasses never raise to their caller: failures are logged and an
    empty result is returned.
    """

    def __init__(self, repository: ChatRepository, registry: ProviderRegistry):
        self._repository = repository
        self._registry = registry

    async def _generate(self, prompt: list[ChatMessage], model_id: str) -> str:
        resolved = await self._registry.resolve(model_id)
        response = await resolved.adapter.generate(prompt, resolved.model.id)
        return response.content
