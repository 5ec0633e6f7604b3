"""In-memory chat repository.

Simple dict-based storage for session-only use.
Data is lost when the application exits.
"""

from itertools import count
from typing import Any

from ..errors import PersistenceError
from .base import ChatRepository
from .models import CHAT_UPDATABLE_FIELDS, Chat, Message, MessageRole


class InMemoryChatRepository(ChatRepository):
    """In-memory chat repository (session-only).

    Returned models are copies, so callers cannot mutate stored state
    behind the repository's back. Suitable for testing.
    """

    def __init__(self) -> None:
        self._chats: dict[int, Chat] = {}
        self._messages: dict[int, Message] = {}
        self._chat_ids = count(1)
        self._message_ids = count(1)

    async def connect(self) -> None:
        """Initialize storage (no-op for in-memory)."""

    async def disconnect(self) -> None:
        """Close storage (no-op for in-memory)."""

    async def add_chat(self, chat: Chat) -> int:
        chat_id = next(self._chat_ids)
        self._chats[chat_id] = chat.model_copy(update={"id": chat_id})
        return chat_id

    async def get_chat(self, chat_id: int) -> Chat | None:
        chat = self._chats.get(chat_id)
        return chat.model_copy() if chat else None

    async def update_chat(self, chat_id: int, **fields: Any) -> None:
        unknown = set(fields) - CHAT_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update chat fields: {sorted(unknown)}")
        chat = self._chats.get(chat_id)
        if chat is None:
            raise PersistenceError(f"chat {chat_id} not found")
        self._chats[chat_id] = chat.model_copy(update=fields)

    async def delete_chat(self, chat_id: int) -> None:
        self._chats.pop(chat_id, None)
        for message_id in [m.id for m in self._messages.values() if m.chat_id == chat_id]:
            del self._messages[message_id]

    async def get_previous_chats(
        self,
        limit: int = 5,
        exclude_id: int | None = None
    ) -> list[Chat]:
        chats = [c for c in self._chats.values() if c.id != exclude_id]
        chats.sort(key=lambda c: (c.created_at, c.id), reverse=True)
        return [c.model_copy() for c in chats[:limit]]

    async def add_message(self, message: Message) -> int:
        if message.chat_id not in self._chats:
            raise PersistenceError(f"chat {message.chat_id} not found")
        message_id = next(self._message_ids)
        self._messages[message_id] = message.model_copy(update={"id": message_id})
        return message_id

    async def update_message(self, message_id: int, text: str) -> None:
        message = self._messages.get(message_id)
        if message is None:
            raise PersistenceError(f"message {message_id} not found")
        self._messages[message_id] = message.model_copy(update={"text": text})

    async def delete_message(self, message_id: int) -> None:
        self._messages.pop(message_id, None)

    async def get_chat_messages(self, chat_id: int) -> list[Message]:
        messages = [m for m in self._messages.values() if m.chat_id == chat_id]
        messages.sort(key=lambda m: m.id)
        return [m.model_copy() for m in messages]

    async def get_recent_chat_messages(
        self,
        chat_id: int,
        limit: int | None = None
    ) -> list[Message]:
        messages = [
            m for m in await self.get_chat_messages(chat_id)
            if m.role != MessageRole.SYSTEM and m.text.strip()
        ]
        if limit is not None:
            messages = messages[-limit:] if limit > 0 else []
        return messages

    async def clear_chat(self, chat_id: int) -> None:
        for message in await self.get_chat_messages(chat_id):
            if message.role != MessageRole.SYSTEM:
                del self._messages[message.id]

    @property
    def backend_type(self) -> str:
        return "memory"
