"""Abstract base class for chat storage backends.

This module defines the read/write contract the conversation engine
depends on. The abstraction hides:
- Storage format and persistence mechanism
- Id assignment
- Connection management
"""

from abc import ABC, abstractmethod
from typing import Any

from .models import Chat, Message


class ChatRepository(ABC):
    """Abstract chat repository.

    Provides a unified interface for storing chats and their transcripts.
    Errors raised by a backend propagate to callers unchanged; no retry
    is attempted at this layer.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the backend gracefully."""

    # Chats

    @abstractmethod
    async def add_chat(self, chat: Chat) -> int:
        """Persist a new chat and return its id."""

    @abstractmethod
    async def get_chat(self, chat_id: int) -> Chat | None:
        """Fetch a chat, or None if it does not exist."""

    @abstractmethod
    async def update_chat(self, chat_id: int, **fields: Any) -> None:
        """Update title, summary, summary_created_at, model or provider.

        Raises:
            ValueError: If a field is not updatable
        """

    @abstractmethod
    async def delete_chat(self, chat_id: int) -> None:
        """Delete a chat and all of its messages."""

    @abstractmethod
    async def get_previous_chats(
        self,
        limit: int = 5,
        exclude_id: int | None = None
    ) -> list[Chat]:
        """Most recently created chats, newest first, excluding one id."""

    # Messages

    @abstractmethod
    async def add_message(self, message: Message) -> int:
        """Append a message and return its id (ids increase monotonically)."""

    @abstractmethod
    async def update_message(self, message_id: int, text: str) -> None:
        """Replace a message's text.

        Raises:
            PersistenceError: If the message does not exist
        """

    @abstractmethod
    async def delete_message(self, message_id: int) -> None:
        """Delete one message. Missing ids are ignored."""

    @abstractmethod
    async def get_chat_messages(self, chat_id: int) -> list[Message]:
        """All messages of a chat ordered by id."""

    @abstractmethod
    async def get_recent_chat_messages(
        self,
        chat_id: int,
        limit: int | None = None
    ) -> list[Message]:
        """Non-system, non-blank messages of a chat, oldest first.

        Args:
            chat_id: Chat to read
            limit: Keep only the most recent ``limit`` messages
        """

    @abstractmethod
    async def clear_chat(self, chat_id: int) -> None:
        """Delete every non-system message of a chat."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
