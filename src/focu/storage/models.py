"""Data models for chats and messages.

These models define the persisted structure of a conversation,
independent of the storage backend used.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatType(str, Enum):
    """Kind of conversation; selects the persona at creation time."""

    MORNING = "morning"
    EVENING = "evening"
    YEAR_END = "year-end"
    GENERAL = "general"


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Chat(BaseModel):
    """A conversation bound to one model and one calendar date."""

    id: int | None = Field(default=None, description="Assigned by the repository")
    model: str = Field(description="Model id replies are generated with")
    provider: str = Field(description="Provider serving the model")
    type: ChatType = ChatType.GENERAL
    date_string: str = Field(description="Calendar date the chat belongs to (YYYY-MM-DD)")
    title: str | None = None
    summary: str | None = None
    summary_created_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)


class Message(BaseModel):
    """One entry of a chat transcript.

    Messages are append-only and ordered by id. An assistant message's
    text grows while its reply streams, then stays fixed.
    """

    id: int | None = Field(default=None, description="Assigned by the repository")
    chat_id: int
    role: MessageRole
    text: str = ""
    created_at: datetime = Field(default_factory=utcnow)


# Fields callers may change on an existing chat
CHAT_UPDATABLE_FIELDS = frozenset({"title", "summary", "summary_created_at", "model", "provider"})
