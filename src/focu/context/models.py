"""Data models for prompt context assembly."""

from typing import Any

from pydantic import BaseModel, Field

from ..config import DEFAULT_CONTEXT_LENGTH


class Task(BaseModel):
    """A to-do item scheduled on a calendar date."""

    id: int | None = None
    title: str
    completed: bool = False
    date_string: str


class Note(BaseModel):
    """A free-form note attached to a calendar date."""

    id: int | None = None
    text: str
    date_string: str


class AssemblyOptions(BaseModel):
    """Per-turn switches for ContextAssembler.build."""

    user_bio: str = ""
    use_memory: bool = False
    context_length: int = Field(
        default=DEFAULT_CONTEXT_LENGTH,
        description="Forwarded to the adapter; never used to truncate"
    )


class MemoryContext(BaseModel):
    """Cross-conversation material gathered for one turn.

    ``daily_context`` and ``chat_history`` are None when there is nothing
    to say, never empty-but-present.
    """

    date_today: str
    daily_context: dict[str, Any] | None = None
    chat_history: list[dict[str, Any]] | None = None

    @property
    def is_empty(self) -> bool:
        return self.daily_context is None and self.chat_history is None

    def to_payload(self) -> dict[str, Any]:
        """JSON object injected into the prompt; absent parts are omitted."""
        payload: dict[str, Any] = {"dateToday": self.date_today}
        if self.daily_context is not None:
            payload["dailyContext"] = self.daily_context
        if self.chat_history is not None:
            payload["chatHistory"] = self.chat_history
        return payload
