"""Gathers the cross-conversation memory block for a chat turn."""

import asyncio

from ..config import HISTORY_CHAT_LIMIT, HISTORY_MESSAGE_MAX_CHARS, HISTORY_MESSAGES_PER_CHAT
from ..storage.base import ChatRepository
from ..storage.models import Chat
from .daily import DailyContextProvider
from .formatting import format_chat_history, format_daily_context
from .models import MemoryContext


class MemoryContextProvider:
    """Collects daily context and recent chat history for one chat.

    The history block is bounded by chat count and per-chat message count
    rather than by the model's context length, so its size is the same
    for every provider.
    """

    def __init__(
        self,
        repository: ChatRepository,
        daily: DailyContextProvider | None = None,
        chat_limit: int = HISTORY_CHAT_LIMIT,
        messages_per_chat: int = HISTORY_MESSAGES_PER_CHAT,
        max_chars: int = HISTORY_MESSAGE_MAX_CHARS,
    ):
        self._repository = repository
        self._daily = daily
        self._chat_limit = chat_limit
        self._messages_per_chat = messages_per_chat
        self._max_chars = max_chars

    async def gather(self, chat: Chat) -> MemoryContext:
        daily_context, chat_history = await asyncio.gather(
            self._daily_context(chat.date_string),
            self._chat_history(chat.id),
        )
        return MemoryContext(
            date_today=chat.date_string,
            daily_context=daily_context,
            chat_history=chat_history,
        )

    async def _daily_context(self, date_string: str):
        if self._daily is None:
            return None
        tasks = await self._daily.get_tasks_for_day(date_string)
        notes = await self._daily.get_notes_for_day(date_string)
        return format_daily_context(tasks, notes, date_string)

    async def _chat_history(self, chat_id: int | None):
        previous = await self._repository.get_previous_chats(self._chat_limit, exclude_id=chat_id)
        previous = [c for c in previous if c.id != chat_id]
        pairs = []
        for other in previous:
            messages = await self._repository.get_recent_chat_messages(
                other.id, limit=self._messages_per_chat
            )
            pairs.append((other, messages))
        return format_chat_history(pairs, max_chars=self._max_chars)
