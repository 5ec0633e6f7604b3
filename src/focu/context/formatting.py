"""Shape daily context and chat history into JSON-ready structures."""

from typing import Any

from ..config import HISTORY_MESSAGE_MAX_CHARS
from ..storage.models import Chat, Message
from .models import Note, Task


def truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def format_daily_context(
    tasks: list[Task],
    notes: list[Note],
    date_string: str
) -> dict[str, Any] | None:
    """Describe a day's tasks and notes.

    Returns:
        None when the date has no tasks and every note is blank
    """
    note_texts = [n.text.strip() for n in notes if n.text.strip()]
    if not tasks and not note_texts:
        return None

    return {
        "date": date_string,
        "tasks": [{"title": t.title, "completed": t.completed} for t in tasks],
        "notes": note_texts,
    }


def format_chat_history(
    chats: list[tuple[Chat, list[Message]]],
    max_chars: int = HISTORY_MESSAGE_MAX_CHARS
) -> list[dict[str, Any]] | None:
    """Describe other recent chats and their latest messages.

    Args:
        chats: (chat, recent messages) pairs, newest chat first
        max_chars: Characters kept per message

    Returns:
        None when no chat contributes a message
    """
    history = []
    for chat, messages in chats:
        if not messages:
            continue
        history.append({
            "date": chat.date_string,
            "type": chat.type.value,
            "title": chat.title,
            "messages": [
                {"role": m.role.value, "text": truncate(m.text, max_chars)}
                for m in messages
            ],
        })
    return history or None
