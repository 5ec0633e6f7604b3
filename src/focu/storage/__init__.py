"""Chat storage module for focu.

Provides persistent chat and message storage behind one async contract.
"""

from .base import ChatRepository
from .factory import create_chat_repository
from .in_memory import InMemoryChatRepository
from .models import Chat, ChatType, Message, MessageRole

__all__ = [
    "Chat",
    "ChatRepository",
    "ChatType",
    "InMemoryChatRepository",
    "Message",
    "MessageRole",
    "create_chat_repository",
]
