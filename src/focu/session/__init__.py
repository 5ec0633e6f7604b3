"""Conversation turns: send, stream, stop and regenerate replies."""

from .conversation import ConversationSession, iterate_until_cancelled

__all__ = [
    "ConversationSession",
    "iterate_until_cancelled",
]
