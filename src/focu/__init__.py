"""
Focu: A conversation engine for journaling with local and cloud language models.

Each module hides one design decision: how providers are selected, how a
prompt is assembled, how a turn is streamed and cancelled, and how chats
are stored.
"""

__version__ = "0.1.0"

from .cancellation import CancellationToken
from .config import ChatSettings, load_chat_settings
from .context import ContextAssembler, MemoryContextProvider
from .errors import ConfigurationError, FocuError, ParseError, PersistenceError, StreamError
from .llm import ModelInfo, ProviderName, create_model_adapter
from .postprocess import Summarizer, TaskExtractor, TitleGenerator
from .registry import ProviderConfig, ProviderRegistry
from .secrets import EnvSecretStore, InMemorySecretStore, SecretStore
from .session import ConversationSession
from .storage import Chat, ChatRepository, ChatType, Message, MessageRole, create_chat_repository

__all__ = [
    "CancellationToken",
    "Chat",
    "ChatRepository",
    "ChatSettings",
    "ChatType",
    "ConfigurationError",
    "ContextAssembler",
    "ConversationSession",
    "EnvSecretStore",
    "FocuError",
    "InMemorySecretStore",
    "MemoryContextProvider",
    "Message",
    "MessageRole",
    "ModelInfo",
    "ParseError",
    "PersistenceError",
    "ProviderConfig",
    "ProviderName",
    "ProviderRegistry",
    "SecretStore",
    "StreamError",
    "Summarizer",
    "TaskExtractor",
    "TitleGenerator",
    "create_chat_repository",
    "create_model_adapter",
    "load_chat_settings",
]
