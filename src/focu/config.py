"""Engine configuration constants and user-facing chat settings.

Centralizes defaults for context assembly and provider access, and loads
per-user chat settings from the environment.
"""

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Context assembly
DEFAULT_CONTEXT_LENGTH = 4096  # Tokens, forwarded to providers that need num_ctx
HISTORY_CHAT_LIMIT = 5  # Other chats included in the chat history block
HISTORY_MESSAGES_PER_CHAT = 10  # Most recent messages taken from each of them
HISTORY_MESSAGE_MAX_CHARS = 1000  # Characters before truncating a history message

# Providers
DEFAULT_OLLAMA_URL = "http://localhost:11434"
OPENAI_BASE_URL = "https://api.openai.com/v1"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_TEMPERATURE = 0.7

# Replies
ERROR_REPLY_TEXT = "An error occurred. Please try again."
DEFAULT_LANGUAGE = "English"

LOG_FORMAT = "%(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


class ChatSettings(BaseModel):
    """User preferences that shape every assembled prompt."""

    user_bio: str = Field(default="", description="Free-form facts about the user")
    use_ai_memory: bool = Field(
        default=False,
        description="Inject daily context and recent chat history"
    )
    context_window_size: int = Field(default=DEFAULT_CONTEXT_LENGTH, ge=256)
    language: str = Field(default=DEFAULT_LANGUAGE, description="Reply language")
    generic_template: str | None = Field(
        default=None,
        description="Persona used for general chats (None uses the built-in one)"
    )


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_chat_settings() -> ChatSettings:
    """Build chat settings from environment variables.

    Environment variables:
        FOCU_USER_BIO: Text about the user (default: empty)
        FOCU_AI_MEMORY: Enable cross-chat memory (default: false)
        FOCU_CONTEXT_WINDOW: Context length hint (default: 4096)
        FOCU_LANGUAGE: Reply language (default: English)
    """
    load_dotenv()
    return ChatSettings(
        user_bio=os.getenv("FOCU_USER_BIO", ""),
        use_ai_memory=_env_flag("FOCU_AI_MEMORY"),
        context_window_size=int(os.getenv("FOCU_CONTEXT_WINDOW", str(DEFAULT_CONTEXT_LENGTH))),
        language=os.getenv("FOCU_LANGUAGE", DEFAULT_LANGUAGE),
    )


def configure_logging(level: str = "WARNING") -> None:
    """Route engine logs through a Rich console handler."""
    from rich.logging import RichHandler

    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # Third-party HTTP clients are noisy at INFO
    for name in ("httpx", "httpcore", "openai"):
        logging.getLogger(name).setLevel(logging.WARNING)
