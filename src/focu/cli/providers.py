"""Engine factory functions for CLI.

Centralizes creation of the repository, registry and session from
environment variables. Hides configuration details from command
implementations.
"""

import os
from pathlib import Path

from rich.console import Console

from ..config import DEFAULT_OLLAMA_URL, load_chat_settings
from ..context import MemoryContextProvider
from ..llm import ModelInfo, ProviderName
from ..registry import ProviderConfig, ProviderRegistry, load_provider_configs
from ..secrets import EnvSecretStore, env_var_name
from ..session import ConversationSession
from ..storage import ChatRepository, create_chat_repository

# Default console for output
_console = Console()


def get_repository() -> ChatRepository:
    """Create chat repository from environment variables.

    Returns:
        SQLite chat repository (not yet connected)

    Environment variables:
        FOCU_DB_PATH: Database file (default: ./focu.db)
    """
    return create_chat_repository("sqlite", path=os.getenv("FOCU_DB_PATH", "./focu.db"))


def providers_file() -> Path:
    """Provider settings file (FOCU_PROVIDERS_FILE, default: ./providers.json)."""
    return Path(os.getenv("FOCU_PROVIDERS_FILE", "./providers.json"))


def get_registry(console: Console | None = None) -> ProviderRegistry:
    """Create provider registry from environment variables.

    Cloud providers without a saved config entry are enabled when their
    key variable is set, so a bare .env file is enough to get started.

    Args:
        console: Optional Rich console for output

    Returns:
        Provider registry

    Environment variables:
        FOCU_PROVIDERS_FILE: Saved provider settings (default: ./providers.json)
        FOCU_ACTIVE_MODEL: Model for new chats and send fallback
        OLLAMA_URL: Local daemon URL (default: http://localhost:11434)
        OPENAI_API_KEY, OPENROUTER_API_KEY, OPENAI_COMPATIBLE_API_KEY: Provider keys
        OPENAI_COMPATIBLE_URL: Base URL for the openai-compatible provider
    """
    con = console or _console
    secrets = EnvSecretStore()
    configs = {c.name: c for c in load_provider_configs(providers_file())}

    ollama = configs.get(ProviderName.OLLAMA) or ProviderConfig(name=ProviderName.OLLAMA)
    configs[ProviderName.OLLAMA] = ollama.model_copy(
        update={"base_url": os.getenv("OLLAMA_URL") or ollama.base_url or DEFAULT_OLLAMA_URL}
    )

    for provider in (ProviderName.OPENAI, ProviderName.OPENROUTER):
        if provider not in configs and os.getenv(env_var_name(provider.value)):
            configs[provider] = ProviderConfig(name=provider)

    compatible_url = os.getenv("OPENAI_COMPATIBLE_URL")
    if compatible_url:
        current = configs.get(ProviderName.OPENAI_COMPATIBLE) or ProviderConfig(
            name=ProviderName.OPENAI_COMPATIBLE
        )
        configs[ProviderName.OPENAI_COMPATIBLE] = current.model_copy(update={"base_url": compatible_url})

    registry = ProviderRegistry(secrets, configs=configs.values())

    active = os.getenv("FOCU_ACTIVE_MODEL")
    if active:
        if registry.get_model(active) is None:
            # Assume an unlisted id belongs to the local daemon
            con.print(f"[dim]Treating '{active}' as a local model[/dim]")
            registry.register_model(ModelInfo(
                id=active,
                display_name=active,
                provider=ProviderName.OLLAMA,
            ))
        registry.set_active_model(active)

    return registry


def get_session(
    registry: ProviderRegistry,
    repository: ChatRepository
) -> ConversationSession:
    """Create conversation session with settings from environment variables.

    Environment variables:
        FOCU_USER_BIO, FOCU_AI_MEMORY, FOCU_CONTEXT_WINDOW, FOCU_LANGUAGE
    """
    settings = load_chat_settings()
    memory = MemoryContextProvider(repository)
    return ConversationSession(registry, repository, memory, settings)
