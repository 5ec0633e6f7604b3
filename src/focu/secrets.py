"""Secret storage for provider credentials.

Secrets are kept apart from the non-secret provider settings: the
provider config file never contains a key, and the registry fetches one
from a SecretStore each time it builds an adapter.
"""

import os
from abc import ABC, abstractmethod

from dotenv import load_dotenv


class SecretStore(ABC):
    """Async key-value store for API keys, addressed by provider name."""

    @abstractmethod
    async def get_api_key(self, provider: str) -> str | None:
        """Return the stored key, or None if there is none."""

    @abstractmethod
    async def store_api_key(self, provider: str, api_key: str) -> None:
        """Store (or replace) a provider's key."""

    @abstractmethod
    async def delete_api_key(self, provider: str) -> None:
        """Remove a provider's key. Missing keys are ignored."""


class InMemorySecretStore(SecretStore):
    """Session-only secret store. Suitable for tests."""

    def __init__(self, keys: dict[str, str] | None = None):
        self._keys: dict[str, str] = dict(keys or {})

    async def get_api_key(self, provider: str) -> str | None:
        return self._keys.get(provider)

    async def store_api_key(self, provider: str, api_key: str) -> None:
        self._keys[provider] = api_key

    async def delete_api_key(self, provider: str) -> None:
        self._keys.pop(provider, None)


def env_var_name(provider: str) -> str:
    """'openai-compatible' -> 'OPENAI_COMPATIBLE_API_KEY'."""
    return f"{provider.upper().replace('-', '_')}_API_KEY"


class EnvSecretStore(SecretStore):
    """Reads keys from <PROVIDER>_API_KEY environment variables.

    A .env file in the working directory is loaded on construction.
    Stored keys only live in this process; they shadow the environment
    until deleted, and deleting one also hides the environment value.
    """

    def __init__(self, dotenv_path: str | None = None):
        load_dotenv(dotenv_path)
        self._overrides: dict[str, str | None] = {}

    async def get_api_key(self, provider: str) -> str | None:
        if provider in self._overrides:
            return self._overrides[provider]
        return os.getenv(env_var_name(provider)) or None

    async def store_api_key(self, provider: str, api_key: str) -> None:
        self._overrides[provider] = api_key

    async def delete_api_key(self, provider: str) -> None:
        self._overrides[provider] = None
