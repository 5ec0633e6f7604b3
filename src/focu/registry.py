"""Provider configuration and model-to-adapter resolution.

The registry hides which backend serves a model. Callers ask for a model
id and receive a ready adapter; the provider decision is made once here
and never re-dispatched per request or per chunk.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

import httpx
from pydantic import BaseModel, Field, TypeAdapter

from .errors import ConfigurationError
from .llm import DEFAULT_MODELS, LLMProvider, ModelInfo, ProviderName, create_model_adapter
from .secrets import SecretStore

logger = logging.getLogger(__name__)


class ProviderConfig(BaseModel):
    """Settings for one provider.

    ``api_key`` is only populated on copies returned by
    ``ProviderRegistry.get_config`` and is excluded from serialization,
    so persisted settings never carry a secret.
    """

    name: ProviderName
    enabled: bool = True
    base_url: str | None = None
    context_length: int | None = Field(default=None, ge=256)
    api_key: str | None = Field(default=None, exclude=True, repr=False)


_configs_adapter = TypeAdapter(list[ProviderConfig])


def load_provider_configs(path: str | Path) -> list[ProviderConfig]:
    """Read persisted provider settings; a missing file means none."""
    path = Path(path)
    if not path.exists():
        return []
    return _configs_adapter.validate_json(path.read_text(encoding="utf-8"))


def save_provider_configs(path: str | Path, configs: Iterable[ProviderConfig]) -> None:
    """Write provider settings as JSON (secrets excluded)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(_configs_adapter.dump_json(list(configs), indent=2))


@dataclass(frozen=True)
class ResolvedModel:
    """A model bound to the adapter that serves it."""

    model: ModelInfo
    adapter: LLMProvider

    @property
    def provider(self) -> ProviderName:
        return self.model.provider


AdapterFactory = Callable[..., LLMProvider]


class ProviderRegistry:
    """Resolves model ids to adapters and reports model availability.

    Example:
        registry = ProviderRegistry(
            secrets,
            configs=[ProviderConfig(name=ProviderName.OPENROUTER)],
            active_model="mistralai/mistral-nemo",
        )
        resolved = await registry.resolve("mistralai/mistral-nemo")
        stream = await resolved.adapter.stream(messages, resolved.model.id)
    """

    def __init__(
        self,
        secret_store: SecretStore,
        configs: Iterable[ProviderConfig] | None = None,
        models: Iterable[ModelInfo] | None = None,
        active_model: str | None = None,
        adapter_factory: AdapterFactory = create_model_adapter,
    ):
        """Initialize registry.

        Args:
            secret_store: Where API keys live
            configs: Provider settings; the local daemon is always configured
            models: Model catalog (default: built-in cloud catalog)
            active_model: Model used for new chats and as send fallback
            adapter_factory: Builds an adapter from (provider, **config)
        """
        self._secrets = secret_store
        self._configs: dict[ProviderName, ProviderConfig] = {
            c.name: c for c in (configs or [])
        }
        self._configs.setdefault(ProviderName.OLLAMA, ProviderConfig(name=ProviderName.OLLAMA))
        catalog = DEFAULT_MODELS if models is None else models
        self._models: dict[str, ModelInfo] = {m.id: m for m in catalog}
        self._active_model = active_model
        self._adapter_factory = adapter_factory
        self._adapters: dict[ProviderName, LLMProvider] = {}

    # Configuration

    @property
    def configs(self) -> list[ProviderConfig]:
        return list(self._configs.values())

    async def get_config(self, provider: ProviderName) -> ProviderConfig:
        """Persisted settings for a provider merged with its secret key.

        Raises:
            ConfigurationError: If the provider is not configured
        """
        config = self._configs.get(provider)
        if config is None:
            raise ConfigurationError(f"provider '{provider.value}' is not configured")
        api_key = await self._secrets.get_api_key(provider.value)
        return config.model_copy(update={"api_key": api_key})

    async def update_provider(self, provider: ProviderName, **changes) -> ProviderConfig:
        """Create or update a provider's non-secret settings."""
        current = self._configs.get(provider) or ProviderConfig(name=provider)
        updated = current.model_copy(update=changes)
        self._configs[provider] = ProviderConfig.model_validate(updated.model_dump())
        await self._drop_adapter(provider)
        return self._configs[provider]

    async def set_api_key(self, provider: ProviderName, api_key: str | None) -> None:
        """Store or remove a provider's key and rebuild its adapter lazily."""
        if api_key:
            await self._secrets.store_api_key(provider.value, api_key)
        else:
            await self._secrets.delete_api_key(provider.value)
        await self._drop_adapter(provider)

    # Model catalog

    @property
    def active_model(self) -> str | None:
        return self._active_model

    def set_active_model(self, model_id: str | None) -> None:
        if model_id is not None and model_id not in self._models:
            raise ConfigurationError(f"unknown model '{model_id}'")
        self._active_model = model_id

    def register_model(self, info: ModelInfo) -> None:
        self._models[info.id] = info

    def get_model(self, model_id: str) -> ModelInfo | None:
        return self._models.get(model_id)

    def model_provider(self, model_id: str) -> ProviderName | None:
        info = self._models.get(model_id)
        return info.provider if info else None

    def list_models(self, provider: ProviderName | None = None) -> list[ModelInfo]:
        return [m for m in self._models.values() if provider is None or m.provider == provider]

    def context_length(self, model_id: str, default: int) -> int:
        """Context hint for a model: provider override, else the caller's default."""
        info = self._models.get(model_id)
        if info is not None:
            config = self._configs.get(info.provider)
            if config is not None and config.context_length:
                return config.context_length
        return default

    async def refresh_local_models(self) -> list[str]:
        """Add models installed in the local daemon to the catalog.

        Returns:
            Installed model names (empty if the daemon is unreachable)
        """
        try:
            adapter = await self.adapter_for(ProviderName.OLLAMA)
            installed = await adapter.list_models()
        except (ConfigurationError, httpx.HTTPError) as e:
            logger.debug("Local daemon unavailable: %s", e)
            return []

        context_length = self._configs[ProviderName.OLLAMA].context_length
        for name in installed:
            if name not in self._models:
                self._models[name] = ModelInfo(
                    id=name,
                    display_name=name,
                    provider=ProviderName.OLLAMA,
                    context_length=context_length,
                    tags=["Discovered"],
                )
        return installed

    # Resolution

    async def adapter_for(self, provider: ProviderName) -> LLMProvider:
        """Adapter for a provider, built on first use and cached.

        Raises:
            ConfigurationError: If the provider is unconfigured, disabled,
                or missing required settings
        """
        cached = self._adapters.get(provider)
        if cached is not None:
            return cached

        config = await self.get_config(provider)
        if not config.enabled:
            raise ConfigurationError(f"provider '{provider.value}' is disabled")
        try:
            adapter = self._adapter_factory(
                provider,
                api_key=config.api_key,
                base_url=config.base_url,
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(str(e)) from e

        # Another task may have built one while we awaited the secret store
        existing = self._adapters.setdefault(provider, adapter)
        if existing is not adapter:
            await adapter.close()
        return existing

    async def _lookup(self, model_id: str) -> ModelInfo | None:
        """Catalog entry for a model, consulting the local daemon for unknown ids."""
        info = self._models.get(model_id)
        if info is None:
            await self.refresh_local_models()
            info = self._models.get(model_id)
        return info

    async def resolve(self, model_id: str) -> ResolvedModel:
        """Find the provider owning a model and return its adapter.

        Raises:
            ConfigurationError: If the model is unknown or its provider unusable
        """
        info = await self._lookup(model_id)
        if info is None:
            raise ConfigurationError(f"unknown model '{model_id}'")
        adapter = await self.adapter_for(info.provider)
        return ResolvedModel(model=info, adapter=adapter)

    async def is_available(self, model_id: str | None) -> bool:
        """Whether a send to this model can be attempted.

        Local daemon: reachable and the model is installed. Cloud: the
        provider has an enabled config entry (the key is not validated).
        """
        if not model_id:
            return False
        info = await self._lookup(model_id)
        if info is None:
            return False

        if info.provider == ProviderName.OLLAMA:
            try:
                adapter = await self.adapter_for(ProviderName.OLLAMA)
            except ConfigurationError:
                return False
            return await adapter.has_model(model_id)

        config = self._configs.get(info.provider)
        return config is not None and config.enabled

    async def _drop_adapter(self, provider: ProviderName) -> None:
        adapter = self._adapters.pop(provider, None)
        if adapter is not None:
            await adapter.close()

    async def close(self) -> None:
        """Close every cached adapter."""
        for provider in list(self._adapters):
            await self._drop_adapter(provider)
