"""Unit tests for provider configuration, secrets and model resolution."""
import httpx
import pytest

from fakes import CLOUD_MODEL, LOCAL_MODEL, ScriptedAdapter
from focu.errors import ConfigurationError
from focu.llm import ModelInfo, ProviderName
from focu.registry import (
    ProviderConfig,
    ProviderRegistry,
    load_provider_configs,
    save_provider_configs,
)
from focu.secrets import EnvSecretStore, InMemorySecretStore, env_var_name


class TestSecretStores:
    """Tests for the secret stores."""

    @pytest.mark.asyncio
    async def test_in_memory_roundtrip(self):
        """Test storing, reading and deleting a key."""
        store = InMemorySecretStore()

        assert await store.get_api_key("openai") is None
        await store.store_api_key("openai", "sk-1")
        assert await store.get_api_key("openai") == "sk-1"
        await store.delete_api_key("openai")
        await store.delete_api_key("openai")
        assert await store.get_api_key("openai") is None

    def test_env_var_name(self):
        """Test environment variable naming."""
        assert env_var_name("openai") == "OPENAI_API_KEY"
        assert env_var_name("openai-compatible") == "OPENAI_COMPATIBLE_API_KEY"

    @pytest.mark.asyncio
    async def test_env_store_reads_environment(self, monkeypatch, tmp_path):
        """Test that keys come from the environment until overridden."""
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-env")
        store = EnvSecretStore(dotenv_path=str(tmp_path / "missing.env"))

        assert await store.get_api_key("openrouter") == "sk-env"

        await store.store_api_key("openrouter", "sk-new")
        assert await store.get_api_key("openrouter") == "sk-new"

        await store.delete_api_key("openrouter")
        assert await store.get_api_key("openrouter") is None


class TestProviderConfig:
    """Tests for ProviderConfig persistence."""

    def test_secret_never_serialized(self, tmp_path):
        """Test that saved settings never contain the API key."""
        path = tmp_path / "providers.json"
        config = ProviderConfig(name=ProviderName.OPENAI, api_key="sk-secret", context_length=8192)

        save_provider_configs(path, [config])

        assert "sk-secret" not in path.read_text()
        assert "sk-secret" not in repr(config)
        loaded = load_provider_configs(path)
        assert loaded == [ProviderConfig(name=ProviderName.OPENAI, context_length=8192)]

    def test_missing_file(self, tmp_path):
        """Test that a missing settings file means no configs."""
        assert load_provider_configs(tmp_path / "nope.json") == []

    def test_context_length_minimum(self):
        """Test that absurd context lengths are rejected."""
        with pytest.raises(ValueError):
            ProviderConfig(name=ProviderName.OLLAMA, context_length=10)


class TestProviderRegistry:
    """Tests for ProviderRegistry."""

    def test_local_daemon_always_configured(self):
        """Test that the local daemon config exists without being declared."""
        registry = ProviderRegistry(InMemorySecretStore())
        assert ProviderName.OLLAMA in [c.name for c in registry.configs]

    def test_default_catalog(self):
        """Test that the built-in cloud catalog is loaded by default."""
        registry = ProviderRegistry(InMemorySecretStore())
        assert registry.list_models(ProviderName.OPENAI)

    @pytest.mark.asyncio
    async def test_get_config_merges_secret(self, registry):
        """Test that get_config attaches the stored key."""
        config = await registry.get_config(ProviderName.OPENROUTER)
        assert config.api_key == "sk-test"
        assert all(c.api_key is None for c in registry.configs)

    @pytest.mark.asyncio
    async def test_get_config_unknown_provider(self, registry):
        """Test that an unconfigured provider raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            await registry.get_config(ProviderName.OPENAI)

    @pytest.mark.asyncio
    async def test_resolve_caches_adapter(self, registry, cloud_adapter):
        """Test that the adapter is built once per provider."""
        built = []

        def factory(provider, **config):
            built.append((provider, config))
            return cloud_adapter

        registry._adapter_factory = factory
        first = await registry.resolve(CLOUD_MODEL)
        second = await registry.resolve(CLOUD_MODEL)

        assert first.adapter is second.adapter is cloud_adapter
        assert first.provider == ProviderName.OPENROUTER
        assert len(built) == 1
        assert built[0][1]["api_key"] == "sk-test"

    @pytest.mark.asyncio
    async def test_resolve_unknown_model(self, registry):
        """Test that an unknown model cannot be resolved."""
        with pytest.raises(ConfigurationError, match="unknown model"):
            await registry.resolve("no-such-model")

    @pytest.mark.asyncio
    async def test_resolve_discovers_local_model(self, registry, local_adapter):
        """Test that installed daemon models resolve without registration."""
        local_adapter.installed.add("phi4:latest")

        resolved = await registry.resolve("phi4:latest")

        assert resolved.adapter is local_adapter
        assert "Discovered" in registry.get_model("phi4:latest").tags

    @pytest.mark.asyncio
    async def test_disabled_provider(self, registry):
        """Test that a disabled provider is unavailable and unresolvable."""
        await registry.update_provider(ProviderName.OPENROUTER, enabled=False)

        assert not await registry.is_available(CLOUD_MODEL)
        with pytest.raises(ConfigurationError, match="disabled"):
            await registry.resolve(CLOUD_MODEL)

    @pytest.mark.asyncio
    async def test_factory_errors_become_configuration_errors(self):
        """Test that a provider missing its key cannot be resolved."""
        registry = ProviderRegistry(
            InMemorySecretStore(),
            configs=[ProviderConfig(name=ProviderName.OPENAI)],
            models=[ModelInfo(id="gpt-4o", display_name="GPT-4o", provider=ProviderName.OPENAI)],
        )

        with pytest.raises(ConfigurationError):
            await registry.resolve("gpt-4o")

    @pytest.mark.asyncio
    async def test_availability(self, registry, local_adapter):
        """Test availability for cloud and local models."""
        assert await registry.is_available(CLOUD_MODEL)
        assert await registry.is_available(LOCAL_MODEL)
        assert not await registry.is_available(None)
        assert not await registry.is_available("no-such-model")

        local_adapter.installed.clear()
        assert not await registry.is_available(LOCAL_MODEL)

    @pytest.mark.asyncio
    async def test_set_api_key_rebuilds_adapter(self, registry, cloud_adapter):
        """Test that changing a key closes the cached adapter."""
        await registry.resolve(CLOUD_MODEL)

        await registry.set_api_key(ProviderName.OPENROUTER, "sk-rotated")

        assert cloud_adapter.closed
        assert (await registry.get_config(ProviderName.OPENROUTER)).api_key == "sk-rotated"

    def test_active_model(self, registry):
        """Test selecting the active model."""
        registry.set_active_model(LOCAL_MODEL)
        assert registry.active_model == LOCAL_MODEL

        with pytest.raises(ConfigurationError):
            registry.set_active_model("no-such-model")

    def test_context_length_override(self, registry):
        """Test provider context length overrides the caller default."""
        assert registry.context_length(CLOUD_MODEL, 4096) == 4096
        assert registry.context_length("no-such-model", 2048) == 2048

    @pytest.mark.asyncio
    async def test_refresh_with_daemon_down(self):
        """Test that an unreachable daemon yields no local models."""
        class OfflineDaemon(ScriptedAdapter):
            async def list_models(self):
                raise httpx.ConnectError("connection refused")

        registry = ProviderRegistry(
            InMemorySecretStore(),
            adapter_factory=lambda provider, **config: OfflineDaemon(provider),
        )

        assert await registry.refresh_local_models() == []

    @pytest.mark.asyncio
    async def test_close_closes_adapters(self, registry, cloud_adapter, local_adapter):
        """Test that close() closes every cached adapter."""
        await registry.resolve(CLOUD_MODEL)
        await registry.resolve(LOCAL_MODEL)

        await registry.close()

        assert cloud_adapter.closed
        assert local_adapter.closed
