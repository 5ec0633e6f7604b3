from typing import Any

from .base import LLMProvider
from .models import ProviderName
from .providers import OllamaProvider, OpenAICompatibleProvider, OpenAIProvider, OpenRouterProvider


def create_model_adapter(provider: str | ProviderName, **config: Any) -> LLMProvider:
    """Create a model adapter instance.

    This factory function hides the instantiation logic for different providers.

    Args:
        provider: Provider type ('ollama', 'openai', 'openai-compatible', 'openrouter')
        **config: Provider-specific configuration
            For Ollama:
                - base_url: str (default: 'http://localhost:11434')
            For OpenAI:
                - api_key: str (required)
                - base_url: str (default: 'https://api.openai.com/v1')
            For OpenAI-compatible:
                - base_url: str (required)
                - api_key: str | None
            For OpenRouter:
                - api_key: str (required)

    Returns:
        Initialized adapter

    Raises:
        ValueError: If provider type is not supported
        TypeError: If required configuration is missing

    Examples:
        >>> adapter = create_model_adapter("ollama")

        >>> adapter = create_model_adapter(
        ...     "openai-compatible",
        ...     base_url="http://localhost:1234/v1"
        ... )
    """
    provider_lower = provider.value if isinstance(provider, ProviderName) else provider.lower()

    if provider_lower == ProviderName.OLLAMA.value:
        config.pop("api_key", None)
        if not config.get("base_url"):
            config.pop("base_url", None)
        return OllamaProvider(**config)

    if provider_lower == ProviderName.OPENAI.value:
        if not config.get("api_key"):
            raise TypeError("OpenAI provider requires 'api_key' in config")
        if not config.get("base_url"):
            config.pop("base_url", None)
        return OpenAIProvider(**config)

    if provider_lower == ProviderName.OPENAI_COMPATIBLE.value:
        if not config.get("base_url"):
            raise TypeError("OpenAI-compatible provider requires 'base_url' in config")
        return OpenAICompatibleProvider(**config)

    if provider_lower == ProviderName.OPENROUTER.value:
        if not config.get("api_key"):
            raise TypeError("OpenRouter provider requires 'api_key' in config")
        if not config.get("base_url"):
            config.pop("base_url", None)
        return OpenRouterProvider(**config)

    raise ValueError(
        f"Unsupported provider: {provider}. "
        f"Supported providers: 'ollama', 'openai', 'openai-compatible', 'openrouter'"
    )
