from .base import LLMProvider
from .factory import create_model_adapter
from .models import DEFAULT_MODELS, ChatMessage, LLMResponse, ModelInfo, ProviderName, StreamingResponse
from .providers import OllamaProvider, OpenAICompatibleProvider, OpenAIProvider, OpenRouterProvider

__all__ = [
    "DEFAULT_MODELS",
    "LLMProvider",
    "create_model_adapter",
    "ChatMessage",
    "LLMResponse",
    "ModelInfo",
    "ProviderName",
    "StreamingResponse",
    "OllamaProvider",
    "OpenAICompatibleProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
]
