from .ollama import OllamaProvider
from .openai import OpenAIProvider
from .openai_compatible import OpenAICompatibleProvider
from .openrouter import OpenRouterProvider

__all__ = ["OllamaProvider", "OpenAICompatibleProvider", "OpenAIProvider", "OpenRouterProvider"]
