from typing import Any

from ...config import OPENROUTER_BASE_URL
from ..models import ProviderName
from .openai import OpenAIProvider

APP_TITLE = "Focu"
APP_URL = "https://focu.app"


class OpenRouterProvider(OpenAIProvider):
    """OpenRouter aggregator adapter using its OpenAI-compatible API.

    Hidden design decisions:
    - Fixed aggregator base URL
    - Attribution headers OpenRouter uses for app rankings
    - Model ids are namespaced by upstream vendor ("google/gemini-2.0-flash-001")
    """

    _provider = ProviderName.OPENROUTER

    def __init__(
        self,
        api_key: str,
        base_url: str = OPENROUTER_BASE_URL,
        **client_kwargs: Any
    ):
        """Initialize OpenRouter adapter.

        Args:
            api_key: OpenRouter API key
            base_url: OpenRouter API base URL
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        headers = {"HTTP-Referer": APP_URL, "X-Title": APP_TITLE}
        headers.update(client_kwargs.pop("default_headers", None) or {})
        super().__init__(
            api_key=api_key,
            base_url=base_url,
            default_headers=headers,
            **client_kwargs
        )
