from typing import Any

from ..models import ProviderName
from .openai import OpenAIProvider

# The OpenAI SDK refuses an empty key; self-hosted endpoints usually ignore it
_PLACEHOLDER_KEY = "not-needed"


class OpenAICompatibleProvider(OpenAIProvider):
    """Adapter for any endpoint implementing the OpenAI chat API.

    Hidden design decisions:
    - Caller-supplied base URL (LM Studio, vLLM, llama.cpp server, ...)
    - Optional authentication
    """

    _provider = ProviderName.OPENAI_COMPATIBLE

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        **client_kwargs: Any
    ):
        """Initialize adapter.

        Args:
            base_url: Endpoint root, e.g. http://localhost:1234/v1 (required)
            api_key: Key, if the endpoint requires one
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        if not base_url:
            raise ValueError("OpenAI-compatible provider requires a base_url")
        super().__init__(
            api_key=api_key or _PLACEHOLDER_KEY,
            base_url=base_url.rstrip("/"),
            **client_kwargs
        )
