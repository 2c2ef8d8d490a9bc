"""
LLM Adapters - Provider wire boundary for the AI layer
"""

from typing import Optional

import httpx

from .base import (
    BaseLLMAdapter,
    LLMConfig,
    LLMMessage,
    LLMResponse,
    LLMUsage,
    LLMProviderType,
    LLMAdapterError,
    LLMRateLimitError,
    LLMAuthenticationError,
    LLMTimeoutError,
    LLMInvalidRequestError,
)
from .openai_adapter import OpenAIAdapter


def get_adapter(
    provider: str,
    api_key: str,
    config: Optional[LLMConfig] = None,
    api_base: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BaseLLMAdapter:
    """
    Factory function to get the appropriate LLM adapter.

    Args:
        provider: Provider name, currently only "openai"
        api_key: Provider API key
        config: Optional default LLM configuration
        api_base: Optional base URL override (proxies, compatible gateways)
        transport: Optional httpx transport, used by tests

    Raises:
        ValueError: If provider is not supported
    """
    adapters = {
        "openai": OpenAIAdapter,
    }

    if provider not in adapters:
        raise ValueError(f"Unsupported provider: {provider}. Must be one of {list(adapters.keys())}")

    return adapters[provider](api_key=api_key, config=config, api_base=api_base, transport=transport)


__all__ = [
    # Factory
    "get_adapter",
    # Base classes
    "BaseLLMAdapter",
    "LLMConfig",
    "LLMMessage",
    "LLMResponse",
    "LLMUsage",
    "LLMProviderType",
    # Exceptions
    "LLMAdapterError",
    "LLMRateLimitError",
    "LLMAuthenticationError",
    "LLMTimeoutError",
    "LLMInvalidRequestError",
    # Adapters
    "OpenAIAdapter",
]
