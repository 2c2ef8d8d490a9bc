"""
Process-wide AI client holder
"""

import dataclasses
import logging
from typing import Any, Optional

from backend_forge.config import get_settings

from .client import AIServiceClient
from .errors import AIConfigurationError
from .tokens import get_token_estimator
from .types import AIServiceConfig

logger = logging.getLogger(__name__)


class AIService:
    """
    Owns the single AIServiceClient of the process so that every caller shares
    one rate-limit window and one cost ledger.
    """

    _instance: Optional[AIServiceClient] = None
    _config: Optional[AIServiceConfig] = None

    @classmethod
    def initialize(cls, **overrides: Any) -> AIServiceClient:
        """
        Build the client from settings, with keyword overrides applied on top.

        A previous client is replaced without being closed; use ``reinitialize``
        from async code to close it first. On failure the previous client stays.

        Raises:
            AIConfigurationError: If no API key is configured or the limits are invalid
        """
        settings = get_settings()
        config = AIServiceConfig(
            api_key=settings.OPENAI_API_KEY or "",
            model=settings.OPENAI_MODEL,
            max_tokens=settings.OPENAI_MAX_TOKENS,
            temperature=settings.OPENAI_TEMPERATURE,
            timeout=settings.OPENAI_TIMEOUT,
            max_retries=settings.OPENAI_MAX_RETRIES,
            retry_delay=settings.OPENAI_RETRY_DELAY,
            requests_per_minute=settings.AI_REQUESTS_PER_MINUTE,
            tokens_per_minute=settings.AI_TOKENS_PER_MINUTE,
            api_base=settings.OPENAI_API_BASE,
        )
        adapter = overrides.pop("adapter", None)
        config = dataclasses.replace(config, **overrides)

        if not config.api_key:
            raise AIConfigurationError(
                "OpenAI API key is required. Set OPENAI_API_KEY environment variable."
            )

        client = AIServiceClient(
            config,
            adapter=adapter,
            token_estimator=get_token_estimator(settings.AI_TOKEN_ESTIMATOR, config.model),
        )
        if cls._instance is not None:
            logger.warning("Replacing the shared AI client without closing the previous one")
        cls._config = config
        cls._instance = client
        return client

    @classmethod
    async def reinitialize(cls, **overrides: Any) -> AIServiceClient:
        """Close the current client, then build a new one"""
        previous = cls._instance
        client = cls.initialize(**overrides)
        if previous is not None and previous is not client:
            await previous.aclose()
        return client

    @classmethod
    def get_instance(cls) -> AIServiceClient:
        if cls._instance is None:
            cls.initialize()
        return cls._instance

    @classmethod
    def get_config(cls) -> Optional[AIServiceConfig]:
        return cls._config

    @classmethod
    def reset(cls) -> None:
        cls._instance = None
        cls._config = None

    @classmethod
    async def shutdown(cls) -> None:
        """Close the provider connection and drop the client"""
        if cls._instance is not None:
            await cls._instance.aclose()
        cls.reset()


def get_ai_service() -> AIServiceClient:
    """FastAPI dependency / accessor for the shared client"""
    return AIService.get_instance()
