"""
Base LLM Adapter Interface
The only wire boundary of the AI layer: one chat-style completion call
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional
from enum import Enum


class LLMProviderType(str, Enum):
    """Supported LLM providers"""
    OPENAI = "openai"


@dataclass
class LLMConfig:
    """Configuration for LLM request"""
    model: str
    temperature: float = 0.3
    max_tokens: int = 2000
    timeout: float = 60.0  # seconds


@dataclass
class LLMMessage:
    """A message in the conversation"""
    role: str  # "system", "user", "assistant"
    content: str


@dataclass
class LLMUsage:
    """Token usage information"""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class LLMResponse:
    """Standardized LLM response"""
    content: str
    provider: LLMProviderType
    model: str
    finish_reason: Optional[str] = None

    usage: Optional[LLMUsage] = None

    latency_ms: Optional[int] = None


class BaseLLMAdapter(ABC):
    """
    Abstract base class for LLM adapters.
    The AI client talks to the provider exclusively through this interface.
    """

    def __init__(self, api_key: str, config: Optional[LLMConfig] = None):
        self.api_key = api_key
        self.config = config

    @property
    @abstractmethod
    def provider(self) -> LLMProviderType:
        """Return the provider type"""
        pass

    @abstractmethod
    async def execute_chat(
        self,
        messages: List[LLMMessage],
        config: Optional[LLMConfig] = None,
    ) -> LLMResponse:
        """
        Execute a chat completion.

        Args:
            messages: Ordered role-tagged messages (optional system first, then user)
            config: Model, token and temperature settings for this call

        Returns:
            LLMResponse with standardized response data

        Raises:
            LLMAdapterError: Or one of its subclasses, with ``details`` holding the
                HTTP status and the provider's error code when known
        """
        pass

    async def aclose(self) -> None:
        """Release any pooled connections"""
        pass

    def _calculate_latency(self, start: datetime, end: datetime) -> int:
        """Calculate latency in milliseconds"""
        return int((end - start).total_seconds() * 1000)


class LLMAdapterError(Exception):
    """Base exception for LLM adapter errors"""
    def __init__(self, message: str, provider: LLMProviderType, details: Optional[Dict] = None):
        super().__init__(message)
        self.provider = provider
        self.details = details or {}

    @property
    def status_code(self) -> Optional[int]:
        return self.details.get("status_code")

    @property
    def error_code(self) -> Optional[str]:
        """Provider's machine-readable error code (e.g. ``insufficient_quota``)"""
        return self.details.get("error_code") or self.details.get("error_type")


class LLMRateLimitError(LLMAdapterError):
    """Rate limit exceeded"""
    pass


class LLMAuthenticationError(LLMAdapterError):
    """Authentication failed"""
    pass


class LLMTimeoutError(LLMAdapterError):
    """Request timed out"""
    pass


class LLMInvalidRequestError(LLMAdapterError):
    """Invalid request parameters"""
    pass
