"""
AI Layer Errors
Classified provider failures drive the retry policy; parsing failures never retry
"""

from enum import Enum
from typing import Optional

from backend_forge.adapters.llm import (
    LLMAdapterError,
    LLMAuthenticationError,
    LLMRateLimitError,
    LLMTimeoutError,
)


class AIErrorKind(str, Enum):
    """Failure classes reported by the AI client"""
    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"
    SERVER_ERROR = "SERVER_ERROR"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    INVALID_API_KEY = "INVALID_API_KEY"
    MODEL_NOT_FOUND = "MODEL_NOT_FOUND"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class AIServiceError(Exception):
    """A provider failure tagged with a kind and a retryable flag"""

    def __init__(
        self,
        message: str,
        kind: AIErrorKind = AIErrorKind.UNKNOWN_ERROR,
        retryable: bool = False,
        status_code: Optional[int] = None,
        rate_limited: bool = False,
        cost_exceeded: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.retryable = retryable
        self.status_code = status_code
        self.rate_limited = rate_limited
        self.cost_exceeded = cost_exceeded

    @property
    def code(self) -> str:
        return self.kind.value

    def __repr__(self) -> str:
        return f"AIServiceError(kind={self.kind.value}, retryable={self.retryable}, message={self.message!r})"


class AIConfigurationError(Exception):
    """The AI layer cannot be set up (missing key, missing template)"""
    pass


class AnalysisParsingError(Exception):
    """The model's reply held no JSON object, or the object was not valid JSON"""
    pass


class AnalysisError(Exception):
    """Task-level failure of the analysis service; the cause is chained"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause

    @property
    def is_provider_failure(self) -> bool:
        return isinstance(self.cause, AIServiceError)

    @property
    def is_parsing_failure(self) -> bool:
        return isinstance(self.cause, AnalysisParsingError)


# Provider error codes, checked before HTTP status
_QUOTA_CODES = {"insufficient_quota", "billing_hard_limit_reached"}
_INVALID_KEY_CODES = {"invalid_api_key", "invalid_authentication"}
_MODEL_CODES = {"model_not_found"}
_RATE_LIMIT_CODES = {"rate_limit_exceeded"}
_SERVER_CODES = {"server_error"}


def classify_error(error: BaseException, attempt: int, max_retries: int) -> AIServiceError:
    """
    Classify a failed provider call.

    Structured information from the adapter (provider error code, HTTP status,
    exception class) is used first; substring matching on the message is the
    last resort for errors that carry nothing else.

    Args:
        error: Exception raised by the adapter (or anything below it)
        attempt: 1-based attempt number that failed
        max_retries: Configured attempt ceiling

    Returns:
        AIServiceError carrying the original message
    """
    if isinstance(error, AIServiceError):
        return error

    message = str(error) or type(error).__name__
    status_code = None
    error_code = None
    if isinstance(error, LLMAdapterError):
        status_code = error.status_code
        error_code = (error.error_code or "").lower() or None

    def build(kind: AIErrorKind, retryable: bool, **flags) -> AIServiceError:
        return AIServiceError(message, kind, retryable, status_code=status_code, **flags)

    # Provider error code
    if error_code in _QUOTA_CODES:
        return build(AIErrorKind.QUOTA_EXCEEDED, False, cost_exceeded=True)
    if error_code in _INVALID_KEY_CODES:
        return build(AIErrorKind.INVALID_API_KEY, False)
    if error_code in _MODEL_CODES:
        return build(AIErrorKind.MODEL_NOT_FOUND, False)
    if error_code in _RATE_LIMIT_CODES:
        return build(AIErrorKind.RATE_LIMITED, True, rate_limited=True)
    if error_code in _SERVER_CODES:
        return build(AIErrorKind.SERVER_ERROR, True)

    # Exception class and HTTP status
    if isinstance(error, LLMTimeoutError):
        return build(AIErrorKind.TIMEOUT, attempt < max_retries)
    if isinstance(error, LLMRateLimitError) or status_code == 429:
        return build(AIErrorKind.RATE_LIMITED, True, rate_limited=True)
    if isinstance(error, LLMAuthenticationError) or status_code == 401:
        return build(AIErrorKind.INVALID_API_KEY, False)
    if status_code == 404:
        return build(AIErrorKind.MODEL_NOT_FOUND, False)
    if status_code is not None and status_code >= 500:
        return build(AIErrorKind.SERVER_ERROR, True)

    # Message text
    text = message.lower()
    if "rate limit" in text:
        return build(AIErrorKind.RATE_LIMITED, True, rate_limited=True)
    if "timeout" in text or "timed out" in text:
        return build(AIErrorKind.TIMEOUT, attempt < max_retries)
    if "insufficient_quota" in text:
        return build(AIErrorKind.QUOTA_EXCEEDED, False, cost_exceeded=True)
    if "invalid_api_key" in text:
        return build(AIErrorKind.INVALID_API_KEY, False)
    if "model_not_found" in text:
        return build(AIErrorKind.MODEL_NOT_FOUND, False)
    if "server_error" in text or "502" in text or "503" in text:
        return build(AIErrorKind.SERVER_ERROR, True)

    return build(AIErrorKind.UNKNOWN_ERROR, False)
