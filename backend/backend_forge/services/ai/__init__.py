"""
AI orchestration layer: prompt templates, the rate-limited provider client
and the description analysis service
"""

from .types import (
    AIRequest,
    AIResponse,
    AIServiceConfig,
    AIUsage,
    CostTrackingInfo,
    GenerationTask,
    PromptTemplate,
    RateLimitInfo,
)
from .errors import (
    AIConfigurationError,
    AIErrorKind,
    AIServiceError,
    AnalysisError,
    AnalysisParsingError,
    classify_error,
)
from .prompts import (
    PROMPT_TEMPLATES,
    find_unrendered_placeholders,
    get_prompt_template,
    render_prompt,
)
from .tokens import CharacterRatioEstimator, TiktokenEstimator, TokenEstimator
from .client import AIServiceClient
from .service import AIService, get_ai_service
from .analysis import DescriptionAnalysisService, get_analysis_service

__all__ = [
    # Types
    "AIRequest",
    "AIResponse",
    "AIServiceConfig",
    "AIUsage",
    "CostTrackingInfo",
    "GenerationTask",
    "PromptTemplate",
    "RateLimitInfo",
    # Errors
    "AIConfigurationError",
    "AIErrorKind",
    "AIServiceError",
    "AnalysisError",
    "AnalysisParsingError",
    "classify_error",
    # Prompts
    "PROMPT_TEMPLATES",
    "find_unrendered_placeholders",
    "get_prompt_template",
    "render_prompt",
    # Token estimation
    "CharacterRatioEstimator",
    "TiktokenEstimator",
    "TokenEstimator",
    # Client & services
    "AIServiceClient",
    "AIService",
    "get_ai_service",
    "DescriptionAnalysisService",
    "get_analysis_service",
]
