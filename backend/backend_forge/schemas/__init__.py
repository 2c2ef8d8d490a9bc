"""
Pydantic Schemas for API Request/Response validation
"""

from .analysis import (
    DataModel,
    APIEndpoint,
    AuthenticationRequirement,
    DatabaseRequirement,
    AnalysisResult,
    TechStackPreferences,
    TechStackCandidate,
    TechStackRecommendation,
    AnalyzeDescriptionRequest,
    AnalyzeDescriptionResponse,
    TechStackRecommendationRequest,
    TechStackRecommendationResponse,
    ClarificationResponse,
    ScoreRequest,
    ScoreResponse,
    CostTrackingResponse,
    RateLimitResponse,
)

__all__ = [
    # Requirements
    "DataModel",
    "APIEndpoint",
    "AuthenticationRequirement",
    "DatabaseRequirement",
    "AnalysisResult",
    # Tech stack
    "TechStackPreferences",
    "TechStackCandidate",
    "TechStackRecommendation",
    # Requests / responses
    "AnalyzeDescriptionRequest",
    "AnalyzeDescriptionResponse",
    "TechStackRecommendationRequest",
    "TechStackRecommendationResponse",
    "ClarificationResponse",
    "ScoreRequest",
    "ScoreResponse",
    "CostTrackingResponse",
    "RateLimitResponse",
]
