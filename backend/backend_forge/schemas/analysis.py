"""
Requirements Analysis & Tech Stack Schemas
"""

import math
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Level = Literal["low", "medium", "high"]
CommunitySupport = Literal["poor", "fair", "good", "excellent"]
Scale = Literal["small", "medium", "large", "enterprise"]


class CamelModel(BaseModel):
    """Serialized with camelCase keys, the shape the prompts ask the model for"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DataModel(CamelModel):
    """A data model the backend must store"""
    name: str = "Unknown"
    fields: List[str] = Field(default_factory=list)
    relationships: List[str] = Field(default_factory=list)


class APIEndpoint(CamelModel):
    """An HTTP endpoint the backend must expose"""
    method: str = "GET"
    path: str = "/"
    description: str = ""


class AuthenticationRequirement(CamelModel):
    required: bool = False
    type: str = "JWT"


class DatabaseRequirement(CamelModel):
    type: str = "unknown"
    reasoning: str = ""


class AnalysisResult(CamelModel):
    """Structured requirements extracted from a free-text description"""
    functionality: List[str] = Field(default_factory=list)
    data_models: List[DataModel] = Field(default_factory=list)
    api_endpoints: List[APIEndpoint] = Field(default_factory=list)
    authentication: AuthenticationRequirement = Field(default_factory=AuthenticationRequirement)
    database: DatabaseRequirement = Field(default_factory=DatabaseRequirement)
    integrations: List[str] = Field(default_factory=list)
    performance: List[str] = Field(default_factory=list)
    security: List[str] = Field(default_factory=list)
    clarification_questions: List[str] = Field(default_factory=list)


class TechStackPreferences(CamelModel):
    """Team preferences; unset fields express no preference"""
    language: Optional[str] = None
    framework: Optional[str] = None
    database: Optional[str] = None
    additional_tools: Optional[List[str]] = None


class TechStackCandidate(CamelModel):
    """A stack combination before it is scored and ranked"""
    language: str = "JavaScript"
    framework: str = "Express.js"
    database: str = "MongoDB"
    additional_tools: List[str] = Field(default_factory=list)
    pros: List[str] = Field(default_factory=list)
    cons: List[str] = Field(default_factory=list)
    reasoning: str = ""
    complexity: Level = "medium"
    learning_curve: Level = "medium"
    scalability: Level = "medium"
    community_support: CommunitySupport = "good"


class TechStackRecommendation(TechStackCandidate):
    """A ranked, scored candidate"""
    rank: int = 1
    score: float = 0.0

    @field_validator("score")
    @classmethod
    def clamp_score(cls, v: float) -> float:
        if not math.isfinite(v):
            return 0.0
        return max(0.0, min(100.0, v))


# API request/response bodies

class AnalyzeDescriptionRequest(CamelModel):
    description: str = Field(..., min_length=1, max_length=20000)

    @field_validator("description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Description must not be blank")
        return v


class AnalyzeDescriptionResponse(CamelModel):
    analysis: AnalysisResult
    clarification_questions: List[str]


class TechStackRecommendationRequest(CamelModel):
    requirements: AnalysisResult
    preferences: Optional[TechStackPreferences] = None
    scale: Scale = "medium"
    rescore: bool = False


class TechStackRecommendationResponse(CamelModel):
    recommendations: List[TechStackRecommendation]


class ClarificationResponse(CamelModel):
    questions: List[str]


class ScoreRequest(CamelModel):
    candidate: TechStackCandidate
    requirements: AnalysisResult
    preferences: Optional[TechStackPreferences] = None


class ScoreResponse(CamelModel):
    score: float


class CostTrackingResponse(CamelModel):
    total_cost: float
    request_count: int
    token_count: int
    last_updated: datetime


class RateLimitResponse(CamelModel):
    requests_per_minute: int
    tokens_per_minute: int
    current_requests: int
    current_tokens: int
    reset_time: datetime
