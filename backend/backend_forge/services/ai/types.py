"""
AI Layer Types
Value objects shared by the prompt registry, the AI client and the analysis service
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class GenerationTask(str, Enum):
    """Operation kinds, one prompt template each"""
    ANALYZE_DESCRIPTION = "analyze_description"
    RECOMMEND_TECH_STACK = "recommend_tech_stack"
    GENERATE_CODE = "generate_code"
    GENERATE_TESTS = "generate_tests"
    FIX_ISSUES = "fix_issues"
    GENERATE_DOCUMENTATION = "generate_documentation"


@dataclass(frozen=True)
class PromptTemplate:
    """A named system + user message pair with ``{{variable}}`` placeholders"""
    id: str
    name: str
    description: str
    system_message: str
    user_prompt_template: str
    variables: Tuple[str, ...]
    max_tokens: int
    temperature: float


@dataclass
class AIRequest:
    """A rendered prompt ready to send"""
    prompt: str
    system_message: Optional[str] = None
    max_tokens: Optional[int] = None  # None -> client default
    temperature: Optional[float] = None  # None -> client default


@dataclass
class AIUsage:
    """Token usage of one completion"""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class AIResponse:
    """Result of one LLM call"""
    content: str
    usage: AIUsage
    model: str
    finish_reason: str


@dataclass
class RateLimitInfo:
    """Per-minute request/token window, reset wholesale at ``reset_time``"""
    requests_per_minute: int
    tokens_per_minute: int
    current_requests: int = 0
    current_tokens: int = 0
    reset_time: datetime = field(default_factory=datetime.utcnow)


@dataclass
class CostTrackingInfo:
    """Cumulative spend since client start or the last explicit reset"""
    total_cost: float = 0.0
    request_count: int = 0
    token_count: int = 0
    last_updated: datetime = field(default_factory=datetime.utcnow)


@dataclass
class AIServiceConfig:
    """Resolved client configuration"""
    api_key: str = field(repr=False)
    model: str = "gpt-4-turbo"
    max_tokens: int = 2000
    temperature: float = 0.3
    timeout: float = 60.0  # seconds
    max_retries: int = 3
    retry_delay: float = 1.0  # seconds
    requests_per_minute: int = 60
    tokens_per_minute: int = 150000
    api_base: Optional[str] = None
