"""
Configuration management for Backend Forge
Environment-based settings with secure defaults
"""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "backend-forge"
    APP_ENV: str = "development"  # development, staging, production
    DEBUG: bool = False
    API_VERSION: str = "v1"
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # JWT Auth
    JWT_SECRET_KEY: Optional[str] = None  # Protected routes refuse to run without it
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440

    # LLM provider (the AI client refuses to initialize without a key)
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_API_BASE: str = "https://api.openai.com/v1"
    OPENAI_MODEL: str = "gpt-4-turbo"

    # LLM Execution Settings
    OPENAI_MAX_TOKENS: int = 2000
    OPENAI_TEMPERATURE: float = 0.3
    OPENAI_TIMEOUT: float = 60.0  # seconds
    OPENAI_MAX_RETRIES: int = 3
    OPENAI_RETRY_DELAY: float = 1.0  # seconds, doubled on every retry

    # Provider budget enforced client-side
    AI_REQUESTS_PER_MINUTE: int = 60
    AI_TOKENS_PER_MINUTE: int = 150000
    AI_TOKEN_ESTIMATOR: str = "chars"  # chars, tiktoken

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    @field_validator("AI_TOKEN_ESTIMATOR")
    @classmethod
    def check_token_estimator(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("chars", "tiktoken"):
            raise ValueError("AI_TOKEN_ESTIMATOR must be 'chars' or 'tiktoken'")
        return v

    @field_validator("OPENAI_MAX_RETRIES")
    @classmethod
    def check_max_retries(cls, v: int) -> int:
        if v < 1:
            raise ValueError("OPENAI_MAX_RETRIES must be at least 1")
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings loader"""
    return Settings()


# Per 1K token pricing (USD) for cost tracking. Unlisted models cost nothing.
MODEL_TOKEN_COSTS = {
    "gpt-4": {"input": 0.03, "output": 0.06},
    "gpt-4-turbo": {"input": 0.01, "output": 0.03},
    "gpt-3.5-turbo": {"input": 0.001, "output": 0.002},
}
