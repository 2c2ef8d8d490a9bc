"""Shared fixtures for the AI layer tests."""

import json
from datetime import datetime, timedelta
from typing import Any, List, Optional, Union

import pytest

from backend_forge.adapters.llm import (
    BaseLLMAdapter,
    LLMConfig,
    LLMMessage,
    LLMProviderType,
    LLMResponse,
    LLMUsage,
)
from backend_forge.config import get_settings
from backend_forge.services.ai import AIService, AIServiceClient, AIServiceConfig


class FakeAdapter(BaseLLMAdapter):
    """In-memory provider replaying queued replies or exceptions."""

    def __init__(self, replies: Optional[List[Union[str, BaseException, LLMResponse]]] = None):
        super().__init__(api_key="sk-test-key-123456")
        self.replies = list(replies or [])
        self.calls: List[tuple] = []
        self.default_reply: Union[str, BaseException, None] = None
        self.closed = False

    @property
    def provider(self) -> LLMProviderType:
        return LLMProviderType.OPENAI

    def queue(self, *replies: Union[str, BaseException, LLMResponse]) -> None:
        self.replies.extend(replies)

    async def execute_chat(self, messages: List[LLMMessage], config: Optional[LLMConfig] = None) -> LLMResponse:
        self.calls.append((list(messages), config))
        reply = self.replies.pop(0) if self.replies else self.default_reply
        if reply is None:
            raise AssertionError("FakeAdapter has no reply queued")
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, LLMResponse):
            return reply
        return make_llm_response(reply, model=config.model if config else "gpt-4-turbo")

    async def aclose(self) -> None:
        self.closed = True


def make_llm_response(
    content: str,
    model: str = "gpt-4-turbo",
    prompt_tokens: int = 100,
    completion_tokens: int = 50,
) -> LLMResponse:
    return LLMResponse(
        content=content,
        provider=LLMProviderType.OPENAI,
        model=model,
        finish_reason="stop",
        usage=LLMUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
    )


class FakeClock:
    """Controllable clock whose sleep advances time instead of waiting."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)


def build_client(
    adapter: BaseLLMAdapter,
    clock: Optional[FakeClock] = None,
    **overrides: Any,
) -> AIServiceClient:
    clock = clock or FakeClock()
    config = AIServiceConfig(api_key="sk-test-key-123456", **overrides)
    client = AIServiceClient(config, adapter=adapter, clock=clock)
    client._sleep = clock.sleep
    return client


def as_reply(payload: Any, prefix: str = "", suffix: str = "") -> str:
    return f"{prefix}{json.dumps(payload)}{suffix}"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Fresh settings and no shared AI client in every test."""
    for name in ("OPENAI_API_KEY", "OPENAI_MODEL", "JWT_SECRET_KEY", "AI_TOKEN_ESTIMATOR"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)  # no .env file
    get_settings.cache_clear()
    AIService.reset()
    yield
    get_settings.cache_clear()
    AIService.reset()


@pytest.fixture
def adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client(adapter, clock) -> AIServiceClient:
    return build_client(adapter, clock)
