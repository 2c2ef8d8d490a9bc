"""
AI Service Client
Mediates every provider call under a per-minute request/token budget,
with retry on transient failures and cumulative cost accounting.
"""

import asyncio
import dataclasses
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Mapping, Optional

from backend_forge.adapters.llm import BaseLLMAdapter, LLMConfig, LLMMessage, get_adapter
from backend_forge.config import MODEL_TOKEN_COSTS
from backend_forge.utils.security import mask_api_key

from .errors import AIConfigurationError, AIErrorKind, AIServiceError, classify_error
from .prompts import get_prompt_template, render_prompt
from .tokens import CharacterRatioEstimator, TokenEstimator
from .types import (
    AIRequest,
    AIResponse,
    AIServiceConfig,
    AIUsage,
    CostTrackingInfo,
    GenerationTask,
    RateLimitInfo,
)

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW = timedelta(minutes=1)

HEALTH_CHECK_PROMPT = 'Hello, please respond with "OK"'


def _validate_config(config: AIServiceConfig) -> None:
    if config.max_retries < 1:
        raise AIConfigurationError("max_retries must be at least 1")
    if config.requests_per_minute < 1 or config.tokens_per_minute < 1:
        raise AIConfigurationError("requests_per_minute and tokens_per_minute must be at least 1")


class AIServiceClient:
    """
    Client for the LLM provider.

    Rate limiting uses a fixed one-minute window that is reset wholesale once
    the clock passes ``reset_time``. Budget is reserved before the provider
    call and is kept even when the call fails.
    """

    # Token costs per 1K tokens by model
    TOKEN_COSTS: Mapping[str, Dict[str, float]] = MODEL_TOKEN_COSTS

    def __init__(
        self,
        config: AIServiceConfig,
        adapter: Optional[BaseLLMAdapter] = None,
        token_estimator: Optional[TokenEstimator] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        _validate_config(config)
        self.config = config
        self.adapter = adapter or get_adapter("openai", api_key=config.api_key, api_base=config.api_base)
        self.token_estimator = token_estimator or CharacterRatioEstimator()
        self._clock = clock
        self._sleep = asyncio.sleep
        self._rate_lock = asyncio.Lock()

        now = self._clock()
        self._rate_limit = RateLimitInfo(
            requests_per_minute=config.requests_per_minute,
            tokens_per_minute=config.tokens_per_minute,
            reset_time=now + RATE_LIMIT_WINDOW,
        )
        self._cost_tracking = CostTrackingInfo(last_updated=now)

        logger.info(
            "AI client ready: model=%s key=%s max_retries=%d",
            config.model, mask_api_key(config.api_key), config.max_retries,
        )

    async def generate_with_template(
        self,
        task: GenerationTask,
        variables: Mapping[str, str],
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
    ) -> AIResponse:
        """Render the task's template and generate; explicit overrides beat template defaults"""
        template = get_prompt_template(task)
        prompt = render_prompt(template, variables)

        request = AIRequest(
            prompt=prompt,
            system_message=template.system_message,
            max_tokens=max_tokens if max_tokens is not None else template.max_tokens,
            temperature=temperature if temperature is not None else template.temperature,
        )
        return await self.generate(request, timeout=timeout)

    async def generate(self, request: AIRequest, timeout: Optional[float] = None) -> AIResponse:
        """
        Generate a completion.

        Args:
            request: Rendered prompt and sampling settings
            timeout: Optional overall deadline in seconds covering rate-limit
                waits, every attempt and the backoff between them

        Raises:
            AIServiceError: The most recent classified error once retries are
                exhausted or a non-retryable error occurs, or a TIMEOUT error
                when the deadline expires
        """
        if timeout is None:
            return await self._generate(request)

        try:
            return await asyncio.wait_for(self._generate(request), timeout)
        except asyncio.TimeoutError:
            logger.error("AI request cancelled after %.1fs deadline", timeout)
            raise AIServiceError(
                f"AI request deadline of {timeout}s exceeded",
                AIErrorKind.TIMEOUT,
                retryable=False,
            ) from None

    async def _generate(self, request: AIRequest) -> AIResponse:
        await self._enforce_rate_limit(request)

        max_retries = self.config.max_retries
        last_error: Optional[AIServiceError] = None

        for attempt in range(1, max_retries + 1):
            try:
                response = await self._make_request(request)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = classify_error(e, attempt, max_retries)

                if not last_error.retryable or attempt == max_retries:
                    logger.error(
                        "AI request failed: kind=%s attempt=%d/%d: %s",
                        last_error.code, attempt, max_retries, last_error.message,
                    )
                    if last_error is e:
                        raise
                    raise last_error from e

                delay = self.config.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    "AI request failed: kind=%s attempt=%d/%d, retrying in %.2fs",
                    last_error.code, attempt, max_retries, delay,
                )
                await self._sleep(delay)
                continue

            self._update_cost_tracking(response)
            return response

        raise last_error

    async def _make_request(self, request: AIRequest) -> AIResponse:
        messages = []
        if request.system_message:
            messages.append(LLMMessage(role="system", content=request.system_message))
        messages.append(LLMMessage(role="user", content=request.prompt))

        llm_config = LLMConfig(
            model=self.config.model,
            max_tokens=request.max_tokens if request.max_tokens is not None else self.config.max_tokens,
            temperature=request.temperature if request.temperature is not None else self.config.temperature,
            timeout=self.config.timeout,
        )

        result = await self.adapter.execute_chat(messages, llm_config)

        usage = result.usage
        response = AIResponse(
            content=result.content,
            usage=AIUsage(
                prompt_tokens=usage.prompt_tokens if usage else 0,
                completion_tokens=usage.completion_tokens if usage else 0,
                total_tokens=usage.total_tokens if usage else 0,
            ),
            model=result.model,
            finish_reason=result.finish_reason or "unknown",
        )
        logger.debug(
            "AI response: model=%s finish=%s tokens=%d latency=%sms",
            response.model, response.finish_reason, response.usage.total_tokens, result.latency_ms,
        )
        return response

    def estimate_tokens(self, request: AIRequest) -> int:
        """Estimated token footprint of prompt plus system message"""
        return self.token_estimator.estimate(request.prompt + (request.system_message or ""))

    async def _enforce_rate_limit(self, request: AIRequest) -> None:
        estimated_tokens = self.estimate_tokens(request)

        async with self._rate_lock:
            info = self._rate_limit
            while True:
                now = self._clock()
                if now >= info.reset_time:
                    info.current_requests = 0
                    info.current_tokens = 0
                    info.reset_time = now + RATE_LIMIT_WINDOW

                over_requests = info.current_requests >= info.requests_per_minute
                # An empty window always admits one request, however large
                over_tokens = (
                    info.current_requests > 0
                    and info.current_tokens + estimated_tokens > info.tokens_per_minute
                )
                if not (over_requests or over_tokens):
                    break

                wait = (info.reset_time - now).total_seconds()
                if wait <= 0:
                    continue
                logger.warning(
                    "AI rate limit window full (%d requests, %d tokens), waiting %.1fs",
                    info.current_requests, info.current_tokens, wait,
                )
                await self._sleep(wait)

            info.current_requests += 1
            info.current_tokens += estimated_tokens

    def _update_cost_tracking(self, response: AIResponse) -> None:
        model_costs = self.TOKEN_COSTS.get(self.config.model)
        if model_costs:
            input_cost = (response.usage.prompt_tokens / 1000) * model_costs["input"]
            output_cost = (response.usage.completion_tokens / 1000) * model_costs["output"]
            self._cost_tracking.total_cost += input_cost + output_cost

        self._cost_tracking.request_count += 1
        self._cost_tracking.token_count += response.usage.total_tokens
        self._cost_tracking.last_updated = self._clock()

    # Monitoring

    def get_rate_limit_info(self) -> RateLimitInfo:
        return dataclasses.replace(self._rate_limit)

    def get_cost_tracking(self) -> CostTrackingInfo:
        return dataclasses.replace(self._cost_tracking)

    def reset_cost_tracking(self) -> None:
        """Zero the cost counters; the rate-limit window is left alone"""
        self._cost_tracking = CostTrackingInfo(last_updated=self._clock())

    async def health_check(self) -> bool:
        """True when the provider answers a minimal prompt with an acknowledgement"""
        try:
            response = await self.generate(
                AIRequest(prompt=HEALTH_CHECK_PROMPT, max_tokens=10, temperature=0),
                timeout=self.config.timeout,
            )
            return "ok" in response.content.strip().lower()
        except Exception as e:
            logger.warning("AI health check failed: %s", e)
            return False

    async def aclose(self) -> None:
        await self.adapter.aclose()
