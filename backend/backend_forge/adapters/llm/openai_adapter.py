"""
OpenAI (ChatGPT) Adapter
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from .base import (
    BaseLLMAdapter,
    LLMConfig,
    LLMMessage,
    LLMResponse,
    LLMUsage,
    LLMProviderType,
    LLMAdapterError,
    LLMRateLimitError,
    LLMAuthenticationError,
    LLMTimeoutError,
    LLMInvalidRequestError,
)


class OpenAIAdapter(BaseLLMAdapter):
    """Adapter for the OpenAI chat completions API"""

    API_BASE = "https://api.openai.com/v1"

    def __init__(
        self,
        api_key: str,
        config: Optional[LLMConfig] = None,
        api_base: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_key, config)
        self.api_base = (api_base or self.API_BASE).rstrip("/")
        self._transport = transport

    @property
    def provider(self) -> LLMProviderType:
        return LLMProviderType.OPENAI

    async def execute_chat(
        self,
        messages: List[LLMMessage],
        config: Optional[LLMConfig] = None,
    ) -> LLMResponse:
        """Execute a chat conversation"""
        cfg = config or self.config
        if cfg is None:
            raise LLMInvalidRequestError("No model configuration supplied", self.provider)
        request_time = datetime.utcnow()

        payload = {
            "model": cfg.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": cfg.temperature,
            "max_tokens": cfg.max_tokens,
        }

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=cfg.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.api_base}/chat/completions",
                    json=payload,
                    headers=headers,
                )
        except httpx.TimeoutException:
            raise LLMTimeoutError(
                f"Request timed out after {cfg.timeout}s",
                self.provider,
            )
        except httpx.RequestError as e:
            raise LLMAdapterError(
                f"Request failed: {str(e)}",
                self.provider,
            )

        response_time = datetime.utcnow()

        if response.status_code != 200:
            raise self._error_from_response(response)

        data = response.json()
        choices = data.get("choices") or []
        choice = choices[0] if choices else {}
        content = (choice.get("message") or {}).get("content")
        if not content:
            raise LLMAdapterError(
                "No response content received from AI service",
                self.provider,
                {"status_code": response.status_code},
            )

        usage_data = data.get("usage") or {}
        usage = LLMUsage(
            prompt_tokens=usage_data.get("prompt_tokens", 0),
            completion_tokens=usage_data.get("completion_tokens", 0),
            total_tokens=usage_data.get("total_tokens", 0),
        )

        return LLMResponse(
            content=content,
            provider=self.provider,
            model=data.get("model") or cfg.model,
            finish_reason=choice.get("finish_reason") or "unknown",
            usage=usage,
            latency_ms=self._calculate_latency(request_time, response_time),
        )

    def _error_from_response(self, response: httpx.Response) -> LLMAdapterError:
        """Map a non-200 response to the adapter exception hierarchy"""
        details: Dict[str, Any] = {"status_code": response.status_code}
        message = f"API error: {response.text}"

        try:
            body = response.json()
        except ValueError:
            body = None
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            details["error_code"] = error.get("code")
            details["error_type"] = error.get("type")
            if error.get("message"):
                message = error["message"]

        if response.status_code == 401:
            return LLMAuthenticationError(message, self.provider, details)
        if response.status_code == 429:
            return LLMRateLimitError(message, self.provider, details)
        if response.status_code in (400, 404, 422):
            return LLMInvalidRequestError(message, self.provider, details)
        return LLMAdapterError(message, self.provider, details)
