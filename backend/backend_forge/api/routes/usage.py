"""
AI Usage & Rate Limit Routes
"""

from fastapi import APIRouter, Depends

from backend_forge.api.middleware.auth import get_current_user
from backend_forge.schemas.analysis import CostTrackingResponse, RateLimitResponse
from backend_forge.services.ai import AIServiceClient, get_ai_service
from backend_forge.utils import TokenSubject

router = APIRouter()


def _cost_response(client: AIServiceClient) -> CostTrackingResponse:
    cost = client.get_cost_tracking()
    return CostTrackingResponse(
        total_cost=cost.total_cost,
        request_count=cost.request_count,
        token_count=cost.token_count,
        last_updated=cost.last_updated,
    )


@router.get("", response_model=CostTrackingResponse)
async def get_usage(
    user: TokenSubject = Depends(get_current_user),
    client: AIServiceClient = Depends(get_ai_service),
):
    """Cumulative token usage and estimated spend"""
    return _cost_response(client)


@router.post("/reset", response_model=CostTrackingResponse)
async def reset_usage(
    user: TokenSubject = Depends(get_current_user),
    client: AIServiceClient = Depends(get_ai_service),
):
    """Zero the cost counters. The rate-limit window is not affected."""
    client.reset_cost_tracking()
    return _cost_response(client)


@router.get("/rate-limit", response_model=RateLimitResponse)
async def get_rate_limit(
    user: TokenSubject = Depends(get_current_user),
    client: AIServiceClient = Depends(get_ai_service),
):
    """Current rate-limit window"""
    info = client.get_rate_limit_info()
    return RateLimitResponse(
        requests_per_minute=info.requests_per_minute,
        tokens_per_minute=info.tokens_per_minute,
        current_requests=info.current_requests,
        current_tokens=info.current_tokens,
        reset_time=info.reset_time,
    )
