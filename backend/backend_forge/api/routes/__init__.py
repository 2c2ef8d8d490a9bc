"""
API Routes
"""

from fastapi import APIRouter

from .ai import router as ai_router
from .usage import router as usage_router

api_router = APIRouter()

api_router.include_router(ai_router, prefix="/ai", tags=["AI Analysis"])
api_router.include_router(usage_router, prefix="/ai/usage", tags=["AI Usage"])
