"""
Backend Forge - AI-powered backend generator
Main FastAPI Application
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend_forge.config import get_settings
from backend_forge.services.ai import (
    AIConfigurationError,
    AIService,
    AIServiceError,
    AnalysisError,
)

logger = logging.getLogger(__name__)

_started_at = time.monotonic()


def configure_logging() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    try:
        AIService.get_instance()
        logger.info("AI service initialized successfully")
    except AIConfigurationError as e:
        logger.warning("AI service initialization failed: %s. AI features will be unavailable", e)
    yield
    await AIService.shutdown()


def _provider_error_status(error: AIServiceError) -> int:
    if error.rate_limited:
        return 429
    return 502


def create_app() -> FastAPI:
    """Factory function to create FastAPI app"""
    settings = get_settings()
    configure_logging()

    application = FastAPI(
        title="Backend Forge API",
        description="""
        AI-powered backend generator

        Describe the backend you need in plain language and get structured
        requirements, clarification questions and ranked technology stacks.
        """,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc" if settings.is_development else None,
    )

    # CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.exception_handler(AIConfigurationError)
    async def ai_configuration_handler(request: Request, exc: AIConfigurationError):
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @application.exception_handler(AIServiceError)
    async def ai_service_handler(request: Request, exc: AIServiceError):
        return JSONResponse(
            status_code=_provider_error_status(exc),
            content={"detail": exc.message, "code": exc.code},
        )

    @application.exception_handler(AnalysisError)
    async def analysis_handler(request: Request, exc: AnalysisError):
        if isinstance(exc.cause, AIServiceError):
            status_code = _provider_error_status(exc.cause)
            code = exc.cause.code
        else:
            status_code = 422
            code = "ANALYSIS_PARSING_ERROR"
        return JSONResponse(status_code=status_code, content={"detail": str(exc), "code": code})

    # Global exception handler
    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors"""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        if get_settings().DEBUG:
            return JSONResponse(
                status_code=500,
                content={
                    "detail": str(exc),
                    "type": type(exc).__name__,
                },
            )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    from backend_forge.api.routes import api_router
    application.include_router(api_router, prefix=f"/api/{settings.API_VERSION}")

    @application.get("/health")
    async def health_check():
        """Overall health; always answers 200"""
        services = {"ai": "UNKNOWN"}
        try:
            healthy = await AIService.get_instance().health_check()
            services["ai"] = "OK" if healthy else "DEGRADED"
        except AIConfigurationError:
            services["ai"] = "UNAVAILABLE"

        all_ok = all(state == "OK" for state in services.values())
        return {
            "status": "OK" if all_ok else "DEGRADED",
            "timestamp": datetime.utcnow().isoformat(),
            "uptime": round(time.monotonic() - _started_at, 3),
            "environment": settings.APP_ENV,
            "services": services,
        }

    @application.get("/health/ai")
    async def ai_health_check():
        """AI client health with rate-limit window and cost counters"""
        try:
            client = AIService.get_instance()
        except AIConfigurationError as e:
            return JSONResponse(
                status_code=503,
                content={"status": "UNAVAILABLE", "healthy": False, "error": str(e)},
            )

        healthy = await client.health_check()
        rate_limit = client.get_rate_limit_info()
        cost = client.get_cost_tracking()
        return {
            "status": "OK" if healthy else "DEGRADED",
            "healthy": healthy,
            "rateLimit": {
                "requestsPerMinute": rate_limit.requests_per_minute,
                "tokensPerMinute": rate_limit.tokens_per_minute,
                "currentRequests": rate_limit.current_requests,
                "currentTokens": rate_limit.current_tokens,
                "resetTime": rate_limit.reset_time.isoformat(),
            },
            "usage": {
                "totalCost": cost.total_cost,
                "requestCount": cost.request_count,
                "tokenCount": cost.token_count,
                "lastUpdated": cost.last_updated.isoformat(),
            },
        }

    @application.get("/")
    async def root():
        """Root endpoint"""
        return {
            "name": "Backend Forge API",
            "version": "1.0.0",
            "docs": "/docs",
        }

    return application


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()

    uvicorn.run(
        "backend_forge.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development,
        workers=1 if settings.is_development else settings.WORKERS,
    )
