"""
FastAPI API Service Entry Point
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from api.dependencies import build_orchestrator
from api.routes import chat
from shared.circuit_breaker import get_breaker_status
from shared.config import get_settings
from shared.logging_config import configure_logging
from shared.redis_client import close_redis_client, get_redis_client

# Configure structured JSON logging on startup
configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Hotel Booking Chat API",
    version="1.0.0",
)

settings = get_settings()
origins = settings.CORS_ORIGINS.split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(chat.router)


@app.on_event("startup")
async def startup_orchestrator():
    """Build the orchestrator and start the rate limiter and cache sweepers."""
    orchestrator = build_orchestrator(settings)
    orchestrator.rate_limiter.start()
    orchestrator.web_cache.start()
    app.state.orchestrator = orchestrator
    logger.info(f"Chat orchestrator ready | model={settings.LLM_MODEL}")


@app.on_event("shutdown")
async def shutdown_orchestrator():
    orchestrator = getattr(app.state, "orchestrator", None)
    if orchestrator is not None:
        await orchestrator.rate_limiter.stop()
        await orchestrator.web_cache.stop()
    if settings.REDIS_URL:
        await close_redis_client()
    logger.info("Chat orchestrator stopped")


# Exception handler for validation errors
@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Return 400 with validation error details."""
    return JSONResponse(
        status_code=400,
        content={"error": "Validation error", "details": exc.errors()},
    )


@app.get("/health")
async def health_check() -> JSONResponse:
    """
    Health check endpoint.

    Checks:
    - Redis connectivity (PING), only when REDIS_URL is configured
    - Circuit breaker states for OpenRouter and Tavily

    Returns:
        200 OK if all systems healthy
        503 Service Unavailable if degraded
    """
    health_status = {
        "status": "healthy",
        "redis": "not_configured",
        "circuit_breakers": get_breaker_status(),
    }
    status_code = 200

    if settings.REDIS_URL:
        try:
            await get_redis_client().ping()
            health_status["redis"] = "connected"
        except Exception:
            health_status["redis"] = "disconnected"
            health_status["status"] = "degraded"
            status_code = 503

    return JSONResponse(status_code=status_code, content=health_status)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {"message": "Hotel Booking Chat API - POST /chat to talk, /health for health checks"}
