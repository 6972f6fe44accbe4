"""
FastAPI application entry point for the grounded probe service.
"""

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from grounded_probe.api.error_handlers import EXCEPTION_HANDLERS
from grounded_probe.api.middleware import CORS_ALLOW_HEADERS, RequestTracingMiddleware
from grounded_probe.api.routes import router
from grounded_probe.config import settings
from grounded_probe.logging_config import configure_logging
from grounded_probe.persistence.redis_client import RedisClient

# Configure structured logging before any other imports
configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
logger = structlog.get_logger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Grounded Gemini probe with retry, model fallback, key failover and persisted cooldown",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Request tracing middleware (must be first for request_id in all logs)
app.add_middleware(RequestTracingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=CORS_ALLOW_HEADERS,
)

for exc_class, handler in EXCEPTION_HANDLERS.items():
    app.add_exception_handler(exc_class, handler)

app.include_router(router, tags=["probe"])


@app.on_event("startup")
async def startup():
    """Log effective configuration (never secrets)."""
    logger.info(
        "Application startup",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        model_ladder=settings.model_ladder,
        search_strategy=settings.SEARCH_STRATEGY.value,
        rate_limit_policy=settings.RATE_LIMIT_POLICY.value,
        cooldown_enabled=settings.COOLDOWN_ENABLED,
        cooldown_minutes=settings.COOLDOWN_MINUTES,
        backup_key_configured=settings.GEMINI_BACKUP_API_KEY is not None,
    )


@app.on_event("shutdown")
async def shutdown():
    """Release the broker connection pool."""
    await RedisClient.close_async_pool()
    logger.info("Application shutdown complete")


if settings.PROMETHEUS_ENABLED:
    Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    """Root endpoint with API documentation links."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "probe": "/probe",
        "health": "/health",
        "cooldown": "/cooldown",
        "metrics": "/metrics" if settings.PROMETHEUS_ENABLED else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "grounded_probe.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
