"""AlertRoute FastAPI application."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from alertroute import __version__
from alertroute.config import settings, validate_secret_key
from alertroute.core.errors import DispatchError, dispatch_error_handler
from alertroute.database import close_database
from alertroute.dependencies import get_dispatch_engine, reset_dispatch_engine
from alertroute.logging_config import get_logger, setup_logging
from alertroute.middleware import (
    CorrelationIdMiddleware,
    limiter,
    rate_limit_exceeded_handler,
)
from alertroute.routers import alerts, health, responders

setup_logging(
    log_format=settings.log_format,
    log_level=settings.log_level,
    service_name=settings.service_name,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Migrations are applied by alembic before uvicorn starts
    validate_secret_key()

    engine = get_dispatch_engine()
    engine.escalation.start()

    # Timers live in memory; pending alerts from a previous run need them back
    if settings.escalation_resume_on_startup:
        await engine.escalation.resume_pending()

    logger.info(
        "AlertRoute API started",
        alert_timeout_minutes=settings.alert_timeout_minutes,
        max_escalation_attempts=settings.max_escalation_attempts,
    )

    yield

    logger.info("Shutting down AlertRoute API...")
    reset_dispatch_engine()
    await close_database()
    logger.info("AlertRoute API shutdown complete")


app = FastAPI(
    title="AlertRoute API",
    description="Emergency alert dispatch with timed escalation",
    version=__version__,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(DispatchError, dispatch_error_handler)

# Middleware (order matters: first added = last executed)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(health.router)
app.include_router(alerts.router)
app.include_router(responders.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint."""
    return {
        "name": "AlertRoute API",
        "version": __version__,
        "docs": "/docs",
    }
