"""Health check endpoints for container orchestration."""

from typing import Any

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from alertroute.core.migrations import check_migrations_current
from alertroute.database import check_database_connection
from alertroute.dependencies import get_dispatch_engine
from alertroute.services.dispatch import DispatchEngine

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=None)
async def health_check(
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> Response:
    """
    Health check with database and escalation scheduler status.

    Returns 503 when the database is unreachable or escalation timers
    cannot fire, since pending alerts would then never be reassigned.
    """
    db_connected = await check_database_connection()
    scheduler_running = engine.escalation.running
    healthy = db_connected and scheduler_running

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if healthy else "degraded",
            "database": "connected" if db_connected else "disconnected",
            "escalation_scheduler": "running" if scheduler_running else "stopped",
            "armed_escalations": engine.escalation.armed_count(),
        },
    )


@router.get("/health/live")
async def liveness_probe() -> dict[str, Any]:
    """Liveness probe. Does not touch external dependencies."""
    return {"status": "alive"}


@router.get("/health/ready", response_model=None)
async def readiness_probe() -> Response:
    """Readiness probe; ready once the database answers at the head revision."""
    if not await check_database_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "database": "disconnected"},
        )

    if not await check_migrations_current():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "database": "migrations_pending"},
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"status": "ready", "database": "connected"},
    )
