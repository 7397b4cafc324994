"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if database is unreachable (readiness)
    - GET /health/ready returns 503 if the ingestor is enabled but its loop is not running
    - A failed last poll cycle is reported, not fatal: the next cycle retries

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from load balancer
    - Ingestor read from app.state (set by the lifespan), None when ingestion is disabled
"""

import logging
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from x402_indexer import __version__
from x402_indexer.infrastructure import database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "x402-indexer",
        "version": __version__,
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Readiness probe — database connectivity plus ingestor loop status."""
    manager = database.db_manager
    db_ok = await manager.health_check() if manager else False
    if not db_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
            },
        )

    ingestor = getattr(request.app.state, "ingestor", None)
    if ingestor is None:
        return {
            "status": "ready",
            "checks": {"database": "healthy", "ingestor": "disabled"},
        }

    ingestor_status = ingestor.status()
    if not ingestor_status["running"]:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "ingestor_stopped",
                "ingestor": ingestor_status,
            },
        )
    return {
        "status": "ready",
        "checks": {
            "database": "healthy",
            "ingestor": "degraded" if ingestor_status["last_error"] else "healthy",
        },
        "ingestor": ingestor_status,
    }
