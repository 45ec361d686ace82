"""System health endpoints.

Endpoints:
- /health  Lightweight liveness probe (no dependency checks)
- /ready   Readiness probe (pings the database)
"""

import asyncio
import logging

from fastapi import APIRouter, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from mapping_portal.api.deps import Services
from mapping_portal.api.schemas import HealthResponse, HealthStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])

_HEALTH_CHECK_TIMEOUT_S = 5.0


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check (Liveness)",
)
async def health_check() -> HealthResponse:
    """Return healthy while the process serves requests. Does not touch the database."""
    return HealthResponse(status=HealthStatus.HEALTHY)


@router.get(
    "/ready",
    response_model=HealthResponse,
    summary="Readiness Probe",
    description="Verifies the database answers. Returns 503 if not ready.",
)
async def readiness_check(services: Services) -> HealthResponse:
    try:
        await asyncio.wait_for(services.database.ping(), timeout=_HEALTH_CHECK_TIMEOUT_S)
    except TimeoutError as e:
        logger.error("Database health check timed out after %.1fs", _HEALTH_CHECK_TIMEOUT_S)
        raise HTTPException(status_code=503, detail="Not ready: database timed out") from e
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database health check failed: %s", e)
        raise HTTPException(status_code=503, detail="Not ready: database unavailable") from e
    return HealthResponse(status=HealthStatus.HEALTHY)
