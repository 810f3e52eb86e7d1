"""Health check endpoints.

    GET /api/v1/health        — service metadata
    GET /api/v1/health/live   — liveness, never touches a dependency
    GET /api/v1/health/ready  — readiness: 200 when ready, 503 otherwise

Used by container healthchecks, load balancers and the web client's status
badge. Bodies are returned bare (no success envelope) so probes can read them
directly.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from aid_escrow.api.deps import get_health_service
from aid_escrow.schemas.health import HealthResponse, LivenessResponse, ReadinessResponse
from aid_escrow.services.health_service import HealthService  # noqa: TC001

router = APIRouter(prefix="/api/v1/health", tags=["Health"])


@router.get(
    "",
    response_model=HealthResponse,
    summary="Service metadata",
)
async def health(svc: HealthService = Depends(get_health_service)) -> dict:
    return svc.info()


@router.get(
    "/live",
    response_model=LivenessResponse,
    summary="Liveness probe",
)
async def liveness(svc: HealthService = Depends(get_health_service)) -> dict:
    return svc.liveness()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse, "description": "Not ready"}},
    summary="Readiness probe",
)
async def readiness(svc: HealthService = Depends(get_health_service)) -> JSONResponse:
    """Report per-dependency status. A failed probe never raises."""
    report = await svc.readiness()
    return JSONResponse(status_code=200 if report.ready else 503, content=report.to_dict())
