"""Health endpoint response schemas."""

from __future__ import annotations

from pydantic import BaseModel

from aid_escrow.domain.enums import DependencyStatus  # noqa: TC001


class HealthResponse(BaseModel):
    """Service metadata."""

    status: str = "ok"
    service: str
    version: str
    environment: str
    timestamp: str


class LivenessResponse(BaseModel):
    status: str = "ok"
    timestamp: str


class DependencyCheck(BaseModel):
    status: DependencyStatus


class ReadinessResponse(BaseModel):
    ready: bool
    checks: dict[str, DependencyCheck]
