"""HTTP tests for the health probes."""

from __future__ import annotations

import httpx
import pytest
from fastapi import FastAPI

from aid_escrow.api.deps import get_health_service
from aid_escrow.config import Settings
from aid_escrow.services.health_service import HealthService

pytestmark = pytest.mark.integration


@pytest.mark.asyncio
async def test_info(client: httpx.AsyncClient) -> None:
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["service"] == "backend"
    assert body["environment"] == "development"
    assert "success" not in body


@pytest.mark.asyncio
async def test_live(client: httpx.AsyncClient) -> None:
    response = await client.get("/api/v1/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_ready_against_test_database(client: httpx.AsyncClient) -> None:
    response = await client.get("/api/v1/health/ready")

    assert response.status_code == 200
    assert response.json() == {
        "ready": True,
        "checks": {"database": {"status": "up"}, "chain_rpc": {"status": "skipped"}},
    }


@pytest.mark.asyncio
async def test_not_ready_is_503(
    app: FastAPI, client: httpx.AsyncClient, settings: Settings
) -> None:
    async def db_down() -> None:
        raise ConnectionRefusedError("connection refused")

    app.dependency_overrides[get_health_service] = lambda: HealthService(
        settings, db_probe=db_down
    )

    response = await client.get("/api/v1/health/ready")

    assert response.status_code == 503
    body = response.json()
    assert body["ready"] is False
    assert body["checks"]["database"] == {"status": "down"}


@pytest.mark.asyncio
async def test_probe_responses_carry_correlation_headers(client: httpx.AsyncClient) -> None:
    response = await client.get(
        "/api/v1/health/live", headers={"X-Correlation-ID": "probe-1"}
    )
    assert response.headers["X-Correlation-ID"] == "probe-1"
    assert response.headers["X-Request-ID"] == "probe-1"
