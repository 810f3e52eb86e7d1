"""Tests for liveness/readiness computation."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from aid_escrow.config import Settings
from aid_escrow.domain.enums import DependencyStatus
from aid_escrow.services.health_service import HealthService

RPC_URL = "http://rpc.test/"


async def _db_up() -> None:
    return None


async def _db_down() -> None:
    raise ConnectionRefusedError("connection refused")


async def _db_hangs() -> None:
    await asyncio.sleep(5)


def _rpc_client(handler) -> httpx.AsyncClient:  # noqa: ANN001
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _settings(**overrides: object) -> Settings:
    return Settings(app_env="staging", health_probe_timeout_ms=100, **overrides)


class TestInfo:
    def test_info_fields(self) -> None:
        info = HealthService(_settings(app_version="1.2.3")).info()
        assert info["status"] == "ok"
        assert info["service"] == "backend"
        assert info["version"] == "1.2.3"
        assert info["environment"] == "staging"
        assert "timestamp" in info

    def test_liveness_never_probes(self) -> None:
        svc = HealthService(_settings(), db_probe=_db_down)
        assert svc.liveness()["status"] == "ok"


class TestReadiness:
    @pytest.mark.asyncio
    async def test_ready_when_database_up_and_rpc_not_required(self) -> None:
        report = await HealthService(_settings(), db_probe=_db_up).readiness()
        assert report.ready is True
        assert report.checks == {
            "database": DependencyStatus.UP,
            "chain_rpc": DependencyStatus.SKIPPED,
        }

    @pytest.mark.asyncio
    async def test_database_down(self) -> None:
        report = await HealthService(_settings(), db_probe=_db_down).readiness()
        assert report.ready is False
        assert report.to_dict()["checks"]["database"] == {"status": "down"}

    @pytest.mark.asyncio
    async def test_database_probe_times_out(self) -> None:
        report = await HealthService(_settings(), db_probe=_db_hangs).readiness()
        assert report.checks["database"] == DependencyStatus.DOWN

    @pytest.mark.asyncio
    async def test_rpc_skipped_without_url(self) -> None:
        settings = _settings(readiness_require_chain_rpc=True, chain_rpc_url="")
        report = await HealthService(settings, db_probe=_db_up).readiness()
        assert report.checks["chain_rpc"] == DependencyStatus.SKIPPED
        assert report.ready is True

    @pytest.mark.asyncio
    async def test_rpc_up(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {}})

        settings = _settings(readiness_require_chain_rpc=True, chain_rpc_url=RPC_URL)
        async with _rpc_client(handler) as client:
            svc = HealthService(settings, db_probe=_db_up, http_client=client)
            report = await svc.readiness()

        assert report.ready is True
        assert report.checks["chain_rpc"] == DependencyStatus.UP
        assert seen[0]["method"] == "getHealth"

    @pytest.mark.asyncio
    async def test_rpc_error_status_is_down(self) -> None:
        settings = _settings(readiness_require_chain_rpc=True, chain_rpc_url=RPC_URL)
        async with _rpc_client(lambda request: httpx.Response(503)) as client:
            svc = HealthService(settings, db_probe=_db_up, http_client=client)
            report = await svc.readiness()

        assert report.ready is False
        assert report.checks["chain_rpc"] == DependencyStatus.DOWN

    @pytest.mark.asyncio
    async def test_rpc_timeout_is_down_not_raised(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        settings = _settings(readiness_require_chain_rpc=True, chain_rpc_url=RPC_URL)
        async with _rpc_client(handler) as client:
            svc = HealthService(settings, db_probe=_db_up, http_client=client)
            report = await svc.readiness()

        assert report.checks == {
            "database": DependencyStatus.UP,
            "chain_rpc": DependencyStatus.DOWN,
        }
