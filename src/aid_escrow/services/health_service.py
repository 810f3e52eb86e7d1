"""Health Service — liveness metadata and dependency-aware readiness.

Liveness never touches a dependency. Readiness probes the database and,
when configured, the chain RPC node. Every probe is bounded by
``health_probe_timeout_ms``; a probe that fails or times out is reported
``down`` and never raises.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx

from aid_escrow.domain.enums import DependencyStatus
from aid_escrow.infrastructure.database.engine import ping_db
from aid_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from aid_escrow.config import Settings

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReadinessReport:
    ready: bool
    checks: dict[str, DependencyStatus] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ready": self.ready,
            "checks": {name: {"status": status.value} for name, status in self.checks.items()},
        }


class HealthService:
    """Computes liveness and readiness for the API process."""

    def __init__(
        self,
        settings: Settings,
        db_probe: Callable[[], Awaitable[None]] = ping_db,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._db_probe = db_probe
        self._http_client = http_client

    def info(self) -> dict[str, Any]:
        return {
            "status": "ok",
            "service": self._settings.service_name,
            "version": self._settings.app_version,
            "environment": self._settings.app_env,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    def liveness(self) -> dict[str, Any]:
        return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}

    async def readiness(self) -> ReadinessReport:
        database, chain_rpc = await asyncio.gather(
            self._check_database(),
            self._check_chain_rpc(),
        )
        ready = database == DependencyStatus.UP and chain_rpc != DependencyStatus.DOWN
        return ReadinessReport(
            ready=ready,
            checks={"database": database, "chain_rpc": chain_rpc},
        )

    # ------------------------------------------------------------------
    # Probes
    # ------------------------------------------------------------------

    async def _check_database(self) -> DependencyStatus:
        try:
            await asyncio.wait_for(
                self._db_probe(), timeout=self._settings.health_probe_timeout_seconds
            )
        except TimeoutError:
            logger.warning("health.database_timeout")
            return DependencyStatus.DOWN
        except Exception as exc:
            logger.warning("health.database_down", error=str(exc))
            return DependencyStatus.DOWN
        return DependencyStatus.UP

    async def _check_chain_rpc(self) -> DependencyStatus:
        settings = self._settings
        if not settings.readiness_require_chain_rpc or not settings.chain_rpc_url:
            return DependencyStatus.SKIPPED

        payload = {"jsonrpc": "2.0", "id": 1, "method": "getHealth"}
        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    settings.chain_rpc_url,
                    json=payload,
                    timeout=settings.health_probe_timeout_seconds,
                )
            else:
                async with httpx.AsyncClient(
                    timeout=settings.health_probe_timeout_seconds
                ) as client:
                    response = await client.post(settings.chain_rpc_url, json=payload)
            response.raise_for_status()
        except httpx.TimeoutException:
            logger.warning("health.chain_rpc_timeout", url=settings.chain_rpc_url)
            return DependencyStatus.DOWN
        except httpx.HTTPError as exc:
            logger.warning("health.chain_rpc_down", url=settings.chain_rpc_url, error=str(exc))
            return DependencyStatus.DOWN
        return DependencyStatus.UP
