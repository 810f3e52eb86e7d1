"""Shared test fixtures for the Aid Escrow test suite.

Provides:
    - Settings pointed at a throwaway SQLite database
    - A created schema (and engine teardown) for service/API tests
    - An httpx AsyncClient bound to the ASGI app
    - A RequestContext for calling services directly
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

import httpx
import pytest
import pytest_asyncio

from aid_escrow.config import Settings, get_settings
from aid_escrow.context import RequestContext
from aid_escrow.infrastructure.database.engine import close_db, init_db

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator
    from pathlib import Path

    from fastapi import FastAPI


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Settings]:
    """Settings for one test, backed by a fresh SQLite file."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'aid_escrow.db'}")
    monkeypatch.setenv("APP_ENV", "development")
    monkeypatch.setenv("APP_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("ONCHAIN_ADAPTER", "mock")
    monkeypatch.setenv("READINESS_REQUIRE_CHAIN_RPC", "false")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Database / app
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncIterator[None]:
    """Create all tables, dispose the engine afterwards."""
    await init_db(settings)
    yield
    await close_db()


@pytest.fixture
def app(settings: Settings, database: None) -> FastAPI:
    from aid_escrow.main import create_app

    return create_app(settings)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext(
        correlation_id="test-correlation-id",
        trace_id="test-correlation-id",
        path="/api/v1/claims",
        method="POST",
    )


@pytest.fixture
def sample_campaign_data() -> dict:
    return {"name": "Test Campaign", "budget": 1000}


@pytest.fixture
def sample_claim_data() -> dict:
    """Claim body without a campaign id (added by the test)."""
    return {"amount": 100.5, "recipientRef": "r-123", "evidenceRef": "e-456"}


@pytest.fixture
def sample_claim_id() -> uuid.UUID:
    """Return a deterministic UUID for testing."""
    return uuid.UUID("12345678-1234-5678-1234-567812345678")


@pytest.fixture
def sample_amount() -> Decimal:
    return Decimal("100.5")
