"""Throttling of POST /api/v1/verification."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from aid_escrow.api.deps import get_verification_queue
from aid_escrow.config import Settings
from aid_escrow.infrastructure.job_queue import VerificationQueue

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

pytestmark = pytest.mark.integration

VERIFICATION = "/api/v1/verification"
RATE_LIMIT_HEADERS = ("RateLimit-Limit", "RateLimit-Remaining", "RateLimit-Reset")


@pytest.fixture
def throttled_app(settings: Settings, database: None) -> FastAPI:
    from aid_escrow.main import create_app

    app = create_app(settings.model_copy(update={"api_rate_limit": 2, "throttle_ttl": 60_000}))
    app.dependency_overrides[get_verification_queue] = lambda: VerificationQueue(AsyncMock())
    return app


@pytest_asyncio.fixture
async def throttled_client(throttled_app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=throttled_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest_asyncio.fixture
async def claim_id(
    throttled_client: httpx.AsyncClient, sample_campaign_data: dict, sample_claim_data: dict
) -> str:
    campaign = await throttled_client.post("/api/v1/campaigns", json=sample_campaign_data)
    claim = await throttled_client.post(
        "/api/v1/claims",
        json={"campaignId": campaign.json()["data"]["id"], **sample_claim_data},
    )
    return claim.json()["data"]["id"]


class TestVerificationThrottle:
    @pytest.mark.asyncio
    async def test_third_anonymous_request_is_429(
        self, throttled_client: httpx.AsyncClient, claim_id: str
    ) -> None:
        first = await throttled_client.post(VERIFICATION, json={"claimId": claim_id})
        second = await throttled_client.post(VERIFICATION, json={"claimId": claim_id})
        third = await throttled_client.post(VERIFICATION, json={"claimId": claim_id})

        assert first.status_code == 202
        assert first.headers["RateLimit-Limit"] == "2"
        assert first.headers["RateLimit-Remaining"] == "1"
        assert second.status_code == 202
        assert second.headers["RateLimit-Remaining"] == "0"

        assert third.status_code == 429
        for header in RATE_LIMIT_HEADERS:
            assert header in third.headers
        assert third.headers["RateLimit-Remaining"] == "0"
        assert 0 < int(third.headers["Retry-After"]) <= 60
        body = third.json()
        assert body["code"] == 429
        assert body["message"] == "Too many verification requests"
        assert body["path"] == VERIFICATION

    @pytest.mark.asyncio
    async def test_authorized_requests_are_not_counted(
        self, throttled_client: httpx.AsyncClient, claim_id: str
    ) -> None:
        headers = {"Authorization": "Bearer token"}
        for _ in range(4):
            response = await throttled_client.post(
                VERIFICATION, json={"claimId": claim_id}, headers=headers
            )
            assert response.status_code == 202
            assert "RateLimit-Limit" not in response.headers

        anonymous = await throttled_client.post(VERIFICATION, json={"claimId": claim_id})
        assert anonymous.status_code == 202
        assert anonymous.headers["RateLimit-Remaining"] == "1"

    @pytest.mark.asyncio
    async def test_other_routes_are_not_throttled(
        self, throttled_client: httpx.AsyncClient, claim_id: str
    ) -> None:
        for _ in range(4):
            response = await throttled_client.get(f"/api/v1/claims/{claim_id}")
            assert response.status_code == 200
            assert "RateLimit-Limit" not in response.headers
