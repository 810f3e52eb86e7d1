"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject database sessions,
the request context, the onchain adapter, services and the verification
queue. Tests override them through ``app.dependency_overrides``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from aid_escrow.config import Settings, get_settings
from aid_escrow.context import RequestContext
from aid_escrow.domain.onchain import OnchainAdapter  # noqa: TC001 - resolved by FastAPI
from aid_escrow.infrastructure.database.engine import get_async_session
from aid_escrow.infrastructure.job_queue import VerificationQueue
from aid_escrow.infrastructure.redis_client import get_redis
from aid_escrow.services.campaign_service import CampaignService
from aid_escrow.services.claim_service import ClaimService
from aid_escrow.services.health_service import HealthService
from aid_escrow.services.verification_service import VerificationService

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for a request."""
    async for session in get_async_session():
        yield session


def get_app_settings(request: Request) -> Settings:
    """Provide the settings the application was created with."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_request_context(request: Request) -> RequestContext:
    """Provide the RequestContext built by RequestContextMiddleware."""
    ctx = getattr(request.state, "ctx", None)
    if ctx is None:
        ctx = RequestContext.from_headers(request.headers, request.url.path, request.method)
    return ctx


def get_onchain_adapter(request: Request) -> OnchainAdapter:
    """Provide the onchain adapter selected at application creation."""
    return request.app.state.onchain


def get_verification_queue(
    settings: Settings = Depends(get_app_settings),
) -> VerificationQueue:
    """Provide the producer side of the verification queue."""
    try:
        redis = get_redis()
    except RuntimeError as exc:
        raise HTTPException(status_code=503, detail="Verification queue unavailable") from exc
    return VerificationQueue(redis, name=settings.queue_name)


async def get_claim_service(
    session: AsyncSession = Depends(get_db_session),
    ctx: RequestContext = Depends(get_request_context),
    onchain: OnchainAdapter = Depends(get_onchain_adapter),
    settings: Settings = Depends(get_app_settings),
) -> ClaimService:
    return ClaimService(session, onchain, ctx, token_address=settings.onchain_token_address)


async def get_campaign_service(
    session: AsyncSession = Depends(get_db_session),
    ctx: RequestContext = Depends(get_request_context),
    onchain: OnchainAdapter = Depends(get_onchain_adapter),
    settings: Settings = Depends(get_app_settings),
) -> CampaignService:
    return CampaignService(session, onchain, ctx, admin_address=settings.onchain_admin_address)


async def get_verification_service(
    session: AsyncSession = Depends(get_db_session),
    ctx: RequestContext = Depends(get_request_context),
    queue: VerificationQueue = Depends(get_verification_queue),
) -> VerificationService:
    return VerificationService(session, queue, ctx)


def get_health_service(settings: Settings = Depends(get_app_settings)) -> HealthService:
    return HealthService(settings)
