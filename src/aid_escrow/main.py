"""FastAPI application entry point for the Aid Escrow API.

Lifecycle:
    1. Creation: Validate settings and build the onchain adapter. An
       unsupported adapter aborts here, before the server binds a port.
    2. Startup: Initialize logging, database (tables in non-production), Redis.
    3. Running: Serve the REST API under /api/v1.
    4. Shutdown: Close database and Redis connections gracefully.

Verification jobs are processed by a separate worker process
(``python -m aid_escrow.worker``).

Run with:
    uvicorn aid_escrow.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from aid_escrow.config import Settings, get_settings
from aid_escrow.logging_config import get_logger, setup_logging
from aid_escrow.onchain import build_onchain_adapter

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings: Settings = app.state.settings

    # 1. Setup structured logging
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
        service=settings.service_name,
        environment=settings.app_env,
    )
    logger = get_logger(__name__)
    logger.info(
        "app.starting",
        env=settings.app_env,
        debug=settings.app_debug,
        onchain_adapter=app.state.onchain.name,
    )

    # 2. Initialize database
    from aid_escrow.infrastructure.database.engine import close_db, init_db

    await init_db(settings)

    # 3. Initialize Redis (only the verification endpoint needs it)
    from aid_escrow.infrastructure.redis_client import close_redis, init_redis

    try:
        await init_redis(settings)
    except Exception as exc:
        logger.warning("app.redis_unavailable", error=str(exc))

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    yield

    # Shutdown
    logger.info("app.shutting_down")
    await close_db()
    await close_redis()
    logger.info("app.stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Application factory: creates and configures the FastAPI app."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Aid Escrow API",
        description=(
            "Campaigns, claims and disbursements for humanitarian aid, "
            "settled through an onchain escrow."
        ),
        version=settings.app_version,
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.settings = settings
    app.state.onchain = build_onchain_adapter(settings)

    from aid_escrow.api.rate_limit import build_limiter

    app.state.limiter = build_limiter(settings)

    # --- Middleware ---
    from aid_escrow.api.middleware import setup_middleware

    setup_middleware(app)

    # --- REST API Routes ---
    from aid_escrow.api.routes.campaigns import router as campaigns_router
    from aid_escrow.api.routes.claims import router as claims_router
    from aid_escrow.api.routes.health import router as health_router
    from aid_escrow.api.routes.verification import router as verification_router

    app.include_router(health_router)
    app.include_router(campaigns_router)
    app.include_router(claims_router)
    app.include_router(verification_router)

    return app


# The app instance used by Uvicorn
app = create_app()
