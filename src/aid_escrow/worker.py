"""Background worker: verification consumers and the audit outbox relay.

Lifecycle:
    1. Startup: logging, onchain adapter validation, database, Redis
       (retried with backoff until it answers).
    2. Running: JobQueueWorker (``queue_concurrency`` consumers, stalled-job
       recovery, delayed-retry promotion) alongside AuditOutboxRelay.
    3. Shutdown: SIGINT/SIGTERM set the stop event; in-flight jobs finish,
       connections close.

Run with:
    python -m aid_escrow.worker
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from aid_escrow.config import get_settings
from aid_escrow.infrastructure.database.engine import close_db, init_db
from aid_escrow.infrastructure.job_queue import JobQueueWorker
from aid_escrow.infrastructure.redis_client import close_redis, init_redis_with_retry
from aid_escrow.logging_config import get_logger, setup_logging
from aid_escrow.onchain import build_onchain_adapter
from aid_escrow.services.audit_relay import AuditOutboxRelay
from aid_escrow.services.scoring import DeterministicClaimScorer
from aid_escrow.services.verification_service import VerificationProcessor

if TYPE_CHECKING:
    import redis.asyncio as aioredis

    from aid_escrow.config import Settings

logger = get_logger(__name__)


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    """Set ``stop_event`` on SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()

    def _request_stop() -> None:
        if not stop_event.is_set():
            logger.info("worker.shutdown_requested")
            stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_stop)
        except NotImplementedError:
            signal.signal(sig, lambda _s, _f: _request_stop())


def build_worker(redis: aioredis.Redis, settings: Settings) -> JobQueueWorker:
    """Wire the verification processor into a consumer pool."""
    processor = VerificationProcessor(
        scorer=DeterministicClaimScorer(),
        queue_name=settings.queue_name,
    )
    return JobQueueWorker(
        redis,
        processor,
        name=settings.queue_name,
        concurrency=settings.queue_concurrency,
        max_attempts=settings.queue_max_attempts,
        backoff_seconds=settings.queue_backoff_seconds,
        poll_timeout_seconds=settings.queue_poll_timeout_seconds,
        result_ttl_seconds=settings.queue_result_ttl_seconds,
    )


async def run_worker(stop_event: asyncio.Event, settings: Settings | None = None) -> None:
    """Run consumers and the audit relay until ``stop_event`` is set."""
    settings = settings or get_settings()

    # Same fail-fast adapter check as the API process.
    adapter = build_onchain_adapter(settings)
    logger.info("worker.starting", env=settings.app_env, onchain_adapter=adapter.name)

    await init_db(settings)
    redis = await init_redis_with_retry(settings)

    worker = build_worker(redis, settings)
    relay = AuditOutboxRelay(
        batch_size=settings.audit_relay_batch_size,
        interval_seconds=settings.audit_relay_interval_seconds,
    )

    try:
        await asyncio.gather(worker.run(stop_event), relay.run(stop_event))
    finally:
        await close_redis()
        await close_db()
        logger.info("worker.stopped")


async def main() -> None:
    settings = get_settings()
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
        service=f"{settings.service_name}-worker",
        environment=settings.app_env,
    )

    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)
    await run_worker(stop_event, settings)


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
