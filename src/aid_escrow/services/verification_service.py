"""Verification Service — producer and processor for claim verification jobs.

Coordinates between:
    - ClaimRepository (claim lookup)
    - VerificationQueue (Redis job queue, producer side)
    - ClaimScorer (opaque scoring strategy)

VerificationService is used by the API to enqueue. VerificationProcessor is
the JobHandler the worker pool calls; it re-raises every processing failure
unchanged so the queue's retry policy can act on it.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

from aid_escrow.context import RequestContext
from aid_escrow.domain.exceptions import ClaimNotFoundError
from aid_escrow.domain.verification import ClaimSnapshot, VerificationJob
from aid_escrow.infrastructure.database.engine import session_scope
from aid_escrow.infrastructure.database.repositories import ClaimRepository
from aid_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable
    from contextlib import AbstractAsyncContextManager

    from sqlalchemy.ext.asyncio import AsyncSession

    from aid_escrow.domain.verification import ClaimScorer
    from aid_escrow.infrastructure.job_queue import ProgressReporter, VerificationQueue

logger = get_logger(__name__)


class VerificationService:
    """Enqueues claims for asynchronous verification."""

    def __init__(
        self,
        session: AsyncSession,
        queue: VerificationQueue,
        ctx: RequestContext,
    ) -> None:
        self._claim_repo = ClaimRepository(session)
        self._queue = queue
        self._log = logger.bind(**ctx.log_fields())

    @property
    def queue_name(self) -> str:
        return self._queue.name

    async def enqueue(self, claim_id: uuid.UUID) -> VerificationJob:
        """Queue a verification job for an existing claim."""
        claim = await self._claim_repo.get_by_id(claim_id)
        if claim is None:
            raise ClaimNotFoundError(str(claim_id))

        job = await self._queue.enqueue(VerificationJob(claim_id=str(claim_id)))
        self._log.info("verification.enqueued", claim_id=str(claim_id), job_id=job.id)
        return job


class VerificationProcessor:
    """JobHandler for the ``verification`` queue."""

    def __init__(
        self,
        scorer: ClaimScorer,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]] = session_scope,
        queue_name: str = "verification",
    ) -> None:
        self._scorer = scorer
        self._session_factory = session_factory
        self._queue_name = queue_name

    async def process(
        self, job: VerificationJob, report_progress: ProgressReporter
    ) -> dict[str, Any]:
        ctx = RequestContext.for_job(job.id, self._queue_name)
        log = logger.bind(**ctx.log_fields(), job_id=job.id, claim_id=job.claim_id)
        log.info("verification.job_processing", attempt=job.attempts_made + 1)
        try:
            async with self._session_factory() as session:
                claim = await ClaimRepository(session).get_by_id(uuid.UUID(job.claim_id))
                if claim is None:
                    raise ClaimNotFoundError(job.claim_id)
                snapshot = ClaimSnapshot(
                    id=str(claim.id),
                    campaign_id=str(claim.campaign_id),
                    amount=claim.amount,
                    recipient_ref=claim.recipient_ref,
                    evidence_ref=claim.evidence_ref,
                    status=claim.status,
                )
            await report_progress(0.5)

            result = await self._scorer.score(snapshot)
            await report_progress(1.0)
        except Exception as exc:
            log.error("verification.job_failed", error=str(exc), error_type=type(exc).__name__)
            raise

        log.info("verification.job_scored", score=result.score, risk=result.risk_level.value)
        return result.to_dict()

    # ------------------------------------------------------------------
    # Lifecycle hooks (observational only)
    # ------------------------------------------------------------------

    def on_active(self, job: VerificationJob) -> None:
        logger.debug("verification.job_started", job_id=job.id, claim_id=job.claim_id)

    def on_progress(self, job: VerificationJob, progress: float | dict) -> None:
        logger.debug("verification.job_progress", job_id=job.id, progress=progress)

    def on_completed(self, job: VerificationJob, result: dict[str, Any]) -> None:
        logger.info(
            "verification.job_completed",
            job_id=job.id,
            claim_id=job.claim_id,
            elapsed_ms=job.elapsed_ms(),
            score=result.get("score"),
        )

    def on_failed(self, job: VerificationJob | None, error: BaseException) -> None:
        if job is not None:
            logger.error(
                "verification.job_attempt_failed",
                job_id=job.id,
                claim_id=job.claim_id,
                attempts=job.attempts_made,
                error=str(error),
            )
        else:
            logger.error("verification.job_attempt_failed", error=str(error))

    def on_stalled(self, job_id: str) -> None:
        logger.warning("verification.job_stalled", job_id=job_id, queue=self._queue_name)
