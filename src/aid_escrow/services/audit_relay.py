"""Audit Outbox Relay — forwards committed audit events out of the database.

Audit rows are written by ClaimService/CampaignService inside the same
transaction as the change they describe, so an event exists if and only if
its change was committed. The relay runs in the worker process, publishes
unpublished rows to the audit log stream and stamps ``published_at``.
Delivery is at-least-once: a crash between publishing and stamping
republishes the batch.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from aid_escrow.infrastructure.database.engine import session_scope
from aid_escrow.infrastructure.database.repositories import AuditOutboxRepository
from aid_escrow.logging_config import AUDIT_LOGGER, get_logger

if TYPE_CHECKING:
    from collections.abc import Callable
    from contextlib import AbstractAsyncContextManager

    from sqlalchemy.ext.asyncio import AsyncSession

    from aid_escrow.infrastructure.database.orm_models import AuditEvent

logger = get_logger(__name__)
audit_logger = get_logger(AUDIT_LOGGER)


class AuditOutboxRelay:
    """Drains the audit outbox in batches."""

    def __init__(
        self,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]] = session_scope,
        batch_size: int = 100,
        interval_seconds: float = 5.0,
    ) -> None:
        self._session_factory = session_factory
        self._batch_size = batch_size
        self._interval_seconds = interval_seconds

    def publish(self, event: AuditEvent) -> None:
        audit_logger.info(
            "audit.event",
            audit_id=str(event.id),
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            action=event.action,
            metadata=event.metadata_json,
            trace_id=event.trace_id,
            recorded_at=event.created_at.isoformat(),
        )

    async def drain_once(self) -> int:
        """Publish one batch. Returns the number of events published."""
        async with self._session_factory() as session:
            repo = AuditOutboxRepository(session)
            events = await repo.get_unpublished(limit=self._batch_size)
            for event in events:
                self.publish(event)
            return await repo.mark_published([e.id for e in events])

    async def run(self, stop_event: asyncio.Event) -> None:
        """Drain periodically until ``stop_event`` is set."""
        while not stop_event.is_set():
            try:
                published = await self.drain_once()
                if published:
                    logger.info("audit_relay.published", count=published)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("audit_relay.drain_failed")

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval_seconds)
            except TimeoutError:
                continue
