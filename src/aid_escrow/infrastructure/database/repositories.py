"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface
to the service layer. They accept an AsyncSession and never manage
their own transactions (that's the caller's responsibility). Every driver
failure leaves this module as a DatabaseError (see errors.py).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from aid_escrow.infrastructure.database.errors import translate_db_errors
from aid_escrow.infrastructure.database.orm_models import (
    AuditEvent,
    Campaign,
    Claim,
)

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from aid_escrow.domain.enums import AuditAction, ClaimStatus


class CampaignRepository:
    """Data access for campaigns."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, campaign: Campaign) -> Campaign:
        """Insert a new campaign."""
        async with translate_db_errors():
            self._session.add(campaign)
            await self._session.flush()
        return campaign

    async def get_by_id(self, campaign_id: uuid.UUID) -> Campaign | None:
        async with translate_db_errors():
            result = await self._session.execute(
                select(Campaign).where(Campaign.id == campaign_id)
            )
            return result.scalar_one_or_none()

    async def list_all(self) -> list[Campaign]:
        async with translate_db_errors():
            result = await self._session.execute(
                select(Campaign).order_by(Campaign.created_at.desc())
            )
            return list(result.scalars().all())


class ClaimRepository:
    """Data access for claims."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, claim: Claim) -> Claim:
        """Insert a new claim."""
        async with translate_db_errors():
            self._session.add(claim)
            await self._session.flush()
        return claim

    async def get_by_id(self, claim_id: uuid.UUID) -> Claim | None:
        """Fetch a claim by its UUID, with its campaign loaded."""
        async with translate_db_errors():
            result = await self._session.execute(
                select(Claim)
                .where(Claim.id == claim_id)
                .options(selectinload(Claim.campaign))
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    async def list_all(self) -> list[Claim]:
        async with translate_db_errors():
            result = await self._session.execute(
                select(Claim).order_by(Claim.created_at.desc())
            )
            return list(result.scalars().all())

    async def update_status_if(
        self,
        claim_id: uuid.UUID,
        from_status: ClaimStatus,
        to_status: ClaimStatus,
    ) -> bool:
        """Atomically move a claim from ``from_status`` to ``to_status``.

        Issues a single ``UPDATE ... WHERE id = :id AND status = :from``.
        Returns True if this call won the row, False if the precondition no
        longer held (or the claim does not exist).
        """
        async with translate_db_errors():
            result = await self._session.execute(
                update(Claim)
                .where(Claim.id == claim_id, Claim.status == from_status.value)
                .values(status=to_status.value, updated_at=datetime.now(UTC))
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1

    async def save(self, claim: Claim) -> Claim:
        """Flush pending attribute changes on a claim."""
        async with translate_db_errors():
            await self._session.flush()
        return claim


class AuditOutboxRepository:
    """Data access for the audit outbox."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(
        self,
        entity_type: str,
        entity_id: str,
        action: AuditAction,
        metadata: dict | None = None,
        trace_id: str | None = None,
    ) -> AuditEvent:
        """Append an audit event in the caller's transaction."""
        evt = AuditEvent(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action.value,
            metadata_json=metadata,
            trace_id=trace_id,
        )
        async with translate_db_errors():
            self._session.add(evt)
            await self._session.flush()
        return evt

    async def get_unpublished(self, limit: int = 100) -> list[AuditEvent]:
        """Oldest events that the relay has not forwarded yet."""
        async with translate_db_errors():
            result = await self._session.execute(
                select(AuditEvent)
                .where(AuditEvent.published_at.is_(None))
                .order_by(AuditEvent.created_at.asc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def get_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        async with translate_db_errors():
            result = await self._session.execute(
                select(AuditEvent)
                .where(
                    AuditEvent.entity_type == entity_type,
                    AuditEvent.entity_id == entity_id,
                )
                .order_by(AuditEvent.created_at.asc())
            )
            return list(result.scalars().all())

    async def mark_published(self, event_ids: list[uuid.UUID]) -> int:
        if not event_ids:
            return 0
        async with translate_db_errors():
            result = await self._session.execute(
                update(AuditEvent)
                .where(AuditEvent.id.in_(event_ids), AuditEvent.published_at.is_(None))
                .values(published_at=datetime.now(UTC))
                .execution_options(synchronize_session=False)
            )
        return result.rowcount
