"""SQLAlchemy 2.0 ORM models for the Aid Escrow API.

Three tables:
    1. campaigns     — Funding pools that claims are made against.
    2. claims        — Requests for disbursement, guarded by ClaimStateMachine.
    3. audit_outbox  — Append-only audit events, written in the same
                       transaction as the change they describe and relayed
                       later by the worker process.

Design decisions:
    - UUIDs as primary keys.
    - Decimal for amounts and budgets.
    - Portable Uuid / JSON column types so the schema also runs on SQLite.
    - CHECK constraint on status to prevent invalid enum values at DB level.
    - claims are never deleted at the application level.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal  # noqa: TC003 - needed at runtime by SQLAlchemy Mapped[]

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Uuid,
    event,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from aid_escrow.domain.enums import ClaimStatus


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _set_updated_at(mapper, connection, target):  # noqa: ANN001
    """SQLAlchemy event listener that updates `updated_at` before flush."""
    if hasattr(target, "updated_at"):
        target.updated_at = _utcnow()


# ---------------------------------------------------------------------------
# 1. campaigns
# ---------------------------------------------------------------------------
class Campaign(Base):
    """A funding pool against which claims are made."""

    __tablename__ = "campaigns"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    budget: Mapped[Decimal] = mapped_column(
        Numeric(18, 7),
        nullable=False,
        comment="Total funds available to the campaign",
    )
    escrow_address: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        default=None,
        comment="Onchain escrow holding the campaign funds",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    claims: Mapped[list[Claim]] = relationship("Claim", back_populates="campaign")

    __table_args__ = (
        CheckConstraint("budget >= 0", name="ck_campaign_non_negative_budget"),
    )

    def __repr__(self) -> str:
        return f"<Campaign id={self.id} name={self.name!r} budget={self.budget}>"


# ---------------------------------------------------------------------------
# 2. claims
# ---------------------------------------------------------------------------
class Claim(Base):
    """A request for disbursement of aid funds tied to a campaign."""

    __tablename__ = "claims"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    campaign_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("campaigns.id"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(18, 7), nullable=False)
    recipient_ref: Mapped[str] = mapped_column(String(128), nullable=False)
    evidence_ref: Mapped[str | None] = mapped_column(String(256), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ClaimStatus.REQUESTED.value,
        comment="Current lifecycle state (guarded by ClaimStateMachine)",
    )

    # --- Onchain references ---
    onchain_package_id: Mapped[str | None] = mapped_column(String(40), nullable=True)
    onchain_tx_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    disbursement_tx_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    campaign: Mapped[Campaign] = relationship(
        "Campaign",
        back_populates="claims",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('requested', 'verified', 'approved', 'disbursed', 'archived')",
            name="ck_claim_valid_status",
        ),
        CheckConstraint("amount > 0", name="ck_claim_positive_amount"),
        Index("idx_claim_campaign", "campaign_id"),
        Index("idx_claim_status", "status"),
        Index("idx_claim_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Claim id={self.id} status={self.status} amount={self.amount}>"


# ---------------------------------------------------------------------------
# 3. audit_outbox (Append-Only)
# ---------------------------------------------------------------------------
class AuditEvent(Base):
    """Audit record written alongside the change it describes.

    Rows are never updated except to stamp ``published_at`` once the relay
    has forwarded them.
    """

    __tablename__ = "audit_outbox"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    entity_type: Mapped[str] = mapped_column(String(40), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    metadata_json: Mapped[dict | None] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
        default=None,
    )
    trace_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_unpublished", "published_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditEvent id={self.id} {self.entity_type}:{self.entity_id} "
            f"action={self.action}>"
        )


event.listen(Campaign, "before_update", _set_updated_at)
event.listen(Claim, "before_update", _set_updated_at)
