"""Pydantic schemas for the Claims and Verification APIs.

These schemas define the request/response shapes for the REST API. They are
separate from the ORM models to keep the API and database layers apart.
"""

from __future__ import annotations

import uuid  # noqa: TC003 - resolved at runtime by pydantic
from datetime import datetime  # noqa: TC003

from pydantic import Field

from aid_escrow.domain.enums import ClaimStatus  # noqa: TC001
from aid_escrow.schemas.campaigns import CampaignSummary  # noqa: TC001
from aid_escrow.schemas.common import ApiModel, Money

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateClaimRequest(ApiModel):
    """Request body for creating a claim against a campaign."""

    campaign_id: uuid.UUID = Field(..., description="Campaign the claim draws from")
    amount: Money = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=7,
        description="Requested amount",
        examples=[100.5],
    )
    recipient_ref: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Recipient reference (wallet address or beneficiary id)",
        examples=["r-123"],
    )
    evidence_ref: str | None = Field(
        default=None,
        max_length=256,
        description="Optional pointer to supporting evidence",
        examples=["e-456"],
    )


class EnqueueVerificationRequest(ApiModel):
    """Request body for queueing a claim for verification."""

    claim_id: uuid.UUID


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class ClaimResponse(ApiModel):
    """Response schema for a claim."""

    id: uuid.UUID
    campaign_id: uuid.UUID
    amount: Money
    recipient_ref: str
    evidence_ref: str | None
    status: ClaimStatus
    onchain_package_id: str | None = None
    onchain_tx_hash: str | None = None
    disbursement_tx_hash: str | None = None
    created_at: datetime
    updated_at: datetime
    campaign: CampaignSummary | None = None


class VerificationJobResponse(ApiModel):
    """Acknowledgement for a queued verification job."""

    job_id: str
    claim_id: uuid.UUID
    queue: str
    enqueued_at: int = Field(description="Epoch milliseconds")
