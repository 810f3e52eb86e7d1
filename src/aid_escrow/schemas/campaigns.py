"""Pydantic schemas for the Campaigns API."""

from __future__ import annotations

import uuid  # noqa: TC003 - resolved at runtime by pydantic
from datetime import datetime  # noqa: TC003

from pydantic import Field

from aid_escrow.schemas.common import ApiModel, Money


class CreateCampaignRequest(ApiModel):
    """Request body for creating a campaign."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name of the campaign",
        examples=["Flood Relief 2026"],
    )
    budget: Money = Field(
        ...,
        ge=0,
        max_digits=18,
        decimal_places=7,
        description="Total funds available to claims against this campaign",
        examples=[1000],
    )


class CampaignSummary(ApiModel):
    """Campaign fields embedded in a claim response."""

    id: uuid.UUID
    name: str


class CampaignResponse(ApiModel):
    """Response schema for a campaign."""

    id: uuid.UUID
    name: str
    budget: Money
    escrow_address: str | None
    created_at: datetime
    updated_at: datetime
