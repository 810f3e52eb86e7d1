"""Campaign Service — funding pools that claims are made against."""

from __future__ import annotations

from typing import TYPE_CHECKING

from aid_escrow.config import get_settings
from aid_escrow.domain.enums import AuditAction
from aid_escrow.domain.exceptions import CampaignNotFoundError
from aid_escrow.infrastructure.database.orm_models import Campaign
from aid_escrow.infrastructure.database.repositories import (
    AuditOutboxRepository,
    CampaignRepository,
)
from aid_escrow.logging_config import get_logger

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal

    from sqlalchemy.ext.asyncio import AsyncSession

    from aid_escrow.context import RequestContext
    from aid_escrow.domain.onchain import OnchainAdapter

logger = get_logger(__name__)


class CampaignService:
    """Creates and reads campaigns."""

    def __init__(
        self,
        session: AsyncSession,
        onchain: OnchainAdapter,
        ctx: RequestContext,
        admin_address: str | None = None,
    ) -> None:
        self._onchain = onchain
        self._ctx = ctx
        self._admin_address = admin_address or get_settings().onchain_admin_address
        self._repo = CampaignRepository(session)
        self._outbox = AuditOutboxRepository(session)
        self._log = logger.bind(**ctx.log_fields())

    async def create_campaign(self, name: str, budget: Decimal) -> Campaign:
        """Create a campaign and initialise its onchain escrow."""
        escrow = await self._onchain.init_escrow(self._admin_address)
        campaign = await self._repo.create(
            Campaign(name=name, budget=budget, escrow_address=escrow.escrow_address)
        )
        await self._outbox.append(
            entity_type="campaign",
            entity_id=str(campaign.id),
            action=AuditAction.CREATED,
            metadata={"budget": str(budget), "escrow_tx": escrow.transaction_hash},
            trace_id=self._ctx.trace_id,
        )
        self._log.info("campaign.created", campaign_id=str(campaign.id), budget=str(budget))
        return campaign

    async def list_campaigns(self) -> list[Campaign]:
        return await self._repo.list_all()

    async def get_campaign(self, campaign_id: uuid.UUID) -> Campaign:
        campaign = await self._repo.get_by_id(campaign_id)
        if campaign is None:
            raise CampaignNotFoundError(str(campaign_id))
        return campaign
