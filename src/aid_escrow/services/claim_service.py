"""Claim Service — core business logic for the claim lifecycle.

This is the application layer that coordinates between:
    - Domain state machine (transition guard)
    - Repositories (data access, conditional status update)
    - Audit outbox (written in the same transaction)
    - Onchain adapter (claim package creation and disbursement)

Every transition goes through ``_transition``: the status is read and
checked, then moved with a single conditional UPDATE so that two requests
racing on the same claim produce exactly one winner.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from aid_escrow.config import get_settings
from aid_escrow.domain.enums import AuditAction, ClaimStatus
from aid_escrow.domain.exceptions import (
    CampaignNotFoundError,
    ClaimNotFoundError,
    InvalidTransitionError,
)
from aid_escrow.domain.state_machine import check_transition
from aid_escrow.infrastructure.database.orm_models import Claim
from aid_escrow.infrastructure.database.repositories import (
    AuditOutboxRepository,
    CampaignRepository,
    ClaimRepository,
)
from aid_escrow.logging_config import get_logger

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal

    from sqlalchemy.ext.asyncio import AsyncSession

    from aid_escrow.context import RequestContext
    from aid_escrow.domain.onchain import OnchainAdapter

logger = get_logger(__name__)

ENTITY_CLAIM = "claim"


class ClaimService:
    """Manages the claim lifecycle."""

    def __init__(
        self,
        session: AsyncSession,
        onchain: OnchainAdapter,
        ctx: RequestContext,
        token_address: str | None = None,
    ) -> None:
        self._session = session
        self._onchain = onchain
        self._ctx = ctx
        self._token_address = token_address or get_settings().onchain_token_address
        self._claim_repo = ClaimRepository(session)
        self._campaign_repo = CampaignRepository(session)
        self._outbox = AuditOutboxRepository(session)
        self._log = logger.bind(**ctx.log_fields())

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_claim(
        self,
        campaign_id: uuid.UUID,
        amount: Decimal,
        recipient_ref: str,
        evidence_ref: str | None = None,
    ) -> Claim:
        """Create a claim in ``requested`` state and register it onchain."""
        campaign = await self._campaign_repo.get_by_id(campaign_id)
        if campaign is None:
            raise CampaignNotFoundError(str(campaign_id))

        claim = Claim(
            campaign=campaign,
            amount=amount,
            recipient_ref=recipient_ref,
            evidence_ref=evidence_ref,
            status=ClaimStatus.REQUESTED.value,
        )
        claim = await self._claim_repo.create(claim)

        onchain = await self._onchain.create_claim(
            claim_id=str(claim.id),
            recipient_address=recipient_ref,
            amount=str(amount),
            token_address=self._token_address,
        )
        claim.onchain_package_id = onchain.package_id
        claim.onchain_tx_hash = onchain.transaction_hash
        await self._claim_repo.save(claim)

        await self._outbox.append(
            entity_type=ENTITY_CLAIM,
            entity_id=str(claim.id),
            action=AuditAction.CREATED,
            metadata={"status": claim.status, "package_id": onchain.package_id},
            trace_id=self._ctx.trace_id,
        )

        self._log.info(
            "claim.created",
            claim_id=str(claim.id),
            campaign_id=str(campaign_id),
            amount=str(amount),
        )
        return claim

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_claims(self) -> list[Claim]:
        return await self._claim_repo.list_all()

    async def get_claim(self, claim_id: uuid.UUID) -> Claim:
        return await self._get_claim_or_raise(claim_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def verify(self, claim_id: uuid.UUID) -> Claim:
        return await self._transition(claim_id, ClaimStatus.REQUESTED, ClaimStatus.VERIFIED)

    async def approve(self, claim_id: uuid.UUID) -> Claim:
        return await self._transition(claim_id, ClaimStatus.VERIFIED, ClaimStatus.APPROVED)

    async def disburse(self, claim_id: uuid.UUID) -> Claim:
        """Move an approved claim to ``disbursed`` and settle it onchain.

        The onchain call happens after this request has won the status row,
        so a losing concurrent request never triggers a second payout. If the
        onchain call fails the whole transaction, status included, rolls back.
        """
        claim = await self._transition(claim_id, ClaimStatus.APPROVED, ClaimStatus.DISBURSED)

        result = await self._onchain.disburse(
            claim_id=str(claim.id),
            package_id=claim.onchain_package_id or "",
            recipient_address=claim.recipient_ref,
            amount=str(claim.amount),
        )
        claim.disbursement_tx_hash = result.transaction_hash
        await self._claim_repo.save(claim)

        self._log.info(
            "claim.disbursed_onchain",
            claim_id=str(claim.id),
            tx_hash=result.transaction_hash,
            amount=result.amount_disbursed,
        )
        return claim

    async def archive(self, claim_id: uuid.UUID) -> Claim:
        return await self._transition(claim_id, ClaimStatus.DISBURSED, ClaimStatus.ARCHIVED)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get_claim_or_raise(self, claim_id: uuid.UUID) -> Claim:
        claim = await self._claim_repo.get_by_id(claim_id)
        if claim is None:
            raise ClaimNotFoundError(str(claim_id))
        return claim

    async def _transition(
        self,
        claim_id: uuid.UUID,
        required_from: ClaimStatus,
        to: ClaimStatus,
    ) -> Claim:
        """Move a claim from ``required_from`` to ``to``.

        Raises:
            ClaimNotFoundError: If the claim does not exist.
            InvalidTransitionError: If the claim is not in ``required_from``,
                either when read or when the conditional update runs.
        """
        claim = await self._get_claim_or_raise(claim_id)
        check_transition(ClaimStatus(claim.status), required_from, to)

        if not await self._claim_repo.update_status_if(claim_id, required_from, to):
            # Lost a race: someone moved the claim after we read it.
            current = await self._get_claim_or_raise(claim_id)
            self._log.warning(
                "claim.transition_conflict",
                claim_id=str(claim_id),
                current=current.status,
                required=required_from.value,
            )
            raise InvalidTransitionError(current.status, required_from.value, to.value)

        await self._outbox.append(
            entity_type=ENTITY_CLAIM,
            entity_id=str(claim_id),
            action=AuditAction.for_status(to),
            metadata={"from": required_from.value, "to": to.value},
            trace_id=self._ctx.trace_id,
        )

        claim = await self._get_claim_or_raise(claim_id)
        self._log.info(
            "claim.transitioned",
            claim_id=str(claim_id),
            old_status=required_from.value,
            new_status=to.value,
        )
        return claim
