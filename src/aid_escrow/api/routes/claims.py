"""Claims REST API routes.

Routes:
    POST   /api/v1/claims                 — Create a claim (status: requested)
    GET    /api/v1/claims                 — List claims, newest first
    GET    /api/v1/claims/{id}            — Get one claim
    POST   /api/v1/claims/{id}/verify     — requested -> verified
    POST   /api/v1/claims/{id}/approve    — verified  -> approved
    POST   /api/v1/claims/{id}/disburse   — approved  -> disbursed (+ onchain payout)
    PATCH  /api/v1/claims/{id}/archive    — disbursed -> archived
"""

from __future__ import annotations

import uuid  # noqa: TC003 - resolved by FastAPI
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends

from aid_escrow.api.deps import get_claim_service
from aid_escrow.schemas.claims import ClaimResponse, CreateClaimRequest
from aid_escrow.schemas.common import ApiResponse
from aid_escrow.services.claim_service import ClaimService  # noqa: TC001

if TYPE_CHECKING:
    from aid_escrow.infrastructure.database.orm_models import Claim

router = APIRouter(prefix="/api/v1/claims", tags=["Claims"])


def _wrap(claim: Claim) -> ApiResponse[ClaimResponse]:
    return ApiResponse[ClaimResponse](data=ClaimResponse.model_validate(claim))


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=ApiResponse[ClaimResponse],
    status_code=201,
    summary="Create a claim",
)
async def create_claim(
    request: CreateClaimRequest,
    svc: ClaimService = Depends(get_claim_service),
) -> ApiResponse[ClaimResponse]:
    """Create a claim in ``requested`` state against an existing campaign."""
    claim = await svc.create_claim(
        campaign_id=request.campaign_id,
        amount=request.amount,
        recipient_ref=request.recipient_ref,
        evidence_ref=request.evidence_ref,
    )
    return _wrap(claim)


@router.get(
    "",
    response_model=ApiResponse[list[ClaimResponse]],
    summary="List claims",
)
async def list_claims(
    svc: ClaimService = Depends(get_claim_service),
) -> ApiResponse[list[ClaimResponse]]:
    claims = await svc.list_claims()
    return ApiResponse[list[ClaimResponse]](
        data=[ClaimResponse.model_validate(c) for c in claims]
    )


@router.get(
    "/{claim_id}",
    response_model=ApiResponse[ClaimResponse],
    summary="Get claim details",
)
async def get_claim(
    claim_id: uuid.UUID,
    svc: ClaimService = Depends(get_claim_service),
) -> ApiResponse[ClaimResponse]:
    return _wrap(await svc.get_claim(claim_id))


# ---------------------------------------------------------------------------
# Lifecycle transitions
# ---------------------------------------------------------------------------


@router.post(
    "/{claim_id}/verify",
    response_model=ApiResponse[ClaimResponse],
    summary="Mark a claim verified",
)
async def verify_claim(
    claim_id: uuid.UUID,
    svc: ClaimService = Depends(get_claim_service),
) -> ApiResponse[ClaimResponse]:
    """Transitions requested -> verified."""
    return _wrap(await svc.verify(claim_id))


@router.post(
    "/{claim_id}/approve",
    response_model=ApiResponse[ClaimResponse],
    summary="Approve a verified claim",
)
async def approve_claim(
    claim_id: uuid.UUID,
    svc: ClaimService = Depends(get_claim_service),
) -> ApiResponse[ClaimResponse]:
    """Transitions verified -> approved."""
    return _wrap(await svc.approve(claim_id))


@router.post(
    "/{claim_id}/disburse",
    response_model=ApiResponse[ClaimResponse],
    summary="Disburse an approved claim",
)
async def disburse_claim(
    claim_id: uuid.UUID,
    svc: ClaimService = Depends(get_claim_service),
) -> ApiResponse[ClaimResponse]:
    """Transitions approved -> disbursed and pays out through the onchain adapter."""
    return _wrap(await svc.disburse(claim_id))


@router.patch(
    "/{claim_id}/archive",
    response_model=ApiResponse[ClaimResponse],
    summary="Archive a disbursed claim",
)
async def archive_claim(
    claim_id: uuid.UUID,
    svc: ClaimService = Depends(get_claim_service),
) -> ApiResponse[ClaimResponse]:
    """Transitions disbursed -> archived."""
    return _wrap(await svc.archive(claim_id))
