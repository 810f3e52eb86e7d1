"""Verification queue REST API route.

Routes:
    POST   /api/v1/verification   Queue a claim for asynchronous scoring
                                  (throttled per client, see rate_limit.py)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from aid_escrow.api.deps import get_verification_service
from aid_escrow.api.rate_limit import throttle_verification
from aid_escrow.schemas.claims import EnqueueVerificationRequest, VerificationJobResponse
from aid_escrow.schemas.common import ApiResponse
from aid_escrow.services.verification_service import VerificationService  # noqa: TC001

router = APIRouter(prefix="/api/v1/verification", tags=["Verification"])


@router.post(
    "",
    response_model=ApiResponse[VerificationJobResponse],
    status_code=202,
    summary="Queue a claim for verification",
    dependencies=[Depends(throttle_verification)],
)
async def enqueue_verification(
    request: EnqueueVerificationRequest,
    svc: VerificationService = Depends(get_verification_service),
) -> ApiResponse[VerificationJobResponse]:
    """Accept the claim for scoring. The result is stored on the job, not the claim."""
    job = await svc.enqueue(request.claim_id)
    return ApiResponse[VerificationJobResponse](
        data=VerificationJobResponse(
            job_id=job.id,
            claim_id=request.claim_id,
            queue=svc.queue_name,
            enqueued_at=job.enqueued_at,
        )
    )
