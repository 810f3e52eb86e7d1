"""Pydantic API schemas."""

from aid_escrow.schemas.campaigns import (
    CampaignResponse,
    CampaignSummary,
    CreateCampaignRequest,
)
from aid_escrow.schemas.claims import (
    ClaimResponse,
    CreateClaimRequest,
    EnqueueVerificationRequest,
    VerificationJobResponse,
)
from aid_escrow.schemas.common import ApiResponse
from aid_escrow.schemas.errors import ErrorEnvelope, FieldViolation
from aid_escrow.schemas.health import (
    HealthResponse,
    LivenessResponse,
    ReadinessResponse,
)

__all__ = [
    "ApiResponse",
    "CampaignResponse",
    "CampaignSummary",
    "ClaimResponse",
    "CreateCampaignRequest",
    "CreateClaimRequest",
    "EnqueueVerificationRequest",
    "ErrorEnvelope",
    "FieldViolation",
    "HealthResponse",
    "LivenessResponse",
    "ReadinessResponse",
    "VerificationJobResponse",
]
