"""Application services — use case orchestration."""

from aid_escrow.services.audit_relay import AuditOutboxRelay
from aid_escrow.services.campaign_service import CampaignService
from aid_escrow.services.claim_service import ClaimService
from aid_escrow.services.health_service import HealthService, ReadinessReport
from aid_escrow.services.scoring import DeterministicClaimScorer
from aid_escrow.services.verification_service import (
    VerificationProcessor,
    VerificationService,
)

__all__ = [
    "AuditOutboxRelay",
    "CampaignService",
    "ClaimService",
    "DeterministicClaimScorer",
    "HealthService",
    "ReadinessReport",
    "VerificationProcessor",
    "VerificationService",
]
