"""Domain layer — pure business logic with zero framework dependencies."""

from aid_escrow.domain.enums import (
    AuditAction,
    ClaimStatus,
    DatabaseErrorKind,
    DependencyStatus,
    ErrorKind,
    RiskLevel,
)
from aid_escrow.domain.exceptions import (
    AidEscrowError,
    CampaignNotFoundError,
    ClaimNotFoundError,
    DatabaseError,
    InvalidTransitionError,
)
from aid_escrow.domain.state_machine import (
    ClaimStateMachine,
    check_transition,
    next_status,
)
from aid_escrow.domain.verification import (
    ClaimScorer,
    ClaimSnapshot,
    VerificationJob,
    VerificationResult,
)

__all__ = [
    "AuditAction",
    "ClaimStatus",
    "DatabaseErrorKind",
    "DependencyStatus",
    "ErrorKind",
    "RiskLevel",
    "AidEscrowError",
    "CampaignNotFoundError",
    "ClaimNotFoundError",
    "DatabaseError",
    "InvalidTransitionError",
    "ClaimStateMachine",
    "check_transition",
    "next_status",
    "ClaimScorer",
    "ClaimSnapshot",
    "VerificationJob",
    "VerificationResult",
]
