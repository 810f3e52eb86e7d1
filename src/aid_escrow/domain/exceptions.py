"""Domain exceptions for the Aid Escrow API.

These exceptions are framework-agnostic and represent business rule violations.
Each carries an ErrorKind; the API layer alone decides which HTTP status a
kind maps to (see api/errors.py).
"""

from __future__ import annotations

from typing import Any

from aid_escrow.domain.enums import DatabaseErrorKind, ErrorKind


class AidEscrowError(Exception):
    """Base exception for all domain errors."""

    kind: ErrorKind = ErrorKind.CLIENT

    def __init__(
        self,
        message: str,
        code: str = "AID_ESCROW_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details
        super().__init__(self.message)


# --- Not Found ---


class NotFoundError(AidEscrowError):
    kind = ErrorKind.NOT_FOUND


class ClaimNotFoundError(NotFoundError):
    """Raised when a claim ID does not exist."""

    def __init__(self, claim_id: str) -> None:
        super().__init__(message="Claim not found", code="CLAIM_NOT_FOUND")
        self.claim_id = claim_id


class CampaignNotFoundError(NotFoundError):
    """Raised when a claim references a campaign that does not exist."""

    def __init__(self, campaign_id: str) -> None:
        super().__init__(message="Campaign not found", code="CAMPAIGN_NOT_FOUND")
        self.campaign_id = campaign_id


# --- State Machine Errors ---


class InvalidTransitionError(AidEscrowError):
    """Raised when a claim is not in the status a transition requires.

    Example: verifying a claim that is already ``verified``.
    """

    kind = ErrorKind.CLIENT

    def __init__(self, current_status: str, required_status: str, target_status: str) -> None:
        super().__init__(
            message=(
                f"Cannot transition from {current_status} to {target_status} "
                f"(expected status {required_status})"
            ),
            code="INVALID_TRANSITION",
        )
        self.current_status = current_status
        self.required_status = required_status
        self.target_status = target_status


# --- Data access ---


class DatabaseError(AidEscrowError):
    """Tagged database failure produced at the repository boundary.

    Exactly one of the optional attributes is meaningful per kind:
        UNIQUE_VIOLATION       -> target (offending field names)
        RECORD_NOT_FOUND       -> cause
        FOREIGN_KEY_VIOLATION  -> field_name
        VALUE_TOO_LONG         -> column_name
        OTHER                  -> vendor_code, meta
    """

    kind = ErrorKind.INTERNAL

    def __init__(
        self,
        db_kind: DatabaseErrorKind,
        message: str = "Database error occurred",
        *,
        target: list[str] | None = None,
        cause: str | None = None,
        field_name: str | None = None,
        column_name: str | None = None,
        vendor_code: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code=f"DB_{db_kind.value.upper()}")
        self.db_kind = db_kind
        self.target = target or []
        self.cause = cause
        self.field_name = field_name
        self.column_name = column_name
        self.vendor_code = vendor_code
        self.meta = meta or {}


# --- Onchain ---


class OnchainConfigurationError(AidEscrowError):
    """Raised at startup when the configured onchain adapter cannot be built."""

    kind = ErrorKind.INTERNAL

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="ONCHAIN_CONFIGURATION_ERROR")


class OnchainError(AidEscrowError):
    """Raised when the settlement backend rejects or fails an operation."""

    kind = ErrorKind.DEPENDENCY

    def __init__(self, message: str, operation: str) -> None:
        super().__init__(
            message=message,
            code="ONCHAIN_ERROR",
            details={"operation": operation},
        )
        self.operation = operation
