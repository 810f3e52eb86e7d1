"""Domain enumerations for the Aid Escrow API.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

from __future__ import annotations

import enum


class ClaimStatus(enum.StrEnum):
    """Lifecycle states of an aid claim.

    Transitions are strictly forward, one step at a time.
    See domain/state_machine.py for the transition table.
    """

    REQUESTED = "requested"
    VERIFIED = "verified"
    APPROVED = "approved"
    DISBURSED = "disbursed"
    ARCHIVED = "archived"


class AuditAction(enum.StrEnum):
    """Actions recorded in the audit outbox."""

    CREATED = "created"
    STATUS_CHANGED_TO_VERIFIED = "status_changed_to_verified"
    STATUS_CHANGED_TO_APPROVED = "status_changed_to_approved"
    STATUS_CHANGED_TO_DISBURSED = "status_changed_to_disbursed"
    STATUS_CHANGED_TO_ARCHIVED = "status_changed_to_archived"

    @classmethod
    def for_status(cls, status: ClaimStatus) -> AuditAction:
        return cls(f"status_changed_to_{status.value}")


class RiskLevel(enum.StrEnum):
    """Risk classification produced by claim verification."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ErrorKind(enum.StrEnum):
    """Failure taxonomy. HTTP status codes are resolved by the API layer."""

    CLIENT = "client"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    DEPENDENCY = "dependency"
    INTERNAL = "internal"


class DatabaseErrorKind(enum.StrEnum):
    """Closed set of database failures surfaced by the data-access layer."""

    UNIQUE_VIOLATION = "unique_violation"
    RECORD_NOT_FOUND = "record_not_found"
    FOREIGN_KEY_VIOLATION = "foreign_key_violation"
    VALUE_TOO_LONG = "value_too_long"
    OTHER = "other"


class DependencyStatus(enum.StrEnum):
    """Per-dependency readiness status."""

    UP = "up"
    DOWN = "down"
    SKIPPED = "skipped"
