"""Verification job and result types, plus the scorer protocol.

The domain layer has ZERO imports from Redis or any external service.
How a claim is scored is opaque here: a ClaimScorer receives a snapshot of
the claim and returns a VerificationResult.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal  # noqa: TC003 - used in dataclass field annotations
from typing import Any, Protocol, runtime_checkable

from aid_escrow.domain.enums import RiskLevel


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class VerificationJob:
    """A queued request to verify one claim.

    Attributes:
        claim_id: The claim to score.
        enqueued_at: Epoch milliseconds at enqueue time.
        id: Queue job id.
        attempts_made: Number of failed attempts so far.
    """

    claim_id: str
    enqueued_at: int = field(default_factory=_now_ms)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    attempts_made: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "claim_id": self.claim_id,
            "enqueued_at": self.enqueued_at,
            "attempts_made": self.attempts_made,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VerificationJob:
        return cls(
            id=str(data["id"]),
            claim_id=str(data["claim_id"]),
            enqueued_at=int(data["enqueued_at"]),
            attempts_made=int(data.get("attempts_made", 0)),
        )

    def elapsed_ms(self, now_ms: int | None = None) -> int:
        """Milliseconds since the job was enqueued."""
        return (now_ms if now_ms is not None else _now_ms()) - self.enqueued_at


@dataclass(frozen=True)
class VerificationResult:
    """Output from a claim scorer.

    Attributes:
        score: 0.0 - 1.0, higher is more trustworthy.
        confidence: 0.0 - 1.0, how sure the scorer is about ``score``.
        risk_level: Coarse classification derived from the score.
        factors: Human-readable reasons that contributed to the score.
        recommendations: Optional follow-ups for a reviewer.
        processed_at: When the result was produced.
    """

    score: float
    confidence: float
    risk_level: RiskLevel
    factors: list[str] = field(default_factory=list)
    recommendations: list[str] | None = None
    processed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        for name in ("score", "confidence"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")

    def to_dict(self) -> dict[str, Any]:
        """Serialize for storage as the job's return value."""
        details: dict[str, Any] = {
            "factors": list(self.factors),
            "risk_level": self.risk_level.value,
        }
        if self.recommendations is not None:
            details["recommendations"] = list(self.recommendations)
        return {
            "score": self.score,
            "confidence": self.confidence,
            "details": details,
            "processed_at": self.processed_at.isoformat(),
        }


@dataclass(frozen=True)
class ClaimSnapshot:
    """Read-only view of the claim fields a scorer may look at."""

    id: str
    campaign_id: str
    amount: Decimal
    recipient_ref: str
    evidence_ref: str | None
    status: str


@runtime_checkable
class ClaimScorer(Protocol):
    """Protocol that every scoring implementation must satisfy."""

    async def score(self, claim: ClaimSnapshot) -> VerificationResult:
        """Score a claim and return the verification result."""
        ...
