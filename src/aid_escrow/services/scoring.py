"""DeterministicClaimScorer — placeholder scoring for claim verification.

The production scoring model is not part of this service. Until it is, this
scorer produces a stable result per claim: a sha256-derived baseline
adjusted by a few visible signals (evidence present, amount size). The
same claim always scores the same, which keeps retries idempotent.
"""

from __future__ import annotations

import hashlib
from decimal import Decimal
from typing import TYPE_CHECKING

from aid_escrow.domain.enums import RiskLevel
from aid_escrow.domain.verification import VerificationResult

if TYPE_CHECKING:
    from aid_escrow.domain.verification import ClaimSnapshot

LOW_RISK_THRESHOLD = 0.7
MEDIUM_RISK_THRESHOLD = 0.4
LARGE_AMOUNT = Decimal("1000")


def risk_level_for(score: float) -> RiskLevel:
    if score >= LOW_RISK_THRESHOLD:
        return RiskLevel.LOW
    if score >= MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


class DeterministicClaimScorer:
    """Scores claims from their own fields, with no external calls."""

    def __init__(self, large_amount: Decimal = LARGE_AMOUNT) -> None:
        self._large_amount = large_amount

    async def score(self, claim: ClaimSnapshot) -> VerificationResult:
        digest = hashlib.sha256(f"verify-{claim.id}".encode()).hexdigest()
        baseline = int(digest[:8], 16) / 0xFFFFFFFF
        score = 0.5 + 0.4 * baseline
        factors: list[str] = []
        recommendations: list[str] = []

        if claim.evidence_ref:
            score += 0.1
            factors.append("Evidence reference supplied")
        else:
            score -= 0.3
            factors.append("No evidence reference supplied")
            recommendations.append("Request supporting evidence from the recipient")

        if claim.amount > self._large_amount:
            score -= 0.15
            factors.append("Amount above review threshold")
            recommendations.append("Route to a second reviewer before approval")

        score = round(max(0.0, min(1.0, score)), 4)
        confidence = 0.9 if claim.evidence_ref else 0.6
        risk = risk_level_for(score)

        return VerificationResult(
            score=score,
            confidence=confidence,
            risk_level=risk,
            factors=factors,
            recommendations=recommendations if risk != RiskLevel.LOW else None,
        )
