"""Tests for the deterministic scorer and the verification job processor."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from aid_escrow.domain.enums import RiskLevel
from aid_escrow.domain.exceptions import ClaimNotFoundError
from aid_escrow.domain.verification import ClaimScorer, ClaimSnapshot, VerificationJob
from aid_escrow.infrastructure.database.repositories import ClaimRepository
from aid_escrow.services.scoring import DeterministicClaimScorer, risk_level_for
from aid_escrow.services.verification_service import VerificationProcessor


def _snapshot(**overrides: object) -> ClaimSnapshot:
    fields = {
        "id": "11111111-1111-1111-1111-111111111111",
        "campaign_id": "22222222-2222-2222-2222-222222222222",
        "amount": Decimal("100.5"),
        "recipient_ref": "r-123",
        "evidence_ref": "e-456",
        "status": "requested",
    }
    fields.update(overrides)
    return ClaimSnapshot(**fields)


@asynccontextmanager
async def _fake_session():
    yield MagicMock()


class TestRiskLevel:
    @pytest.mark.parametrize(
        ("score", "level"),
        [(0.95, RiskLevel.LOW), (0.7, RiskLevel.LOW), (0.5, RiskLevel.MEDIUM), (0.1, RiskLevel.HIGH)],
    )
    def test_thresholds(self, score: float, level: RiskLevel) -> None:
        assert risk_level_for(score) == level


class TestDeterministicClaimScorer:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(DeterministicClaimScorer(), ClaimScorer)

    @pytest.mark.asyncio
    async def test_same_claim_same_score(self) -> None:
        scorer = DeterministicClaimScorer()
        first = await scorer.score(_snapshot())
        second = await scorer.score(_snapshot())
        assert first.score == second.score
        assert 0.0 <= first.score <= 1.0

    @pytest.mark.asyncio
    async def test_evidence_raises_score_and_confidence(self) -> None:
        scorer = DeterministicClaimScorer()
        with_evidence = await scorer.score(_snapshot())
        without = await scorer.score(_snapshot(evidence_ref=None))
        assert with_evidence.score > without.score
        assert with_evidence.confidence == 0.9
        assert without.confidence == 0.6
        assert "No evidence reference supplied" in without.factors

    @pytest.mark.asyncio
    async def test_risk_level_follows_score(self) -> None:
        result = await DeterministicClaimScorer().score(_snapshot())
        assert result.risk_level == risk_level_for(result.score)
        assert (result.recommendations is None) == (result.risk_level == RiskLevel.LOW)

    @pytest.mark.asyncio
    async def test_large_claim_gets_a_recommendation(self) -> None:
        result = await DeterministicClaimScorer().score(
            _snapshot(amount=Decimal("5000"), evidence_ref=None)
        )
        assert result.risk_level != RiskLevel.LOW
        assert "Route to a second reviewer before approval" in result.recommendations


class TestVerificationProcessor:
    @pytest.mark.asyncio
    async def test_process_returns_result_dict(self) -> None:
        claim_id = uuid.uuid4()
        claim = SimpleNamespace(
            id=claim_id,
            campaign_id=uuid.uuid4(),
            amount=Decimal("100.5"),
            recipient_ref="r-123",
            evidence_ref="e-456",
            status="requested",
        )
        progress = AsyncMock()
        processor = VerificationProcessor(DeterministicClaimScorer(), session_factory=_fake_session)

        with patch.object(ClaimRepository, "get_by_id", AsyncMock(return_value=claim)):
            result = await processor.process(VerificationJob(claim_id=str(claim_id)), progress)

        assert set(result) == {"score", "confidence", "details", "processed_at"}
        assert result["details"]["risk_level"] in {"low", "medium", "high"}
        assert [c.args[0] for c in progress.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_missing_claim_is_reraised(self) -> None:
        processor = VerificationProcessor(DeterministicClaimScorer(), session_factory=_fake_session)

        with (
            patch.object(ClaimRepository, "get_by_id", AsyncMock(return_value=None)),
            pytest.raises(ClaimNotFoundError),
        ):
            await processor.process(VerificationJob(claim_id=str(uuid.uuid4())), AsyncMock())

    @pytest.mark.asyncio
    async def test_scorer_failure_propagates_unmodified(self) -> None:
        boom = RuntimeError("model offline")
        scorer = MagicMock()
        scorer.score = AsyncMock(side_effect=boom)
        claim = SimpleNamespace(
            id=uuid.uuid4(),
            campaign_id=uuid.uuid4(),
            amount=Decimal("1"),
            recipient_ref="r",
            evidence_ref=None,
            status="requested",
        )
        processor = VerificationProcessor(scorer, session_factory=_fake_session)

        with (
            patch.object(ClaimRepository, "get_by_id", AsyncMock(return_value=claim)),
            pytest.raises(RuntimeError) as exc_info,
        ):
            await processor.process(VerificationJob(claim_id=str(claim.id)), AsyncMock())

        assert exc_info.value is boom

    def test_hooks_accept_missing_job(self) -> None:
        processor = VerificationProcessor(DeterministicClaimScorer())
        processor.on_failed(None, ValueError("malformed"))
        processor.on_stalled("job-1")
