"""MockOnchainAdapter — deterministic stand-in for the settlement backend.

Used in development and tests. Responses are derived from the inputs with
sha256 so repeated calls are predictable without any network access.
"""

from __future__ import annotations

import hashlib
import time
from datetime import UTC, datetime

from aid_escrow.domain.onchain import (
    CreateClaimResult,
    DisburseResult,
    InitEscrowResult,
)
from aid_escrow.logging_config import get_logger

logger = get_logger(__name__)

MOCK_ESCROW_ADDRESS = "GAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAWHF"
DEFAULT_DISBURSE_AMOUNT = "1000000000"  # 1000.0000000 in stroops


def mock_transaction_hash(seed: str) -> str:
    """64 upper-case hex characters derived from ``seed``."""
    return hashlib.sha256(seed.encode()).hexdigest()[:64].upper()


def mock_package_id(claim_id: str) -> str:
    """Decimal package id from the first 16 hex digits of sha256("package-<id>")."""
    digest = hashlib.sha256(f"package-{claim_id}".encode()).hexdigest()
    return str(int(digest[:16], 16))


def _nonce() -> int:
    return time.time_ns()


class MockOnchainAdapter:
    """Mock implementation of the OnchainAdapter protocol."""

    name = "mock"

    async def init_escrow(self, admin_address: str) -> InitEscrowResult:
        transaction_hash = mock_transaction_hash(f"init-{admin_address}-{_nonce()}")
        logger.info("onchain.mock.init_escrow", admin=admin_address, tx=transaction_hash)
        return InitEscrowResult(
            escrow_address=MOCK_ESCROW_ADDRESS,
            transaction_hash=transaction_hash,
            status="success",
            timestamp=datetime.now(UTC),
            metadata={"admin_address": admin_address, "adapter": self.name},
        )

    async def create_claim(
        self,
        claim_id: str,
        recipient_address: str,
        amount: str,
        token_address: str,
        expires_at: datetime | None = None,
    ) -> CreateClaimResult:
        package_id = mock_package_id(claim_id)
        transaction_hash = mock_transaction_hash(f"create-{claim_id}-{package_id}-{_nonce()}")
        logger.info("onchain.mock.create_claim", claim_id=claim_id, package_id=package_id)
        return CreateClaimResult(
            package_id=package_id,
            transaction_hash=transaction_hash,
            status="success",
            timestamp=datetime.now(UTC),
            metadata={
                "claim_id": claim_id,
                "recipient_address": recipient_address,
                "amount": amount,
                "token_address": token_address,
                "expires_at": expires_at.isoformat() if expires_at else None,
                "adapter": self.name,
            },
        )

    async def disburse(
        self,
        claim_id: str,
        package_id: str,
        recipient_address: str,
        amount: str | None = None,
    ) -> DisburseResult:
        transaction_hash = mock_transaction_hash(f"disburse-{claim_id}-{package_id}-{_nonce()}")
        logger.info("onchain.mock.disburse", claim_id=claim_id, package_id=package_id)
        return DisburseResult(
            transaction_hash=transaction_hash,
            amount_disbursed=amount or DEFAULT_DISBURSE_AMOUNT,
            status="success",
            timestamp=datetime.now(UTC),
            metadata={
                "claim_id": claim_id,
                "package_id": package_id,
                "recipient_address": recipient_address,
                "adapter": self.name,
            },
        )
