"""Onchain Adapter Protocol.

Defines the capability set every settlement backend must provide. Exactly
one implementation is selected per deployment, at startup, by
aid_escrow.onchain.build_onchain_adapter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003 - used in dataclass field annotations
from typing import Any, Literal, Protocol, runtime_checkable

TxStatus = Literal["success", "pending", "failed"]


@dataclass(frozen=True)
class InitEscrowResult:
    escrow_address: str
    transaction_hash: str
    status: TxStatus
    timestamp: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CreateClaimResult:
    package_id: str
    transaction_hash: str
    status: TxStatus
    timestamp: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DisburseResult:
    transaction_hash: str
    amount_disbursed: str
    status: TxStatus
    timestamp: datetime
    metadata: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class OnchainAdapter(Protocol):
    """Boundary to the distributed-ledger settlement backend.

    Amounts cross this boundary as decimal strings in the token's smallest
    unit representation chosen by the backend.
    """

    name: str

    async def init_escrow(self, admin_address: str) -> InitEscrowResult: ...

    async def create_claim(
        self,
        claim_id: str,
        recipient_address: str,
        amount: str,
        token_address: str,
        expires_at: datetime | None = None,
    ) -> CreateClaimResult: ...

    async def disburse(
        self,
        claim_id: str,
        package_id: str,
        recipient_address: str,
        amount: str | None = None,
    ) -> DisburseResult: ...
