"""Onchain adapter selection.

``build_onchain_adapter`` is called once when the application (or worker)
is created, so a misconfigured deployment fails at startup rather than on
the first claim.

Usage:
    adapter = build_onchain_adapter(get_settings())
    result = await adapter.create_claim(...)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from aid_escrow.domain.exceptions import OnchainConfigurationError
from aid_escrow.domain.onchain import OnchainAdapter
from aid_escrow.onchain.mock import MockOnchainAdapter

if TYPE_CHECKING:
    from aid_escrow.config import Settings


def build_onchain_adapter(settings: Settings) -> OnchainAdapter:
    """Create the adapter named by ``settings.onchain_adapter``.

    Raises:
        OnchainConfigurationError: If the adapter is known but not available
            in this build (``soroban``).
    """
    adapter = settings.onchain_adapter
    if adapter == "mock":
        return MockOnchainAdapter()
    if adapter == "soroban":
        raise OnchainConfigurationError(
            "Soroban adapter not yet implemented. Use ONCHAIN_ADAPTER=mock"
        )
    raise OnchainConfigurationError(
        f"Unknown ONCHAIN_ADAPTER: {adapter}. Supported values: mock, soroban"
    )


__all__ = ["MockOnchainAdapter", "OnchainAdapter", "build_onchain_adapter"]
