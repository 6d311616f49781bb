"""
Pytest configuration and fixtures for spendcore tests.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from spendcore.constants import DEFAULT_DUST_THRESHOLD
from spendcore.models import AddressType, EnrichedUTXO

UTXOFactory = Callable[..., EnrichedUTXO]


@pytest.fixture
def make_utxo() -> UTXOFactory:
    """Factory for enriched UTXOs with unique outpoints."""
    counter = 0

    def _make(
        value: int,
        confirmations: int = 6,
        txid: str | None = None,
        vout: int = 0,
        address: str = "RWalletAddress1",
        address_type: AddressType | None = None,
    ) -> EnrichedUTXO:
        nonlocal counter
        counter += 1
        return EnrichedUTXO(
            txid=txid or f"{counter:064x}",
            vout=vout,
            value=value,
            address=address,
            confirmations=confirmations,
            is_dust=value <= DEFAULT_DUST_THRESHOLD,
            address_type=address_type,
        )

    return _make


@pytest.fixture
def mainnet_address() -> str:
    """BIP-0173 P2WPKH test vector"""
    return "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4"
