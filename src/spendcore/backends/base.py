"""
UTXO data source interface.

The engine never talks to the network itself. Callers fetch UTXOs and the
chain height through a UTXOSource, await both, and only then run selection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from spendcore.models import UnspentOutput


class UTXOSource(ABC):
    """
    Abstract UTXO data source.

    Implementations may raise spendcore.errors.NetworkError on transient
    failures. Nothing in spendcore retries; retry policy belongs to the caller.
    """

    @abstractmethod
    async def get_utxos(self, address: str) -> list[UnspentOutput]:
        """Get unspent outputs owned by an address"""

    @abstractmethod
    async def get_block_height(self) -> int:
        """Get current blockchain height"""

    async def get_utxos_for_addresses(self, addresses: list[str]) -> list[UnspentOutput]:
        """Get UTXOs for several addresses, preserving address order."""
        utxos: list[UnspentOutput] = []
        for address in addresses:
            utxos.extend(await self.get_utxos(address))
        return utxos

    async def close(self) -> None:
        """Close backend connection"""
        pass
