"""
UTXO source backed by an in-memory snapshot.

Snapshot format (JSON)::

    {
        "height": 850000,
        "utxos": {
            "<address>": [
                {"txid": "...", "vout": 0, "value": 50000000, "height": 849990}
            ]
        }
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger

from spendcore.backends.base import UTXOSource
from spendcore.models import UnspentOutput


class StaticUTXOSource(UTXOSource):
    """Serves UTXOs and chain height from a fixed snapshot."""

    def __init__(self, height: int, utxos: dict[str, list[UnspentOutput]] | None = None):
        if height < 0:
            raise ValueError(f"Block height must be non-negative, got {height}")
        self.height = height
        self.utxos = utxos or {}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StaticUTXOSource:
        """Build a source from a parsed snapshot."""
        utxos: dict[str, list[UnspentOutput]] = {}
        for address, entries in data.get("utxos", {}).items():
            utxos[address] = [
                UnspentOutput(
                    txid=entry["txid"],
                    vout=int(entry["vout"]),
                    value=int(entry["value"]),
                    address=address,
                    height=entry.get("height"),
                    scriptpubkey=entry.get("scriptpubkey", ""),
                )
                for entry in entries
            ]
        return cls(height=int(data["height"]), utxos=utxos)

    @classmethod
    def from_file(cls, path: Path) -> StaticUTXOSource:
        """Load a snapshot from a JSON file."""
        data = json.loads(path.read_text())
        source = cls.from_dict(data)
        logger.debug(
            f"Loaded snapshot {path}: height {source.height}, "
            f"{sum(len(u) for u in source.utxos.values())} UTXOs "
            f"across {len(source.utxos)} addresses"
        )
        return source

    @property
    def addresses(self) -> list[str]:
        return list(self.utxos)

    async def get_utxos(self, address: str) -> list[UnspentOutput]:
        return list(self.utxos.get(address, []))

    async def get_block_height(self) -> int:
        return self.height
