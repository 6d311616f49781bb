"""
UTXO enrichment.

Turns raw unspent outputs into EnrichedUTXO records carrying confirmation
count, age and dust classification. Pure: the result depends only on the
arguments and is recomputed for every selection request.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from spendcore.constants import DEFAULT_DUST_THRESHOLD
from spendcore.models import AddressType, EnrichedUTXO, UnspentOutput


def confirmations_at(height: int | None, current_height: int) -> int:
    """
    Number of confirmations of an output mined at ``height``.

    Unknown or mempool heights (None, <= 0) have zero confirmations. Heights
    above the current tip (after a reorg) floor at zero, never negative.
    """
    if height is None or height <= 0:
        return 0
    return max(0, current_height - height + 1)


def enrich(
    raw_utxos: Iterable[UnspentOutput],
    current_height: int,
    dust_threshold: int = DEFAULT_DUST_THRESHOLD,
    address_types: Mapping[str, AddressType] | None = None,
) -> list[EnrichedUTXO]:
    """
    Enrich raw UTXOs for selection.

    Args:
        raw_utxos: UTXOs as reported by the data source
        current_height: Current chain tip height
        dust_threshold: Values at or below this are classified as dust
        address_types: Optional owning-address -> AddressType tags

    Returns:
        Enriched UTXOs in input order
    """
    types = address_types or {}
    return [
        EnrichedUTXO(
            txid=utxo.txid,
            vout=utxo.vout,
            value=utxo.value,
            address=utxo.address,
            confirmations=confirmations_at(utxo.height, current_height),
            is_dust=utxo.value <= dust_threshold,
            address_type=types.get(utxo.address),
            scriptpubkey=utxo.scriptpubkey,
        )
        for utxo in raw_utxos
    ]


def total_value(utxos: Iterable[EnrichedUTXO]) -> int:
    """Sum of UTXO values."""
    return sum(utxo.value for utxo in utxos)


def ascending_key(utxo: EnrichedUTXO) -> tuple[int, int, str, int]:
    """Value ascending; ties prefer more confirmations, then smaller txid."""
    return (utxo.value, -utxo.confirmations, utxo.txid, utxo.vout)


def descending_key(utxo: EnrichedUTXO) -> tuple[int, int, str, int]:
    """Value descending; ties prefer more confirmations, then smaller txid."""
    return (-utxo.value, -utxo.confirmations, utxo.txid, utxo.vout)
