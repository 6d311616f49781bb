"""
Tests for UTXO enrichment.
"""

from __future__ import annotations

from spendcore.models import AddressType, UnspentOutput
from spendcore.utxo import ascending_key, confirmations_at, descending_key, enrich, total_value


class TestConfirmations:
    """Tests for confirmation counting."""

    def test_mined_at_tip(self) -> None:
        """Test that an output mined in the tip block has one confirmation."""
        assert confirmations_at(100, 100) == 1

    def test_older_output(self) -> None:
        assert confirmations_at(90, 100) == 11

    def test_mempool(self) -> None:
        """Test unknown and mempool heights."""
        assert confirmations_at(None, 100) == 0
        assert confirmations_at(0, 100) == 0
        assert confirmations_at(-1, 100) == 0

    def test_height_above_tip(self) -> None:
        """Test that a height above the tip floors at zero."""
        assert confirmations_at(105, 100) == 0


class TestEnrich:
    """Tests for enrich()."""

    def test_enrich_fields(self) -> None:
        raw = [
            UnspentOutput(txid="a" * 64, vout=1, value=50_000, address="RAddr1", height=95),
            UnspentOutput(txid="b" * 64, vout=0, value=10_000, address="RAddr2"),
        ]

        utxos = enrich(raw, current_height=100, dust_threshold=10_000)

        assert [u.outpoint for u in utxos] == [f"{'a' * 64}:1", f"{'b' * 64}:0"]
        assert utxos[0].confirmations == 6
        assert utxos[0].is_confirmed
        assert utxos[0].age_in_blocks == 6
        assert not utxos[0].is_dust
        assert utxos[1].confirmations == 0
        assert not utxos[1].is_confirmed
        # At the threshold counts as dust
        assert utxos[1].is_dust

    def test_address_types(self) -> None:
        raw = [
            UnspentOutput(txid="a" * 64, vout=0, value=1, address="RMain"),
            UnspentOutput(txid="b" * 64, vout=0, value=1, address="RUnknown"),
        ]

        utxos = enrich(raw, 10, address_types={"RMain": AddressType.MAIN})

        assert utxos[0].address_type == AddressType.MAIN
        assert utxos[1].address_type is None

    def test_enrich_is_pure(self) -> None:
        """Test that the same input gives the same output."""
        raw = [UnspentOutput(txid="c" * 64, vout=2, value=12_345, address="RAddr", height=7)]
        assert enrich(raw, 20) == enrich(raw, 20)

    def test_total_value(self) -> None:
        raw = [
            UnspentOutput(txid="a" * 64, vout=0, value=100, address="R"),
            UnspentOutput(txid="a" * 64, vout=1, value=250, address="R"),
        ]
        assert total_value(enrich(raw, 1)) == 350


class TestSortKeys:
    """Tests for deterministic orderings."""

    def test_ties_prefer_confirmations_then_txid(self, make_utxo) -> None:
        fresh = make_utxo(1000, confirmations=1, txid="0" * 64)
        old_b = make_utxo(1000, confirmations=50, txid="b" * 64)
        old_a = make_utxo(1000, confirmations=50, txid="a" * 64)

        assert sorted([fresh, old_b, old_a], key=ascending_key) == [old_a, old_b, fresh]
        assert sorted([fresh, old_b, old_a], key=descending_key) == [old_a, old_b, fresh]

    def test_value_order(self, make_utxo) -> None:
        small = make_utxo(10)
        big = make_utxo(20)

        assert sorted([big, small], key=ascending_key) == [small, big]
        assert sorted([small, big], key=descending_key) == [big, small]
