"""
Tests for fee estimation.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from spendcore.fees import (
    DEFAULT_FEE_MODEL,
    P2PKH_FEE_MODEL,
    P2WPKH_FEE_MODEL,
    FeeModel,
    FeeModelType,
    estimate_fee,
    estimate_size,
    get_fee_model,
)


class TestEstimateSize:
    """Tests for transaction size estimation."""

    def test_p2pkh_one_input_two_outputs(self) -> None:
        """Test legacy size: 10 overhead + 148 per input + 34 per output."""
        assert estimate_size(1, 2) == 10 + 148 + 2 * 34

    def test_p2wpkh_one_input_two_outputs(self) -> None:
        """Test SegWit vsize: 11 overhead + 68 per input + 31 per output."""
        assert estimate_size(1, 2, P2WPKH_FEE_MODEL) == 11 + 68 + 2 * 31

    def test_zero_counts(self) -> None:
        """Test that an empty transaction is just the overhead."""
        assert estimate_size(0, 0) == DEFAULT_FEE_MODEL.overhead

    def test_negative_counts_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            estimate_size(-1, 1)
        with pytest.raises(ValueError, match="non-negative"):
            estimate_size(1, -1)


class TestEstimateFee:
    """Tests for fee calculation."""

    def test_integer_rate(self) -> None:
        """Test 226 bytes at 10 per byte."""
        assert estimate_fee(1, 2, 10) == 2260

    def test_fractional_rate_rounds_up(self) -> None:
        """Test that fractional fees are rounded up, never down."""
        # 192 bytes * 0.1 = 19.2
        assert estimate_fee(1, 1, Decimal("0.1")) == 20
        assert estimate_fee(1, 1, 0.1) == 20

    def test_exact_fractional_rate(self) -> None:
        assert estimate_fee(1, 1, Decimal("0.5")) == 96

    def test_zero_rate(self) -> None:
        assert estimate_fee(5, 2, 0) == 0

    def test_negative_rate_rejected(self) -> None:
        with pytest.raises(ValueError, match="Fee rate"):
            estimate_fee(1, 1, -1)

    def test_nan_rate_rejected(self) -> None:
        with pytest.raises(ValueError, match="Fee rate"):
            estimate_fee(1, 1, Decimal("NaN"))

    def test_monotonic_in_inputs(self) -> None:
        """Test that adding inputs never lowers the fee."""
        fees = [estimate_fee(n, 1, Decimal("3.7")) for n in range(0, 30)]
        assert fees == sorted(fees)

    def test_monotonic_in_outputs(self) -> None:
        """Test that adding outputs never lowers the fee."""
        fees = [estimate_fee(2, n, Decimal("3.7"), P2WPKH_FEE_MODEL) for n in range(0, 10)]
        assert fees == sorted(fees)


class TestFeeModel:
    """Tests for fee model lookup."""

    def test_lookup_by_name(self) -> None:
        assert get_fee_model("p2wpkh") is P2WPKH_FEE_MODEL
        assert get_fee_model(FeeModelType.P2PKH) is P2PKH_FEE_MODEL

    def test_unknown_model(self) -> None:
        with pytest.raises(ValueError):
            get_fee_model("p2tr")

    def test_negative_sizes_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            FeeModel(input_size=-1, output_size=34, overhead=10)

    def test_custom_model(self) -> None:
        """Test a custom size model."""
        model = FeeModel(input_size=100, output_size=40, overhead=0)
        assert estimate_fee(2, 1, 2, model) == 480
