"""
Transaction fee estimation.

The fee depends on the number of inputs selected, which in turn depends on
the fee, so selection calls back into this module on every fixpoint iteration.
Estimates are monotonically non-decreasing in both input and output count.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from spendcore.constants import (
    P2PKH_INPUT_SIZE,
    P2PKH_OUTPUT_SIZE,
    P2PKH_TX_OVERHEAD,
    P2WPKH_INPUT_VSIZE,
    P2WPKH_OUTPUT_VSIZE,
    P2WPKH_TX_OVERHEAD,
)


class FeeModelType(str, Enum):
    P2PKH = "p2pkh"
    P2WPKH = "p2wpkh"


@dataclass(frozen=True)
class FeeModel:
    """Fixed per-input, per-output and base transaction sizes."""

    input_size: int
    output_size: int
    overhead: int

    def __post_init__(self) -> None:
        if min(self.input_size, self.output_size, self.overhead) < 0:
            raise ValueError("Fee model sizes must be non-negative")


P2PKH_FEE_MODEL = FeeModel(P2PKH_INPUT_SIZE, P2PKH_OUTPUT_SIZE, P2PKH_TX_OVERHEAD)
P2WPKH_FEE_MODEL = FeeModel(P2WPKH_INPUT_VSIZE, P2WPKH_OUTPUT_VSIZE, P2WPKH_TX_OVERHEAD)

FEE_MODELS: dict[FeeModelType, FeeModel] = {
    FeeModelType.P2PKH: P2PKH_FEE_MODEL,
    FeeModelType.P2WPKH: P2WPKH_FEE_MODEL,
}

DEFAULT_FEE_MODEL = P2PKH_FEE_MODEL


def get_fee_model(model_type: FeeModelType | str) -> FeeModel:
    """Look up a fee model by name."""
    return FEE_MODELS[FeeModelType(model_type)]


def estimate_size(input_count: int, output_count: int, model: FeeModel = DEFAULT_FEE_MODEL) -> int:
    """
    Estimate transaction size in bytes.

    P2PKH inputs: 148 bytes each, outputs: 34 bytes each, overhead: 10 bytes
    (SegWit: 68 / 31 / 11 vbytes)
    """
    if input_count < 0 or output_count < 0:
        raise ValueError(
            f"Input and output counts must be non-negative, got {input_count}/{output_count}"
        )
    return model.overhead + input_count * model.input_size + output_count * model.output_size


def estimate_fee(
    input_count: int,
    output_count: int,
    fee_rate_per_byte: int | Decimal,
    model: FeeModel = DEFAULT_FEE_MODEL,
) -> int:
    """
    Calculate transaction fee from the estimated size.

    Args:
        input_count: Number of inputs
        output_count: Number of outputs
        fee_rate_per_byte: Minor units per byte, may be fractional
        model: Size model for inputs and outputs

    Returns:
        Fee in minor units, rounded up
    """
    if isinstance(fee_rate_per_byte, float):
        # via str() so that 0.1 stays 0.1
        rate = Decimal(str(fee_rate_per_byte))
    else:
        rate = Decimal(fee_rate_per_byte)
    if rate.is_nan() or rate < 0:
        raise ValueError(f"Fee rate must be non-negative, got {fee_rate_per_byte}")

    size = estimate_size(input_count, output_count, model)
    return math.ceil(size * rate)
