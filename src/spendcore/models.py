"""
Data models for UTXOs, selection policy and transaction skeletons.

Everything here is immutable once built. Entities are created fresh per spend
attempt and discarded afterwards; nothing is cached across spends.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from spendcore.constants import (
    DEFAULT_DUST_THRESHOLD,
    DEFAULT_FEE_RATE,
    DEFAULT_MAX_INPUTS,
    DEFAULT_MIN_CONFIRMATIONS,
)


class AddressType(str, Enum):
    MAIN = "main"
    RECEIVING = "receiving"
    CHANGE = "change"


class CoinSelectionStrategy(str, Enum):
    BEST_FIT = "best_fit"
    SMALLEST_FIRST = "smallest_first"
    LARGEST_FIRST = "largest_first"
    PRIVACY_FOCUSED = "privacy_focused"
    CONSOLIDATE_DUST = "consolidate_dust"
    MANUAL = "manual"


@dataclass(frozen=True)
class UnspentOutput:
    """Raw unspent output as reported by the data source"""

    txid: str
    vout: int
    value: int
    address: str
    height: int | None = None  # None or <= 0 while in the mempool
    scriptpubkey: str = ""


@dataclass(frozen=True)
class EnrichedUTXO:
    """UTXO with confirmation, age and dust classification"""

    txid: str
    vout: int
    value: int
    address: str
    confirmations: int
    is_dust: bool
    address_type: AddressType | None = None
    scriptpubkey: str = ""

    @property
    def is_confirmed(self) -> bool:
        return self.confirmations >= 1

    @property
    def age_in_blocks(self) -> int:
        """Confirmation count, used as a recency proxy."""
        return self.confirmations

    @property
    def outpoint(self) -> str:
        return f"{self.txid}:{self.vout}"


class SelectionPolicy(BaseModel):
    """How inputs are chosen and how the resulting transaction is shaped."""

    strategy: CoinSelectionStrategy = CoinSelectionStrategy.BEST_FIT
    fee_rate_per_byte: Decimal = Field(
        default=Decimal(DEFAULT_FEE_RATE), ge=0, description="Fee rate in minor units per byte"
    )
    max_inputs: int = Field(default=DEFAULT_MAX_INPUTS, ge=1)
    min_confirmations: int = Field(default=DEFAULT_MIN_CONFIRMATIONS, ge=0)
    manual_selection: list[EnrichedUTXO] | None = None
    change_address: str | None = None
    subtract_fee_from_amount: bool = False
    dust_threshold: int = Field(default=DEFAULT_DUST_THRESHOLD, ge=0)

    model_config = {"frozen": True}

    @field_validator("change_address")
    @classmethod
    def blank_change_address_is_unset(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("manual_selection")
    @classmethod
    def reject_duplicate_outpoints(
        cls, v: list[EnrichedUTXO] | None
    ) -> list[EnrichedUTXO] | None:
        if v is None:
            return v
        outpoints = [utxo.outpoint for utxo in v]
        if len(set(outpoints)) != len(outpoints):
            raise ValueError("manual_selection contains duplicate outpoints")
        return v

    @property
    def is_consolidation(self) -> bool:
        return self.strategy == CoinSelectionStrategy.CONSOLIDATE_DUST


@dataclass(frozen=True)
class SelectionResult:
    """Result of coin selection"""

    inputs: tuple[EnrichedUTXO, ...]
    total_input_value: int
    fee: int
    change_value: int
    strategy: CoinSelectionStrategy
    target_amount: int
    # Caller's override only; the address actually used is on the skeleton
    change_address: str | None = None
    iterations: int = 1

    @property
    def input_count(self) -> int:
        return len(self.inputs)

    @property
    def has_change(self) -> bool:
        return self.change_value > 0

    @property
    def efficiency(self) -> float:
        """Ratio of target amount to total input value."""
        if self.total_input_value == 0:
            return 0.0
        return self.target_amount / self.total_input_value


@dataclass(frozen=True)
class TxInput:
    """Transaction input referencing a wallet UTXO."""

    txid: str
    vout: int
    value: int
    address: str
    scriptpubkey: str = ""
    sequence: int = 0xFFFFFFFF


@dataclass(frozen=True)
class TxOutput:
    """Transaction output."""

    address: str
    value: int
    scriptpubkey: str = ""


@dataclass(frozen=True)
class TransactionSkeleton:
    """
    Balanced, unsigned transaction ready for an external signer.

    Outputs are ordered destination first, change second (if any). Input
    order is the order chosen by selection.
    """

    inputs: tuple[TxInput, ...]
    outputs: tuple[TxOutput, ...]
    fee: int
    send_amount: int
    change_index: int | None = None

    @property
    def total_input_value(self) -> int:
        return sum(inp.value for inp in self.inputs)

    @property
    def total_output_value(self) -> int:
        return sum(out.value for out in self.outputs)

    @property
    def destination_output(self) -> TxOutput:
        return self.outputs[0]

    @property
    def change_output(self) -> TxOutput | None:
        if self.change_index is None:
            return None
        return self.outputs[self.change_index]

    def to_dict(self) -> dict[str, Any]:
        """Plain representation for JSON output."""
        return {
            "inputs": [
                {"txid": inp.txid, "vout": inp.vout, "value": inp.value, "address": inp.address}
                for inp in self.inputs
            ],
            "outputs": [{"address": out.address, "value": out.value} for out in self.outputs],
            "fee": self.fee,
            "send_amount": self.send_amount,
            "change_index": self.change_index,
        }
