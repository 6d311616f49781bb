"""
spendcore - Coin selection and transaction construction for wallets

Turns a set of owned UTXOs, a destination and an amount into a balanced,
unsigned transaction skeleton for an external signer.
"""

__version__ = "0.1.0"

from spendcore.assembler import TransactionAssembler, assemble
from spendcore.change import DerivedAddress, HDChangeAddressResolver
from spendcore.errors import (
    AmountBelowDustAfterFee,
    AuthenticationRequired,
    ChangeAddressError,
    DerivationFailed,
    InsufficientFunds,
    InsufficientManualSelection,
    NetworkError,
    SelectionDidNotConverge,
    SelectionError,
    SpendError,
)
from spendcore.fees import FeeModel, FeeModelType, estimate_fee, estimate_size
from spendcore.models import (
    AddressType,
    CoinSelectionStrategy,
    EnrichedUTXO,
    SelectionPolicy,
    SelectionResult,
    TransactionSkeleton,
    TxInput,
    TxOutput,
    UnspentOutput,
)
from spendcore.planner import SpendPlanner
from spendcore.selection import (
    CoinSelector,
    StrategyRecommendation,
    recommend_strategy,
    select_utxos,
    validate_selection,
)
from spendcore.utxo import enrich

__all__ = [
    "AddressType",
    "AmountBelowDustAfterFee",
    "AuthenticationRequired",
    "ChangeAddressError",
    "CoinSelectionStrategy",
    "CoinSelector",
    "DerivationFailed",
    "DerivedAddress",
    "EnrichedUTXO",
    "FeeModel",
    "FeeModelType",
    "HDChangeAddressResolver",
    "InsufficientFunds",
    "InsufficientManualSelection",
    "NetworkError",
    "SelectionDidNotConverge",
    "SelectionError",
    "SelectionPolicy",
    "SelectionResult",
    "SpendError",
    "SpendPlanner",
    "StrategyRecommendation",
    "TransactionAssembler",
    "TransactionSkeleton",
    "TxInput",
    "TxOutput",
    "UnspentOutput",
    "assemble",
    "enrich",
    "estimate_fee",
    "estimate_size",
    "recommend_strategy",
    "select_utxos",
    "validate_selection",
]
