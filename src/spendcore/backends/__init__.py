"""
UTXO data sources.

Available sources:
- StaticUTXOSource: Fixed snapshot, in memory or loaded from JSON
"""

from spendcore.backends.base import UTXOSource
from spendcore.backends.static import StaticUTXOSource

__all__ = [
    "StaticUTXOSource",
    "UTXOSource",
]
