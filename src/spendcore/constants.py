"""
Coin selection and transaction construction constants.

Amounts are integer minor units (satoshi-equivalents). Sizes are bytes for the
legacy P2PKH layout and virtual bytes for the SegWit layout.
"""

from __future__ import annotations

# Wallet dust policy: UTXOs and change at or below this value are uneconomical.
# This is a wallet policy, not a consensus rule.
DEFAULT_DUST_THRESHOLD = 10_000

# Default fee rate in minor units per byte (10 000 per kilobyte)
DEFAULT_FEE_RATE = 10

DEFAULT_MAX_INPUTS = 20
DEFAULT_MIN_CONFIRMATIONS = 0

# PRIVACY_FOCUSED never spends fewer inputs than this
PRIVACY_MIN_INPUTS = 2

# Bounded refinement steps for BEST_FIT after the initial accumulation
BEST_FIT_SWAP_ATTEMPTS = 8

# Fee/selection fixpoint iterations before giving up
MAX_FEE_ITERATIONS = 4

# Legacy P2PKH sizes (Avian)
P2PKH_INPUT_SIZE = 148
P2PKH_OUTPUT_SIZE = 34
P2PKH_TX_OVERHEAD = 10

# SegWit P2WPKH virtual sizes
P2WPKH_INPUT_VSIZE = 68
P2WPKH_OUTPUT_VSIZE = 31
P2WPKH_TX_OVERHEAD = 11

# HD wallet defaults: m/44'/921'/{account}'/{chain}/{index}
DEFAULT_COIN_TYPE = 921
DEFAULT_ACCOUNT_INDEX = 0
DEFAULT_CHANGE_ADDRESS_COUNT = 5
CHANGE_CHAIN = 1

# recommend_strategy thresholds
CONSOLIDATION_DUST_COUNT = 5
HIGH_SPEND_RATIO = 0.8
