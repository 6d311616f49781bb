"""
Exception hierarchy for coin selection and transaction assembly.

All selection and assembly errors are deterministic: the same UTXO snapshot
and policy always raise the same error.
"""

from __future__ import annotations


class SpendError(Exception):
    """Base class for all spend planning errors."""

    pass


class SelectionError(SpendError):
    """Raised when no input set can be chosen."""

    pass


class InsufficientFunds(SelectionError):
    """No feasible subset covers the target under the policy constraints."""

    def __init__(self, required: int, available: int, detail: str = "") -> None:
        self.required = required
        self.available = available
        message = f"Insufficient funds: need {required}, have {available}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class InsufficientManualSelection(SelectionError):
    """The manually chosen UTXOs are empty or do not cover amount plus fee."""

    pass


class SelectionDidNotConverge(SelectionError):
    """The fee/selection fixpoint did not settle within the iteration bound.

    Monotonic fee growth makes this unreachable for sane inputs, so it is
    surfaced as an internal invariant violation rather than retried.
    """

    pass


class AmountBelowDustAfterFee(SpendError):
    """The amount reaching the destination would be at or below dust."""

    def __init__(self, send_amount: int, dust_threshold: int) -> None:
        self.send_amount = send_amount
        self.dust_threshold = dust_threshold
        super().__init__(
            f"Amount after fee ({send_amount}) is at or below dust threshold {dust_threshold}"
        )


class ChangeAddressError(SpendError):
    """HD change address could not be obtained."""

    pass


class AuthenticationRequired(ChangeAddressError):
    """Deriving addresses needs the wallet secret and none was supplied."""

    pass


class DerivationFailed(ChangeAddressError):
    """Address derivation failed or returned nothing usable."""

    pass


class NetworkError(SpendError):
    """Transient failure of the UTXO data source. Never retried here."""

    pass
