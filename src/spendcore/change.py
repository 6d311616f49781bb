"""
HD change address resolution.

Key derivation is owned by the wallet subsystem and consumed here as a
capability. Deriving needs the wallet secret, so the resolver only asks for it
when a change output actually exists. Callers that cannot (or do not want to)
authenticate simply do not pass a resolver to the assembler, which then falls
back to the first input's address.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from loguru import logger

from spendcore.constants import (
    CHANGE_CHAIN,
    DEFAULT_ACCOUNT_INDEX,
    DEFAULT_CHANGE_ADDRESS_COUNT,
    DEFAULT_COIN_TYPE,
)
from spendcore.errors import AuthenticationRequired, ChangeAddressError, DerivationFailed


@dataclass(frozen=True)
class DerivedAddress:
    """Address derived from the wallet seed."""

    path: str
    address: str
    balance: int = 0
    has_transactions: bool = False


class AddressDeriver(Protocol):
    def derive_addresses(
        self,
        password: str,
        account_index: int,
        count: int,
        address_type: str,
        chain_type: int,
        coin_type: int,
    ) -> list[DerivedAddress]:
        """Derive ``count`` addresses at m/44'/coin'/account'/chain/i."""
        ...


class ChangeAddressResolver(Protocol):
    def resolve_change_address(self) -> str:
        """Return a change address or raise ChangeAddressError."""
        ...


class HDChangeAddressResolver:
    """
    Supplies a change address from the wallet's HD change chain.

    Prefers the first derived address that has never been used, falling back
    to the first derived address when every candidate has history.
    """

    def __init__(
        self,
        deriver: AddressDeriver,
        password: str | None,
        account_index: int = DEFAULT_ACCOUNT_INDEX,
        count: int = DEFAULT_CHANGE_ADDRESS_COUNT,
        address_type: str = "p2pkh",
        coin_type: int = DEFAULT_COIN_TYPE,
    ):
        if count < 1:
            raise ValueError(f"Change address count must be at least 1, got {count}")

        self.deriver = deriver
        self.password = password
        self.account_index = account_index
        self.count = count
        self.address_type = address_type
        self.coin_type = coin_type

    def derive_change_addresses(self) -> list[DerivedAddress]:
        if not self.password:
            raise AuthenticationRequired("Wallet password required to derive change addresses")

        try:
            addresses = self.deriver.derive_addresses(
                self.password,
                self.account_index,
                self.count,
                self.address_type,
                CHANGE_CHAIN,
                self.coin_type,
            )
        except ChangeAddressError:
            raise
        except Exception as e:
            raise DerivationFailed(f"Change address derivation failed: {e}") from e

        if not addresses:
            raise DerivationFailed("Derivation returned no change addresses")
        return addresses

    def resolve_change_address(self) -> str:
        addresses = self.derive_change_addresses()

        for derived in addresses:
            if not derived.has_transactions:
                logger.debug(f"Using unused HD change address {derived.path}")
                return derived.address

        logger.debug(
            f"All {len(addresses)} derived change addresses have history, "
            f"reusing {addresses[0].path}"
        )
        return addresses[0].address
