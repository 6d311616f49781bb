"""
Spend planner: the application-facing entry point.

Fetches UTXOs and the chain height from a UTXOSource, then runs the pure
pipeline enrichment -> selection -> assembly. The planner is the caller the
engine expects: it holds a lock for the whole plan so that two spends never
select from the same snapshot concurrently.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping

from loguru import logger

from spendcore.assembler import TransactionAssembler
from spendcore.backends.base import UTXOSource
from spendcore.change import AddressDeriver, ChangeAddressResolver, HDChangeAddressResolver
from spendcore.config import Settings
from spendcore.models import (
    AddressType,
    EnrichedUTXO,
    SelectionPolicy,
    SelectionResult,
    TransactionSkeleton,
)
from spendcore.selection import CoinSelector, StrategyRecommendation, recommend_strategy
from spendcore.utxo import enrich


class SpendPlanner:
    """
    Plans spends from a set of wallet addresses.

    Network errors from the source propagate unchanged; the planner does not
    retry.
    """

    def __init__(
        self,
        source: UTXOSource,
        addresses: list[str],
        settings: Settings | None = None,
        address_types: Mapping[str, AddressType] | None = None,
    ):
        if not addresses:
            raise ValueError("At least one wallet address is required")

        self.source = source
        self.addresses = list(addresses)
        self.settings = settings or Settings()
        self.address_types = dict(address_types or {})
        self.selector = CoinSelector(
            fee_model=self.settings.get_fee_model(),
            swap_attempts=self.settings.best_fit_swap_attempts,
            privacy_min_inputs=self.settings.privacy_min_inputs,
            max_iterations=self.settings.max_fee_iterations,
        )
        self._lock = asyncio.Lock()

    def hd_change_resolver(
        self, deriver: AddressDeriver, password: str | None
    ) -> HDChangeAddressResolver:
        """HD change resolver configured from settings."""
        return HDChangeAddressResolver(
            deriver,
            password,
            account_index=self.settings.account_index,
            count=self.settings.change_address_count,
            address_type=self.settings.address_type,
            coin_type=self.settings.coin_type,
        )

    async def fetch_utxos(self) -> list[EnrichedUTXO]:
        """Fetch and enrich the current UTXO set."""
        raw = await self.source.get_utxos_for_addresses(self.addresses)
        height = await self.source.get_block_height()
        utxos = enrich(raw, height, self.settings.dust_threshold, self.address_types)
        logger.debug(f"Fetched {len(utxos)} UTXOs at height {height}")
        return utxos

    async def preview(self, amount: int, policy: SelectionPolicy) -> SelectionResult:
        """Run selection only, without assembling."""
        async with self._lock:
            utxos = await self.fetch_utxos()
            return self.selector.select(utxos, amount, policy)

    async def recommend(
        self,
        amount: int,
        prioritize_fees: bool = False,
        prioritize_privacy: bool = False,
        consolidate_dust: bool = False,
    ) -> StrategyRecommendation:
        utxos = await self.fetch_utxos()
        return recommend_strategy(
            amount,
            utxos,
            prioritize_fees=prioritize_fees,
            prioritize_privacy=prioritize_privacy,
            consolidate_dust=consolidate_dust,
        )

    async def plan(
        self,
        destination: str,
        amount: int,
        policy: SelectionPolicy | None = None,
        change_resolver: ChangeAddressResolver | None = None,
    ) -> TransactionSkeleton:
        """
        Plan a spend.

        Args:
            destination: Recipient address
            amount: Amount in minor units
            policy: Selection policy, defaults from settings
            change_resolver: Optional HD change resolver

        Returns:
            Balanced TransactionSkeleton ready for signing
        """
        policy = policy or self.settings.default_policy()

        async with self._lock:
            utxos = await self.fetch_utxos()
            selection = self.selector.select(utxos, amount, policy)
            skeleton = TransactionAssembler(change_resolver).assemble(
                selection, destination, amount, policy
            )

        logger.info(
            f"Planned {policy.strategy.value} spend of {amount} to {destination}: "
            f"{len(skeleton.inputs)} inputs, fee {skeleton.fee}"
        )
        return skeleton
