"""
Coin selection strategies for wallet spending.

Selection and fee estimation depend on each other: the fee grows with the
number of inputs, and the number of inputs grows with the amount to cover.
CoinSelector.select() therefore iterates to a fixpoint:

1. Assume an input count (starting at 1)
2. Run the strategy against target + fee, where the fee is charged for
   max(assumed, picked) inputs as the strategy adds them
3. Recompute the fee for the inputs actually chosen
4. Accept if the selection still covers target + that fee, otherwise repeat
   with the chosen count

Strategies grow the requirement by one input's fee for every input they add,
so a successful pass already covers its own fee and the first iteration
normally settles. The bound (max_iterations) guards the invariant.

The selector is pure and performs no I/O. It does not lock anything either:
two concurrent selections over the same UTXO snapshot can pick the same
outputs, so callers must serialise spends against one wallet.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from loguru import logger

from spendcore.constants import (
    BEST_FIT_SWAP_ATTEMPTS,
    CONSOLIDATION_DUST_COUNT,
    HIGH_SPEND_RATIO,
    MAX_FEE_ITERATIONS,
    PRIVACY_MIN_INPUTS,
)
from spendcore.errors import (
    InsufficientFunds,
    InsufficientManualSelection,
    SelectionDidNotConverge,
)
from spendcore.fees import DEFAULT_FEE_MODEL, FeeModel, estimate_fee
from spendcore.models import (
    AddressType,
    CoinSelectionStrategy,
    EnrichedUTXO,
    SelectionPolicy,
    SelectionResult,
)
from spendcore.utxo import ascending_key, descending_key, total_value

# Requirement (target plus fee, or target alone with subtract-fee) for n inputs
Requirement = Callable[[int], int]
StrategyFunc = Callable[[list[EnrichedUTXO], Requirement, SelectionPolicy], list[EnrichedUTXO]]


@dataclass(frozen=True)
class StrategyRecommendation:
    strategy: CoinSelectionStrategy
    recommend_self_address: bool = False


class CoinSelector:
    """
    Chooses inputs for a spend according to a SelectionPolicy.

    Tunables that are engine constants rather than per-spend policy live here:
    the fee size model, the BEST_FIT refinement bound, the PRIVACY_FOCUSED
    minimum input count and the fixpoint iteration bound.
    """

    def __init__(
        self,
        fee_model: FeeModel = DEFAULT_FEE_MODEL,
        swap_attempts: int = BEST_FIT_SWAP_ATTEMPTS,
        privacy_min_inputs: int = PRIVACY_MIN_INPUTS,
        max_iterations: int = MAX_FEE_ITERATIONS,
    ):
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")
        if swap_attempts < 0:
            raise ValueError(f"swap_attempts must be non-negative, got {swap_attempts}")

        self.fee_model = fee_model
        self.swap_attempts = swap_attempts
        self.privacy_min_inputs = max(2, privacy_min_inputs)
        self.max_iterations = max_iterations

        self._strategies: dict[CoinSelectionStrategy, StrategyFunc] = {
            CoinSelectionStrategy.BEST_FIT: self._select_best_fit,
            CoinSelectionStrategy.SMALLEST_FIRST: self._select_smallest_first,
            CoinSelectionStrategy.LARGEST_FIRST: self._select_largest_first,
            CoinSelectionStrategy.PRIVACY_FOCUSED: self._select_privacy_focused,
            CoinSelectionStrategy.CONSOLIDATE_DUST: self._select_consolidate_dust,
        }

    def fee_for(self, input_count: int, output_count: int, policy: SelectionPolicy) -> int:
        return estimate_fee(input_count, output_count, policy.fee_rate_per_byte, self.fee_model)

    def select(
        self,
        utxos: Sequence[EnrichedUTXO],
        target_amount: int,
        policy: SelectionPolicy,
    ) -> SelectionResult:
        """
        Select inputs covering target_amount plus fee.

        Args:
            utxos: Enriched wallet UTXOs
            target_amount: Amount to send in minor units
            policy: Strategy, fee rate and limits

        Returns:
            SelectionResult with inputs in spending order

        Raises:
            InsufficientFunds: No feasible subset under the policy
            InsufficientManualSelection: MANUAL selection empty or under-funded
            SelectionDidNotConverge: Fee/selection fixpoint did not settle
        """
        if target_amount < 0:
            raise ValueError(f"Target amount must be non-negative, got {target_amount}")

        if policy.strategy == CoinSelectionStrategy.MANUAL:
            return self._select_manual(target_amount, policy)

        candidates = self._prefilter(utxos, policy)
        strategy_fn = self._strategies[policy.strategy]

        input_count = 1
        for iteration in range(1, self.max_iterations + 1):
            need = self._requirement(target_amount, input_count, policy)

            chosen = strategy_fn(candidates, need, policy)

            actual_fee = self.fee_for(len(chosen), 1, policy)
            actual_required = self._required(target_amount, actual_fee, policy)
            chosen_total = total_value(chosen)

            logger.debug(
                f"{policy.strategy.value} iteration {iteration}: assumed {input_count} inputs, "
                f"chose {len(chosen)} inputs totalling {chosen_total}, need {actual_required}"
            )

            if chosen_total >= actual_required:
                return self._build_result(chosen, target_amount, policy, iteration)

            input_count = len(chosen)

        raise SelectionDidNotConverge(
            f"Selection for {target_amount} did not converge after {self.max_iterations} "
            f"iterations (last attempt used {input_count} inputs)"
        )

    def _prefilter(
        self, utxos: Sequence[EnrichedUTXO], policy: SelectionPolicy
    ) -> list[EnrichedUTXO]:
        # Consolidation sweeps unconfirmed dust too
        if policy.is_consolidation:
            return list(utxos)

        eligible = [utxo for utxo in utxos if utxo.confirmations >= policy.min_confirmations]
        if len(eligible) < len(utxos):
            logger.debug(
                f"Skipped {len(utxos) - len(eligible)} UTXOs with fewer than "
                f"{policy.min_confirmations} confirmations"
            )
        return eligible

    @staticmethod
    def _required(target_amount: int, fee: int, policy: SelectionPolicy) -> int:
        # With subtract-fee the recipient pays the fee out of the amount
        if policy.subtract_fee_from_amount:
            return target_amount
        return target_amount + fee

    def _requirement(
        self, target_amount: int, assumed_inputs: int, policy: SelectionPolicy
    ) -> Requirement:
        def need(input_count: int) -> int:
            fee = self.fee_for(max(input_count, assumed_inputs), 1, policy)
            return self._required(target_amount, fee, policy)

        return need

    @staticmethod
    def _accumulate(
        ordered: Iterable[EnrichedUTXO], need: Requirement, max_inputs: int
    ) -> list[EnrichedUTXO]:
        selected: list[EnrichedUTXO] = []
        total = 0
        for utxo in ordered:
            if (selected and total >= need(len(selected))) or len(selected) >= max_inputs:
                break
            selected.append(utxo)
            total += utxo.value
        return selected

    @staticmethod
    def _check_covers(
        chosen: list[EnrichedUTXO],
        need: Requirement,
        candidates: list[EnrichedUTXO],
        policy: SelectionPolicy,
    ) -> None:
        chosen_total = total_value(chosen)
        required = need(max(len(chosen), 1))
        if chosen and chosen_total >= required:
            return

        available = total_value(candidates)
        if candidates and available >= required:
            raise InsufficientFunds(
                required, chosen_total, f"limited to {policy.max_inputs} inputs"
            )
        raise InsufficientFunds(required, available)

    def _select_smallest_first(
        self, candidates: list[EnrichedUTXO], need: Requirement, policy: SelectionPolicy
    ) -> list[EnrichedUTXO]:
        ordered = sorted(candidates, key=ascending_key)
        chosen = self._accumulate(ordered, need, policy.max_inputs)
        self._check_covers(chosen, need, candidates, policy)
        return chosen

    def _select_largest_first(
        self, candidates: list[EnrichedUTXO], need: Requirement, policy: SelectionPolicy
    ) -> list[EnrichedUTXO]:
        ordered = sorted(candidates, key=descending_key)
        chosen = self._accumulate(ordered, need, policy.max_inputs)
        self._check_covers(chosen, need, candidates, policy)
        return chosen

    def _select_best_fit(
        self, candidates: list[EnrichedUTXO], need: Requirement, policy: SelectionPolicy
    ) -> list[EnrichedUTXO]:
        """
        Minimise change.

        Accumulates in ascending order, then refines the set with at most
        swap_attempts drop/swap steps, each strictly reducing the change.
        The refined set is finally compared with the best single UTXO.
        """
        ordered = sorted(candidates, key=ascending_key)
        chosen = self._accumulate(ordered, need, policy.max_inputs)

        if not chosen or total_value(chosen) < need(len(chosen)):
            # Input cap reached before covering, retry with the largest UTXOs
            chosen = self._accumulate(
                sorted(candidates, key=descending_key), need, policy.max_inputs
            )
            self._check_covers(chosen, need, candidates, policy)

        # Drops only lower the fee, so the requirement at the accumulated size holds
        chosen = self._refine(chosen, ordered, need(len(chosen)))

        single = next((utxo for utxo in ordered if utxo.value >= need(1)), None)
        if single is not None and single.value <= total_value(chosen):
            chosen = [single]

        return sorted(chosen, key=ascending_key)

    def _refine(
        self, chosen: list[EnrichedUTXO], ordered: list[EnrichedUTXO], required: int
    ) -> list[EnrichedUTXO]:
        selected = list(chosen)

        for _ in range(self.swap_attempts):
            excess = total_value(selected) - required
            if excess == 0:
                break

            droppable = [
                utxo for utxo in selected if utxo.value <= excess and len(selected) > 1
            ]
            if droppable:
                victim = max(droppable, key=ascending_key)
                selected.remove(victim)
                logger.trace(f"best_fit: dropped {victim.outpoint} ({victim.value})")
                continue

            swap = self._find_swap(selected, ordered, excess)
            if swap is None:
                break

            out, into = swap
            selected[selected.index(out)] = into
            logger.trace(
                f"best_fit: swapped {out.outpoint} ({out.value}) for "
                f"{into.outpoint} ({into.value})"
            )

        return selected

    @staticmethod
    def _find_swap(
        selected: list[EnrichedUTXO], ordered: list[EnrichedUTXO], excess: int
    ) -> tuple[EnrichedUTXO, EnrichedUTXO] | None:
        """
        Best single exchange of an included UTXO for a smaller excluded one.

        Replacing ``out`` by ``into`` keeps the requirement covered as long as
        out.value - into.value <= excess. The exchange leaving the least
        change wins.
        """
        included = {utxo.outpoint for utxo in selected}
        excluded = [utxo for utxo in ordered if utxo.outpoint not in included]

        best: tuple[EnrichedUTXO, EnrichedUTXO] | None = None
        best_excess = excess
        for out in sorted(selected, key=descending_key):
            floor = out.value - excess
            into = next(
                (utxo for utxo in excluded if floor <= utxo.value < out.value),
                None,
            )
            if into is None:
                continue
            new_excess = excess - (out.value - into.value)
            if new_excess < best_excess:
                best = (out, into)
                best_excess = new_excess
        return best

    def _select_privacy_focused(
        self, candidates: list[EnrichedUTXO], need: Requirement, policy: SelectionPolicy
    ) -> list[EnrichedUTXO]:
        """
        Spend at least privacy_min_inputs inputs, mixing address types.

        Each pick prefers the largest UTXO whose address type is not yet
        represented, falling back to the largest remaining one.
        """
        minimum = self.privacy_min_inputs
        limit = policy.max_inputs
        if limit < minimum or len(candidates) < minimum:
            logger.warning(
                f"Privacy selection wants {minimum} inputs but only "
                f"{min(limit, len(candidates))} are possible"
            )

        remaining = sorted(candidates, key=descending_key)
        chosen: list[EnrichedUTXO] = []
        seen_types: set[AddressType | None] = set()
        total = 0

        while (
            remaining
            and len(chosen) < limit
            and (len(chosen) < minimum or total < need(len(chosen)))
        ):
            pick = next(
                (utxo for utxo in remaining if utxo.address_type not in seen_types),
                remaining[0],
            )
            remaining.remove(pick)
            chosen.append(pick)
            seen_types.add(pick.address_type)
            total += pick.value

        self._check_covers(chosen, need, candidates, policy)
        return chosen

    def _select_consolidate_dust(
        self, candidates: list[EnrichedUTXO], need: Requirement, policy: SelectionPolicy
    ) -> list[EnrichedUTXO]:
        """
        Sweep all dust, then small non-dust, up to max_inputs.

        The target does not stop the dust sweep. Non-dust UTXOs are added
        smallest first only while the swept set falls short of target + fee,
        so large coins stay untouched once the spend is covered. If the
        capped set still falls short, the smallest included UTXOs are
        exchanged for the largest excluded ones until it does not.
        """
        dust = sorted((utxo for utxo in candidates if utxo.is_dust), key=ascending_key)
        non_dust = sorted((utxo for utxo in candidates if not utxo.is_dust), key=ascending_key)

        chosen = dust[: policy.max_inputs]
        excluded = dust[policy.max_inputs :]
        total = total_value(chosen)
        for utxo in non_dust:
            if len(chosen) >= policy.max_inputs or (chosen and total >= need(len(chosen))):
                excluded.append(utxo)
                continue
            chosen.append(utxo)
            total += utxo.value

        # Exchanges keep the input count
        required = need(len(chosen))
        while total_value(chosen) < required and excluded:
            largest = excluded.pop()
            smallest = chosen.pop(0)
            logger.debug(
                f"consolidate_dust: exchanging {smallest.outpoint} ({smallest.value}) "
                f"for {largest.outpoint} ({largest.value}) to cover {required}"
            )
            chosen.append(largest)
            chosen.sort(key=ascending_key)

        self._check_covers(chosen, need, candidates, policy)

        dust_count = sum(1 for utxo in chosen if utxo.is_dust)
        logger.debug(f"consolidate_dust: {dust_count} dust of {len(chosen)} inputs")
        return chosen

    def _select_manual(self, target_amount: int, policy: SelectionPolicy) -> SelectionResult:
        manual = list(policy.manual_selection or [])
        if not manual:
            raise InsufficientManualSelection("Manual selection is empty")

        fee = self.fee_for(len(manual), 1, policy)
        required = self._required(target_amount, fee, policy)
        total = total_value(manual)
        if total < required:
            raise InsufficientManualSelection(
                f"Manual selection of {len(manual)} UTXOs totals {total}, need {required}"
            )

        return self._build_result(manual, target_amount, policy, iterations=1)

    def _build_result(
        self,
        chosen: list[EnrichedUTXO],
        target_amount: int,
        policy: SelectionPolicy,
        iterations: int,
    ) -> SelectionResult:
        """
        Decide on change and the final fee for the chosen inputs.

        Change at or below the dust threshold is never created: in normal mode
        the remainder goes to the fee; with subtract-fee the assembler folds it.
        """
        total = total_value(chosen)
        input_count = len(chosen)
        fee_with_change = self.fee_for(input_count, 2, policy)

        if policy.subtract_fee_from_amount:
            change = total - target_amount
            if change > policy.dust_threshold:
                fee = fee_with_change
            else:
                change = 0
                fee = self.fee_for(input_count, 1, policy)
        else:
            change = total - target_amount - fee_with_change
            if change > policy.dust_threshold:
                fee = fee_with_change
            else:
                if change > 0:
                    logger.debug(f"Change of {change} is dust, adding it to the fee")
                change = 0
                fee = total - target_amount

        change_address = None
        if change > 0 and not policy.is_consolidation:
            change_address = policy.change_address

        return SelectionResult(
            inputs=tuple(chosen),
            total_input_value=total,
            fee=fee,
            change_value=change,
            strategy=policy.strategy,
            target_amount=target_amount,
            change_address=change_address,
            iterations=iterations,
        )


def select_utxos(
    utxos: Sequence[EnrichedUTXO],
    target_amount: int,
    policy: SelectionPolicy,
    fee_model: FeeModel = DEFAULT_FEE_MODEL,
    swap_attempts: int = BEST_FIT_SWAP_ATTEMPTS,
    privacy_min_inputs: int = PRIVACY_MIN_INPUTS,
    max_iterations: int = MAX_FEE_ITERATIONS,
) -> SelectionResult:
    """Select inputs with a one-off CoinSelector. See CoinSelector.select()."""
    selector = CoinSelector(
        fee_model=fee_model,
        swap_attempts=swap_attempts,
        privacy_min_inputs=privacy_min_inputs,
        max_iterations=max_iterations,
    )
    return selector.select(utxos, target_amount, policy)


def recommend_strategy(
    target_amount: int,
    utxos: Sequence[EnrichedUTXO],
    prioritize_fees: bool = False,
    prioritize_privacy: bool = False,
    consolidate_dust: bool = False,
) -> StrategyRecommendation:
    """
    Suggest a strategy for a spend.

    Consolidation is suggested (to the wallet's own address) only when asked
    for and more than a handful of dust UTXOs exist. Spending most of the
    balance favours SMALLEST_FIRST so dust is not left behind.
    """
    available = total_value(utxos)
    dust_count = sum(1 for utxo in utxos if utxo.is_dust)
    spend_ratio = target_amount / available if available else float("inf")

    if consolidate_dust and dust_count > CONSOLIDATION_DUST_COUNT:
        return StrategyRecommendation(
            CoinSelectionStrategy.CONSOLIDATE_DUST, recommend_self_address=True
        )

    if prioritize_privacy:
        return StrategyRecommendation(CoinSelectionStrategy.PRIVACY_FOCUSED)

    if prioritize_fees or spend_ratio > HIGH_SPEND_RATIO:
        return StrategyRecommendation(CoinSelectionStrategy.SMALLEST_FIRST)

    return StrategyRecommendation(CoinSelectionStrategy.BEST_FIT)


def validate_selection(result: SelectionResult, subtract_fee_from_amount: bool = False) -> bool:
    """
    Check a selection result for internal consistency.

    The inputs must add up to total_input_value and cover the target (plus
    the fee unless the fee comes out of the amount). In normal mode the
    value must also balance exactly: inputs == target + fee + change.
    """
    total = total_value(result.inputs)
    if total != result.total_input_value:
        return False

    if subtract_fee_from_amount:
        return total >= result.target_amount

    return total == result.target_amount + result.fee + result.change_value
