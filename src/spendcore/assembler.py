"""
Transaction assembler.

Builds the unsigned transaction skeleton from:
- Inputs chosen by coin selection (order preserved)
- Destination output (always first)
- Change output (second, only when above the dust threshold)

The skeleton always balances exactly: sum(inputs) == sum(outputs) + fee.
"""

from __future__ import annotations

from loguru import logger

from spendcore.change import ChangeAddressResolver
from spendcore.errors import AmountBelowDustAfterFee, ChangeAddressError, InsufficientFunds
from spendcore.models import (
    SelectionPolicy,
    SelectionResult,
    TransactionSkeleton,
    TxInput,
    TxOutput,
)


class TransactionAssembler:
    """
    Assembles balanced transaction skeletons.

    An HD change resolver is optional. Without one, or when it fails, change
    returns to the address of the first input.
    """

    def __init__(self, change_resolver: ChangeAddressResolver | None = None):
        self.change_resolver = change_resolver

    def assemble(
        self,
        selection: SelectionResult,
        destination: str,
        amount: int,
        policy: SelectionPolicy,
    ) -> TransactionSkeleton:
        """
        Assemble a transaction skeleton.

        Args:
            selection: Result of coin selection
            destination: Recipient address
            amount: Requested amount in minor units
            policy: Policy the selection was made under

        Returns:
            New immutable TransactionSkeleton

        Raises:
            AmountBelowDustAfterFee: Recipient would get dust
            InsufficientFunds: Inputs do not cover amount and fee
        """
        if not destination or not destination.strip():
            raise ValueError("Destination address is required")
        if amount <= 0:
            raise ValueError(f"Amount must be positive, got {amount}")
        if not selection.inputs:
            raise ValueError("Selection has no inputs")

        dust_threshold = policy.dust_threshold
        total_in = selection.total_input_value

        if policy.subtract_fee_from_amount:
            send_amount = amount - selection.fee
            change = total_in - amount
            required = amount
        else:
            send_amount = amount
            change = total_in - amount - selection.fee
            required = amount + selection.fee

        if send_amount <= dust_threshold:
            raise AmountBelowDustAfterFee(send_amount, dust_threshold)

        if change < 0:
            raise InsufficientFunds(required, total_in)

        if 0 < change <= dust_threshold:
            logger.debug(f"Dropping dust change of {change}, it goes to the fee")
            change = 0

        inputs = tuple(
            TxInput(
                txid=utxo.txid,
                vout=utxo.vout,
                value=utxo.value,
                address=utxo.address,
                scriptpubkey=utxo.scriptpubkey,
            )
            for utxo in selection.inputs
        )

        outputs = [TxOutput(address=destination, value=send_amount)]
        change_index = None
        if change > 0:
            change_address = self.resolve_change_address(selection, destination, policy)
            outputs.append(TxOutput(address=change_address, value=change))
            change_index = 1

        fee = total_in - sum(out.value for out in outputs)

        logger.info(
            f"Assembled transaction: {len(inputs)} inputs, {len(outputs)} outputs, "
            f"send {send_amount}, change {change}, fee {fee}"
        )

        return TransactionSkeleton(
            inputs=inputs,
            outputs=tuple(outputs),
            fee=fee,
            send_amount=send_amount,
            change_index=change_index,
        )

    def resolve_change_address(
        self, selection: SelectionResult, destination: str, policy: SelectionPolicy
    ) -> str:
        """
        Pick the change address.

        Priority:
        1. Destination, when consolidating (it is the wallet's own address)
        2. policy.change_address
        3. HD change resolver, if provided and it succeeds
        4. Address of the first input
        """
        if policy.is_consolidation:
            return destination

        if policy.change_address:
            return policy.change_address

        if self.change_resolver is not None:
            try:
                return self.change_resolver.resolve_change_address()
            except ChangeAddressError as e:
                logger.warning(f"HD change address unavailable, using source address: {e}")

        return selection.inputs[0].address


def assemble(
    selection: SelectionResult,
    destination: str,
    amount: int,
    policy: SelectionPolicy,
    change_resolver: ChangeAddressResolver | None = None,
) -> TransactionSkeleton:
    """Assemble with a one-off TransactionAssembler. See TransactionAssembler.assemble()."""
    return TransactionAssembler(change_resolver).assemble(selection, destination, amount, policy)
