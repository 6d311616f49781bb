"""
Command-line interface for spendcore - plan spends from a UTXO snapshot.
"""

from __future__ import annotations

import asyncio
import json
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from spendcore.backends.static import StaticUTXOSource
from spendcore.config import Settings, get_settings
from spendcore.errors import SpendError
from spendcore.fees import FeeModelType, estimate_size, get_fee_model
from spendcore.fees import estimate_fee as compute_fee
from spendcore.models import CoinSelectionStrategy, EnrichedUTXO, TransactionSkeleton
from spendcore.planner import SpendPlanner
from spendcore.serialization import serialize_unsigned_tx

app = typer.Typer(
    name="spendcore",
    help="Coin selection and transaction construction",
    add_completion=False,
)


def setup_logging(level: str) -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def load_source(snapshot: Path) -> StaticUTXOSource:
    if not snapshot.exists():
        logger.error(f"Snapshot file not found: {snapshot}")
        raise typer.Exit(1)
    try:
        return StaticUTXOSource.from_file(snapshot)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        logger.error(f"Invalid snapshot {snapshot}: {e}")
        raise typer.Exit(1)


def parse_fee_rate(value: str | None) -> Decimal | None:
    if value is None:
        return None
    try:
        rate = Decimal(value)
    except InvalidOperation:
        logger.error(f"Invalid fee rate: {value}")
        raise typer.Exit(1)
    if not rate.is_finite() or rate < 0:
        logger.error(f"Fee rate must be a non-negative number, got {value}")
        raise typer.Exit(1)
    return rate


def resolve_manual_selection(utxos: list[EnrichedUTXO], outpoints: list[str]) -> list[EnrichedUTXO]:
    """Look up txid:vout outpoints in the enriched set, keeping the given order."""
    by_outpoint = {utxo.outpoint: utxo for utxo in utxos}
    missing = [outpoint for outpoint in outpoints if outpoint not in by_outpoint]
    if missing:
        raise ValueError(f"Unknown outpoints: {', '.join(missing)}")
    return [by_outpoint[outpoint] for outpoint in outpoints]


def format_skeleton(skeleton: TransactionSkeleton) -> str:
    lines = [f"Inputs ({len(skeleton.inputs)}):"]
    for inp in skeleton.inputs:
        lines.append(f"  {inp.txid}:{inp.vout}  {inp.value:>16}  {inp.address}")
    lines.append(f"Outputs ({len(skeleton.outputs)}):")
    for index, out in enumerate(skeleton.outputs):
        label = "change" if index == skeleton.change_index else "destination"
        lines.append(f"  {label:<12} {out.value:>16}  {out.address}")
    lines.append(f"Fee: {skeleton.fee}")
    return "\n".join(lines)


@app.command()
def plan(
    snapshot: Annotated[Path, typer.Option("--snapshot", "-u", help="UTXO snapshot JSON file")],
    destination: Annotated[str, typer.Option("--destination", "-d", help="Recipient address")],
    amount: Annotated[int, typer.Option("--amount", "-a", help="Amount in minor units")],
    strategy: Annotated[
        CoinSelectionStrategy, typer.Option("--strategy", "-s", help="Coin selection strategy")
    ] = CoinSelectionStrategy.BEST_FIT,
    fee_rate: Annotated[
        str | None, typer.Option("--fee-rate", help="Fee rate in minor units per byte")
    ] = None,
    max_inputs: Annotated[int | None, typer.Option("--max-inputs", help="Input cap")] = None,
    min_confirmations: Annotated[
        int | None, typer.Option("--min-confirmations", help="Minimum confirmations")
    ] = None,
    change_address: Annotated[
        str | None, typer.Option("--change-address", help="Custom change address")
    ] = None,
    subtract_fee: Annotated[
        bool, typer.Option("--subtract-fee", help="Deduct the fee from the amount")
    ] = False,
    manual: Annotated[
        list[str] | None, typer.Option("--utxo", help="txid:vout to spend (manual strategy)")
    ] = None,
    addresses: Annotated[
        list[str] | None,
        typer.Option("--address", help="Wallet address to spend from (default: all in snapshot)"),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the skeleton as JSON")] = False,
    raw: Annotated[bool, typer.Option("--raw", help="Include the unsigned tx hex")] = False,
    log_level: Annotated[str | None, typer.Option("--log-level", "-l")] = None,
) -> None:
    """Plan a spend and print the unsigned transaction skeleton."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)
    source = load_source(snapshot)
    rate = parse_fee_rate(fee_rate)

    try:
        skeleton = asyncio.run(
            _plan(
                settings,
                source,
                addresses or source.addresses,
                destination,
                amount,
                strategy=strategy,
                fee_rate=rate,
                max_inputs=max_inputs,
                min_confirmations=min_confirmations,
                change_address=change_address,
                subtract_fee=subtract_fee,
                manual=manual or [],
            )
        )
    except SpendError as e:
        logger.error(f"Spend planning failed: {e}")
        raise typer.Exit(1)
    except ValueError as e:
        logger.error(f"Invalid request: {e}")
        raise typer.Exit(1)

    if as_json:
        output = skeleton.to_dict()
        if raw:
            output["unsigned_tx"] = serialize_unsigned_tx(skeleton, settings.network).hex()
        typer.echo(json.dumps(output, indent=2))
        return

    typer.echo(format_skeleton(skeleton))
    if raw:
        typer.echo(f"Unsigned tx: {serialize_unsigned_tx(skeleton, settings.network).hex()}")


async def _plan(
    settings: Settings,
    source: StaticUTXOSource,
    addresses: list[str],
    destination: str,
    amount: int,
    strategy: CoinSelectionStrategy,
    fee_rate: Decimal | None,
    max_inputs: int | None,
    min_confirmations: int | None,
    change_address: str | None,
    subtract_fee: bool,
    manual: list[str],
) -> TransactionSkeleton:
    """Plan implementation."""
    planner = SpendPlanner(source, addresses, settings=settings)

    manual_selection = None
    if manual:
        if strategy != CoinSelectionStrategy.MANUAL:
            raise ValueError("--utxo can only be used with --strategy manual")
        manual_selection = resolve_manual_selection(await planner.fetch_utxos(), manual)

    policy = settings.default_policy(
        strategy=strategy,
        fee_rate_per_byte=fee_rate,
        max_inputs=max_inputs,
        min_confirmations=min_confirmations,
        change_address=change_address,
        subtract_fee_from_amount=subtract_fee,
        manual_selection=manual_selection,
    )

    try:
        return await planner.plan(destination, amount, policy)
    finally:
        await source.close()


@app.command()
def utxos(
    snapshot: Annotated[Path, typer.Option("--snapshot", "-u", help="UTXO snapshot JSON file")],
    log_level: Annotated[str | None, typer.Option("--log-level", "-l")] = None,
) -> None:
    """List the enriched UTXO set of a snapshot."""
    settings = get_settings()
    setup_logging(log_level or settings.log_level)
    source = load_source(snapshot)

    if not source.addresses:
        typer.echo("Total: 0 in 0 UTXOs")
        return

    planner = SpendPlanner(source, source.addresses, settings=settings)
    enriched = asyncio.run(planner.fetch_utxos())

    total = 0
    for utxo in enriched:
        flag = " dust" if utxo.is_dust else ""
        typer.echo(
            f"{utxo.outpoint}  {utxo.value:>16}  {utxo.confirmations:>7} conf{flag}  {utxo.address}"
        )
        total += utxo.value
    typer.echo(f"Total: {total} in {len(enriched)} UTXOs")


@app.command("estimate-fee")
def estimate_fee(
    inputs: Annotated[int, typer.Option("--inputs", "-i", help="Number of inputs")] = 1,
    outputs: Annotated[int, typer.Option("--outputs", "-o", help="Number of outputs")] = 2,
    fee_rate: Annotated[
        str | None, typer.Option("--fee-rate", help="Fee rate in minor units per byte")
    ] = None,
    model: Annotated[
        FeeModelType | None, typer.Option("--model", "-m", help="Size model")
    ] = None,
) -> None:
    """Estimate size and fee for a transaction shape."""
    settings = get_settings()
    fee_model = get_fee_model(model) if model else settings.get_fee_model()
    rate = parse_fee_rate(fee_rate)
    if rate is None:
        rate = settings.fee_rate_per_byte

    try:
        size = estimate_size(inputs, outputs, fee_model)
        fee = compute_fee(inputs, outputs, rate, fee_model)
    except ValueError as e:
        logger.error(f"Invalid fee request: {e}")
        raise typer.Exit(1)

    typer.echo(f"Size: {size} bytes")
    typer.echo(f"Fee: {fee}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
