#!/usr/bin/env python3
"""
run_ledger.py - CLI entrypoint for the fee ledger simulation.

Usage:
    python run_ledger.py show-config
    python run_ledger.py simulate --direction sell --amount 1000 --count 3
    python run_ledger.py simulate --config my.yaml --direction buy --amount 0.5
"""

import json
import sys
from pathlib import Path

import click

from config import load_settings
from core.exceptions import LedgerError
from core.logging import get_logger, set_global_context, setup_logging
from core.math import denormalize_from_decimals, normalize_to_decimals
from simulation import build_simulation

logger = get_logger("fee_ledger.cli")

LOG_LEVEL_CHOICE = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"])


def _load(config_path: str | None):
    return load_settings(Path(config_path) if config_path else None)


@click.group()
def cli() -> None:
    """Fee ledger: transfer fees, burns, liquidity and fee conversion."""


@cli.command("show-config")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), default=None)
def show_config(config_path: str | None) -> None:
    """Print the effective settings as JSON."""
    try:
        settings = _load(config_path)
    except LedgerError as e:
        raise click.ClickException(str(e)) from e
    click.echo(json.dumps(settings.to_dict(), indent=2))


@cli.command()
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), default=None)
@click.option(
    "--direction",
    "-d",
    type=click.Choice(["buy", "sell", "plain"]),
    default="sell",
    help="buy spends reference currency; sell and plain spend tokens",
)
@click.option(
    "--amount",
    "-a",
    required=True,
    help="Amount in whole units (tokens, or reference currency for buys)",
)
@click.option("--count", "-n", default=1, type=int, help="Number of trades")
@click.option("--trader", "-t", default="trader", help="Trading account")
@click.option("--recipient", "-r", default="friend", help="Recipient for plain transfers")
@click.option("--log-level", "-l", default=None, type=LOG_LEVEL_CHOICE, help="Log level")
@click.option("--json-logs/--no-json-logs", default=True, help="Use JSON log format")
def simulate(
    config_path: str | None,
    direction: str,
    amount: str,
    count: int,
    trader: str,
    recipient: str,
    log_level: str | None,
    json_logs: bool,
) -> None:
    """
    Run trades against an in-process token and pool.

    Prints every trade and a final summary as JSON.
    """
    try:
        settings = _load(config_path)
    except LedgerError as e:
        raise click.ClickException(str(e)) from e

    setup_logging(level=log_level or settings.log_level, json_output=json_logs)
    set_global_context(service="fee-ledger", token=settings.symbol)

    # Reference currency uses the token's decimals in the simulation
    raw_amount = denormalize_from_decimals(amount, settings.decimals)

    try:
        sim = build_simulation(settings)
        trades = []
        for _ in range(count):
            if direction == "sell":
                result = sim.sell(trader, raw_amount)
            elif direction == "buy":
                result = sim.buy(trader, raw_amount)
            else:
                result = sim.transfer(trader, recipient, raw_amount)
            trades.append(result.to_dict())
    except LedgerError as e:
        logger.error(
            f"Simulation failed: {e}",
            extra={"context": e.to_dict()},
        )
        raise click.ClickException(str(e)) from e

    summary = sim.get_summary()
    summary["trader_balance"] = str(
        normalize_to_decimals(sim.token.balance_of(trader), settings.decimals)
    )
    summary["trader_reference_balance"] = str(
        normalize_to_decimals(sim.bank.balance_of(trader), settings.decimals)
    )
    logger.info("Simulation complete", extra={"context": {"trades": len(trades)}})
    click.echo(json.dumps({"trades": trades, "summary": summary}, indent=2, default=str))


def main() -> None:
    try:
        cli()
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
