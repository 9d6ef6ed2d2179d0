"""
fees/calculator.py - Fee planning for a single transfer.

Pure functions, no side effects. The plan is built from an immutable
snapshot of the registry and applied afterwards by the interceptor.

DEDUCTION ORDER (fixed):
  1. recipient fees, in registry order (direction-dependent bps)
  2. burn (same bps in every direction)
  3. liquidity reserve (direction-dependent bps)

A fee is taken only when 0 < fee <= remaining. Once earlier categories
have used up the remainder, later ones are skipped, so remaining never
goes below zero.

Plain transfers (neither side is the pair) are charged at the buy rates.
"""

from typing import Iterable, List

from core.constants import FeeKind, TransferDirection
from core.math import fee_amount
from core.models import (
    FeeBreakdown,
    FeeDeduction,
    FeeRecipientConfig,
    GlobalFeeParameters,
)


def _take(
    deductions: List[FeeDeduction],
    remaining: int,
    amount: int,
    bps: int,
    kind: FeeKind,
    beneficiary: str | None = None,
) -> int:
    fee = fee_amount(amount, bps)
    if 0 < fee <= remaining:
        deductions.append(FeeDeduction(kind=kind, amount=fee, bps=bps, beneficiary=beneficiary))
        return remaining - fee
    return remaining


def plan_fees(
    amount: int,
    direction: TransferDirection,
    recipients: Iterable[FeeRecipientConfig],
    params: GlobalFeeParameters,
) -> FeeBreakdown:
    """
    Compute every deduction for a transfer of `amount`.

    Args:
        amount: Requested transfer amount
        direction: BUY, SELL or PLAIN
        recipients: Registry snapshot, in registry order
        params: Global fee parameters (burn and liquidity bps)

    Returns:
        FeeBreakdown whose deductions plus amount_remaining equal amount
    """
    deductions: List[FeeDeduction] = []
    remaining = amount

    for config in recipients:
        kind = FeeKind.RECIPIENT_DEPOSIT if config.paid_in_reference_currency else FeeKind.RECIPIENT
        remaining = _take(
            deductions, remaining, amount, config.fee_bps(direction), kind, config.address
        )

    remaining = _take(deductions, remaining, amount, params.burn_fee_bps, FeeKind.BURN)
    remaining = _take(
        deductions, remaining, amount, params.liquidity_fee_bps(direction), FeeKind.LIQUIDITY
    )

    return FeeBreakdown(
        amount=amount,
        direction=direction,
        deductions=tuple(deductions),
        amount_remaining=remaining,
    )


def classify_direction(sender: str, recipient: str, pair_address: str) -> TransferDirection:
    """BUY when the pair sends, SELL when it receives, PLAIN otherwise."""
    if sender == pair_address:
        return TransferDirection.BUY
    if recipient == pair_address:
        return TransferDirection.SELL
    return TransferDirection.PLAIN
