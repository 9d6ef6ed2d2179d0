# PATH: core/math.py
"""
Integer math for the fee ledger.

All ledger and reference-currency amounts are ints in the smallest unit.
Division always floors; the remainder stays with the caller (for fees, it
stays in the transfer's remaining amount).
"""

from decimal import Decimal
from typing import Union

from core.constants import BPS_DENOMINATOR, MAX_BPS


def fee_amount(amount: int, bps: int) -> int:
    """
    Fee for a transfer of `amount` at `bps` basis points.

    Args:
        amount: Transfer amount in smallest units
        bps: Basis points (0-10000)

    Returns:
        floor(amount * bps / 10000)
    """
    return amount * bps // BPS_DENOMINATOR


def mul_div(value: int, numerator: int, denominator: int) -> int:
    """floor(value * numerator / denominator); zero when denominator is zero."""
    if denominator == 0:
        return 0
    return value * numerator // denominator


def is_valid_bps(bps: int) -> bool:
    """True when bps is an int in [0, 10000]."""
    return isinstance(bps, int) and not isinstance(bps, bool) and 0 <= bps <= MAX_BPS


def is_valid_amount(amount: int) -> bool:
    """True when amount is a non-negative int (bools excluded)."""
    return isinstance(amount, int) and not isinstance(amount, bool) and amount >= 0


def apply_slippage(amount: int, slippage_bps: int) -> int:
    """Minimum acceptable output for `amount` with `slippage_bps` tolerance."""
    return amount * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR


def normalize_to_decimals(
    amount: Union[str, int, Decimal],
    decimals: int,
) -> Decimal:
    """
    Normalize amount from smallest units to token units.

    Args:
        amount: Amount in smallest unit
        decimals: Token decimals

    Returns:
        Normalized amount
    """
    return Decimal(str(amount)) / (Decimal(10) ** decimals)


def denormalize_from_decimals(
    amount: Union[str, int, Decimal],
    decimals: int,
) -> int:
    """
    Denormalize amount from token units to smallest units.

    Args:
        amount: Amount in token units (e.g. "1.5")
        decimals: Token decimals

    Returns:
        Amount in smallest units (int)
    """
    return int(Decimal(str(amount)) * (Decimal(10) ** decimals))
