"""
fees/registry.py - Fee recipient registry.

Ordered collection of FeeRecipientConfig entries:
- mapping address -> config, plus an order list kept in lockstep
- at most MAX_FEE_RECIPIENTS entries (every transfer walks the whole list)
- cumulative buy and sell fee totals (recipients + burn + liquidity)
  never exceed 10000 bps

Removal is swap-with-last-and-truncate, so positions are not stable
across removals.
"""

import dataclasses
from typing import Dict, List, Optional, Tuple

from core.constants import MAX_BPS, MAX_FEE_RECIPIENTS, EventName
from core.exceptions import ConfigurationError, ErrorCode
from core.logging import get_logger
from core.math import is_valid_bps
from core.models import FeeRecipientConfig, GlobalFeeParameters
from ledger.base import is_null_address
from ledger.events import EventLog

logger = get_logger(__name__)


class FeeRegistry:
    """
    Fee recipients in iteration order.

    Usage:
        registry = FeeRegistry(params, events)
        registry.add("0xabc", buy_fee_bps=200, sell_fee_bps=300)
        for config in registry.iterate():
            ...
    """

    def __init__(
        self,
        params: GlobalFeeParameters,
        events: Optional[EventLog] = None,
        capacity: int = MAX_FEE_RECIPIENTS,
    ):
        self._params = params
        self._events = events if events is not None else EventLog()
        self._capacity = capacity
        self._configs: Dict[str, FeeRecipientConfig] = {}
        self._order: List[str] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, address: str) -> bool:
        return address in self._configs

    def get(self, address: str) -> Optional[FeeRecipientConfig]:
        config = self._configs.get(address)
        return dataclasses.replace(config) if config else None

    @property
    def addresses(self) -> Tuple[str, ...]:
        return tuple(self._order)

    def iterate(self) -> Tuple[FeeRecipientConfig, ...]:
        """Snapshot of all configs in registry order; safe to hold while mutating."""
        return tuple(dataclasses.replace(self._configs[a]) for a in self._order)

    # -------------------------------------------------------------------------
    # Totals
    # -------------------------------------------------------------------------

    def total_buy_fee_bps(self) -> int:
        """Recipient buy fees only."""
        return sum(c.buy_fee_bps for c in self._configs.values())

    def total_sell_fee_bps(self) -> int:
        """Recipient sell fees only."""
        return sum(c.sell_fee_bps for c in self._configs.values())

    def cumulative_buy_bps(self) -> int:
        """Recipients + burn + buy liquidity."""
        return (
            self.total_buy_fee_bps()
            + self._params.burn_fee_bps
            + self._params.buy_liquidity_fee_bps
        )

    def cumulative_sell_bps(self) -> int:
        """Recipients + burn + sell liquidity."""
        return (
            self.total_sell_fee_bps()
            + self._params.burn_fee_bps
            + self._params.sell_liquidity_fee_bps
        )

    def pending_deposits(self) -> int:
        """Sum of deposits awaiting conversion."""
        return sum(c.accumulated_deposit for c in self._configs.values())

    # -------------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------------

    def add(
        self,
        address: str,
        buy_fee_bps: int,
        sell_fee_bps: int,
        paid_in_reference_currency: bool = False,
    ) -> FeeRecipientConfig:
        """
        Register a fee recipient.

        Raises:
            ConfigurationError: null or duplicate address, fee of 0 or above
                10000, registry full, or cumulative buy/sell total above 10000
        """
        details = {
            "address": address,
            "buy_fee_bps": buy_fee_bps,
            "sell_fee_bps": sell_fee_bps,
        }
        if is_null_address(address):
            raise ConfigurationError(
                "Fee recipient cannot be the null address",
                code=ErrorCode.CONFIG_NULL_ADDRESS,
                details=details,
            )
        if address in self._configs:
            raise ConfigurationError(
                f"Fee recipient {address} already exists",
                code=ErrorCode.CONFIG_DUPLICATE_RECIPIENT,
                details=details,
            )
        for label, bps in (("buy", buy_fee_bps), ("sell", sell_fee_bps)):
            if not is_valid_bps(bps) or bps == 0:
                raise ConfigurationError(
                    f"Invalid {label} fee {bps!r}: must be 1..{MAX_BPS} bps",
                    code=ErrorCode.CONFIG_INVALID_FEE,
                    details=details,
                )
        if len(self._order) >= self._capacity:
            raise ConfigurationError(
                f"Registry full ({self._capacity} recipients)",
                code=ErrorCode.CONFIG_CAPACITY_EXCEEDED,
                details=details,
            )
        buy_total = self.cumulative_buy_bps() + buy_fee_bps
        if buy_total > MAX_BPS:
            raise ConfigurationError(
                f"Total buy fees would be {buy_total} bps (max {MAX_BPS})",
                code=ErrorCode.CONFIG_FEE_CAP_EXCEEDED,
                details={**details, "total_buy_bps": buy_total},
            )
        sell_total = self.cumulative_sell_bps() + sell_fee_bps
        if sell_total > MAX_BPS:
            raise ConfigurationError(
                f"Total sell fees would be {sell_total} bps (max {MAX_BPS})",
                code=ErrorCode.CONFIG_FEE_CAP_EXCEEDED,
                details={**details, "total_sell_bps": sell_total},
            )

        config = FeeRecipientConfig(
            address=address,
            buy_fee_bps=buy_fee_bps,
            sell_fee_bps=sell_fee_bps,
            paid_in_reference_currency=bool(paid_in_reference_currency),
        )
        self._configs[address] = config
        self._order.append(address)

        self._events.emit(
            EventName.FEE_RECIPIENT_ADDED,
            address=address,
            buy_fee_bps=buy_fee_bps,
            sell_fee_bps=sell_fee_bps,
            paid_in_reference_currency=config.paid_in_reference_currency,
        )
        logger.info(
            f"Fee recipient added: {address}",
            extra={"context": {**details, "count": len(self._order)}},
        )
        return dataclasses.replace(config)

    def remove(self, address: str) -> FeeRecipientConfig:
        """
        Remove a fee recipient (swap-with-last-and-truncate).

        Any accumulated deposit is dropped with the config.
        """
        if is_null_address(address):
            raise ConfigurationError(
                "Fee recipient cannot be the null address",
                code=ErrorCode.CONFIG_NULL_ADDRESS,
            )
        if address not in self._configs:
            raise ConfigurationError(
                f"Fee recipient {address} not found",
                code=ErrorCode.CONFIG_UNKNOWN_RECIPIENT,
                details={"address": address},
            )

        config = self._configs.pop(address)
        index = self._order.index(address)
        last = len(self._order) - 1
        if index != last:
            self._order[index] = self._order[last]
        self._order.pop()

        self._events.emit(
            EventName.FEE_RECIPIENT_REMOVED,
            address=address,
            buy_fee_bps=config.buy_fee_bps,
            sell_fee_bps=config.sell_fee_bps,
        )
        logger.info(
            f"Fee recipient removed: {address}",
            extra={"context": {
                "address": address,
                "dropped_deposit": config.accumulated_deposit,
                "count": len(self._order),
            }},
        )
        return config

    # -------------------------------------------------------------------------
    # Deposits (transfer and conversion paths only)
    # -------------------------------------------------------------------------

    def accrue(self, address: str, amount: int) -> int:
        """Add to a recipient's pending deposit; returns the new deposit."""
        config = self._configs[address]
        config.accumulated_deposit += amount
        return config.accumulated_deposit

    def reset_deposit(self, address: str) -> int:
        """Zero a recipient's deposit; returns what it held."""
        config = self._configs[address]
        held = config.accumulated_deposit
        config.accumulated_deposit = 0
        return held

    # -------------------------------------------------------------------------
    # Journal
    # -------------------------------------------------------------------------

    def snapshot(self) -> tuple:
        return (
            {a: dataclasses.replace(c) for a, c in self._configs.items()},
            list(self._order),
        )

    def restore(self, state: tuple) -> None:
        configs, order = state
        self._configs = {a: dataclasses.replace(c) for a, c in configs.items()}
        self._order = list(order)

    def to_dict(self) -> Dict[str, object]:
        return {
            "count": len(self._order),
            "capacity": self._capacity,
            "recipients": [c.to_dict() for c in self.iterate()],
            "cumulative_buy_bps": self.cumulative_buy_bps(),
            "cumulative_sell_bps": self.cumulative_sell_bps(),
        }
