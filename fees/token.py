"""
fees/token.py - Fee token: transfer entry points and administrative surface.

Every transfer runs:
- under a per-token RLock (re-entrant: the market maker's pull during a
  conversion comes back in on the same thread)
- inside a Journal transaction when `atomic` is set, so a failure
  anywhere (limit, balance, payout) leaves every participant as it was

Administrative calls take an explicit `caller` and raise Unauthorized
unless it is the owner. Each emits an event with old and new values.
"""

import threading
import time
from typing import Any, Callable, Dict, List, Optional

from core.constants import (
    DEFAULT_DEADLINE_SECONDS,
    DEFAULT_DECIMALS,
    DEFAULT_MAX_SLIPPAGE_BPS,
    MAX_BPS,
    EventName,
)
from core.exceptions import (
    ConfigurationError,
    ErrorCode,
    TransfersPaused,
    Unauthorized,
)
from core.logging import get_logger, log_admin_change
from core.math import is_valid_amount, is_valid_bps
from core.models import (
    ConversionResult,
    FeeRecipientConfig,
    GlobalFeeParameters,
    TransferReceipt,
)
from dex.market_maker import MarketMaker
from fees.conversion import ConversionEngine
from fees.interceptor import TransferInterceptor
from fees.registry import FeeRegistry
from fees.state import LedgerState
from ledger.base import InMemoryLedger, is_null_address
from ledger.events import EventLog
from ledger.journal import Journal, Snapshotable
from ledger.reference import ReferenceBank

logger = get_logger(__name__)


class FeeToken:
    """
    Fungible token whose transfers pay configurable fees.

    Usage:
        token = FeeToken(address="token", owner="owner", market_maker=mm, bank=bank)
        token.add_fee_recipient("owner", "0xmarketing", 200, 300, paid_in_reference_currency=True)
        receipt = token.transfer("alice", "pair", 10_000)
    """

    def __init__(
        self,
        *,
        address: str,
        owner: str,
        market_maker: MarketMaker,
        ledger: Optional[InMemoryLedger] = None,
        bank: Optional[ReferenceBank] = None,
        events: Optional[EventLog] = None,
        params: Optional[GlobalFeeParameters] = None,
        name: str = "Fee Token",
        symbol: str = "FEE",
        decimals: int = DEFAULT_DECIMALS,
        max_slippage_bps: int = DEFAULT_MAX_SLIPPAGE_BPS,
        deadline_seconds: int = DEFAULT_DEADLINE_SECONDS,
        clock: Callable[[], float] = time.time,
        atomic: bool = True,
    ):
        if is_null_address(address) or is_null_address(owner):
            raise ConfigurationError(
                "Token and owner addresses are required",
                code=ErrorCode.CONFIG_NULL_ADDRESS,
            )
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.atomic = atomic

        events = events if events is not None else EventLog()
        params = params if params is not None else GlobalFeeParameters()
        self._check_params(params)

        self.state = LedgerState(
            address=address,
            owner=owner,
            ledger=ledger if ledger is not None else InMemoryLedger(),
            bank=bank if bank is not None else ReferenceBank(),
            params=params,
            registry=FeeRegistry(params, events),
            events=events,
            market_maker=market_maker,
        )

        participants: List[Snapshotable] = [
            self.state.ledger,
            self.state.bank,
            self.state.params,
            self.state.registry,
            self.state.events,
        ]
        if isinstance(market_maker, Snapshotable):
            participants.append(market_maker)
        self.journal = Journal(participants)

        self.engine = ConversionEngine(
            self.state,
            self.journal,
            max_slippage_bps=max_slippage_bps,
            deadline_seconds=deadline_seconds,
            clock=clock,
        )
        self.interceptor = TransferInterceptor(self.state, self.engine)
        self._lock = threading.RLock()

    # =========================================================================
    # READS
    # =========================================================================

    @property
    def address(self) -> str:
        return self.state.address

    @property
    def owner(self) -> str:
        return self.state.owner

    @property
    def pair_address(self) -> str:
        return self.state.pair_address

    @property
    def paused(self) -> bool:
        return self.state.paused

    @property
    def params(self) -> GlobalFeeParameters:
        """Copy of the global fee parameters."""
        return self.state.params.snapshot()

    @property
    def registry(self) -> FeeRegistry:
        return self.state.registry

    @property
    def events(self) -> EventLog:
        return self.state.events

    @property
    def total_supply(self) -> int:
        return self.state.ledger.total_supply

    def balance_of(self, address: str) -> int:
        return self.state.ledger.balance_of(address)

    def allowance(self, owner: str, spender: str) -> int:
        return self.state.ledger.allowance(owner, spender)

    def fee_recipients(self) -> List[FeeRecipientConfig]:
        return list(self.state.registry.iterate())

    def is_excluded_from_fees(self, address: str) -> bool:
        return address in self.state.excluded_from_fees

    # =========================================================================
    # TRANSFERS
    # =========================================================================

    def transfer(self, caller: str, to: str, amount: int) -> TransferReceipt:
        return self._transfer(caller, to, amount)

    def approve(self, caller: str, spender: str, amount: int) -> None:
        with self._lock:
            self.state.ledger.approve(caller, spender, amount)
            self.state.events.emit(EventName.APPROVAL, owner=caller, spender=spender, amount=amount)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> TransferReceipt:
        """Spend `spender`'s allowance over `owner` and move the units through the interceptor."""
        return self._transfer(owner, to, amount, spender=spender)

    def _transfer(
        self,
        sender: str,
        recipient: str,
        amount: int,
        spender: Optional[str] = None,
    ) -> TransferReceipt:
        if not is_valid_amount(amount):
            raise ConfigurationError(
                f"Invalid amount: {amount!r}",
                code=ErrorCode.TRANSFER_INVALID_AMOUNT,
            )
        if is_null_address(sender) or is_null_address(recipient):
            raise ConfigurationError(
                "Transfer from or to the null address",
                code=ErrorCode.CONFIG_NULL_ADDRESS,
            )

        with self._lock:
            if self.state.paused and not self.state.latch.engaged:
                raise TransfersPaused("Transfers are paused")
            if not self.atomic:
                return self._intercept(sender, recipient, amount, spender)
            with self.journal.transaction("transfer"):
                return self._intercept(sender, recipient, amount, spender)

    def _intercept(
        self,
        sender: str,
        recipient: str,
        amount: int,
        spender: Optional[str],
    ) -> TransferReceipt:
        if spender is not None:
            self.state.ledger.spend_allowance(sender, spender, amount)
        return self.interceptor.run(sender, recipient, amount)

    # =========================================================================
    # ADMINISTRATION
    # =========================================================================

    def _require_owner(self, caller: str) -> None:
        if caller != self.state.owner:
            raise Unauthorized(
                f"{caller} is not the owner",
                details={"caller": caller},
            )

    def _check_params(self, params: GlobalFeeParameters) -> None:
        for name in ("burn_fee_bps", "buy_liquidity_fee_bps", "sell_liquidity_fee_bps"):
            value = getattr(params, name)
            if not is_valid_bps(value):
                raise ConfigurationError(
                    f"{name} must be 0..{MAX_BPS}, got {value!r}",
                    code=ErrorCode.CONFIG_INVALID_FEE,
                    details={name: value},
                )
        for name in ("max_buy_amount", "max_sell_amount"):
            if not is_valid_amount(getattr(params, name)):
                raise ConfigurationError(
                    f"{name} must be a non-negative int",
                    code=ErrorCode.CONFIG_INVALID_VALUE,
                )
        if params.burn_fee_bps + max(params.buy_liquidity_fee_bps, params.sell_liquidity_fee_bps) > MAX_BPS:
            raise ConfigurationError(
                "Burn plus liquidity fees exceed 10000 bps",
                code=ErrorCode.CONFIG_FEE_CAP_EXCEEDED,
            )

    def _check_fee_cap(self, burn_bps: int, buy_liquidity_bps: int, sell_liquidity_bps: int) -> None:
        for label, bps in (
            ("burn", burn_bps),
            ("buy liquidity", buy_liquidity_bps),
            ("sell liquidity", sell_liquidity_bps),
        ):
            if not is_valid_bps(bps):
                raise ConfigurationError(
                    f"Invalid {label} fee {bps!r}: must be 0..{MAX_BPS} bps",
                    code=ErrorCode.CONFIG_INVALID_FEE,
                )
        registry = self.state.registry
        buy_total = registry.total_buy_fee_bps() + burn_bps + buy_liquidity_bps
        sell_total = registry.total_sell_fee_bps() + burn_bps + sell_liquidity_bps
        if buy_total > MAX_BPS or sell_total > MAX_BPS:
            raise ConfigurationError(
                f"Total fees would be {buy_total}/{sell_total} bps (max {MAX_BPS})",
                code=ErrorCode.CONFIG_FEE_CAP_EXCEEDED,
                details={"total_buy_bps": buy_total, "total_sell_bps": sell_total},
            )

    def _record_change(self, event: EventName, setting: str, old_value: Any, new_value: Any) -> None:
        self.state.events.emit(event, old_value=old_value, new_value=new_value)
        log_admin_change(logger, setting, old_value, new_value)

    def add_fee_recipient(
        self,
        caller: str,
        address: str,
        buy_fee_bps: int,
        sell_fee_bps: int,
        paid_in_reference_currency: bool = False,
    ) -> FeeRecipientConfig:
        self._require_owner(caller)
        with self._lock:
            return self.state.registry.add(
                address, buy_fee_bps, sell_fee_bps, paid_in_reference_currency
            )

    def remove_fee_recipient(self, caller: str, address: str) -> FeeRecipientConfig:
        self._require_owner(caller)
        with self._lock:
            return self.state.registry.remove(address)

    def set_burn_fee(self, caller: str, bps: int) -> None:
        self._require_owner(caller)
        params = self.state.params
        with self._lock:
            self._check_fee_cap(bps, params.buy_liquidity_fee_bps, params.sell_liquidity_fee_bps)
            old = params.burn_fee_bps
            params.burn_fee_bps = bps
            self._record_change(EventName.BURN_FEE_UPDATED, "burn_fee_bps", old, bps)

    def set_liquidity_fee(self, caller: str, buy_bps: int, sell_bps: int) -> None:
        """Set buy and sell liquidity fees together (validated as a pair)."""
        self._require_owner(caller)
        params = self.state.params
        with self._lock:
            self._check_fee_cap(params.burn_fee_bps, buy_bps, sell_bps)
            old_buy, old_sell = params.buy_liquidity_fee_bps, params.sell_liquidity_fee_bps
            params.buy_liquidity_fee_bps = buy_bps
            params.sell_liquidity_fee_bps = sell_bps
            self._record_change(EventName.BUY_LIQUIDITY_FEE_UPDATED, "buy_liquidity_fee_bps", old_buy, buy_bps)
            self._record_change(EventName.SELL_LIQUIDITY_FEE_UPDATED, "sell_liquidity_fee_bps", old_sell, sell_bps)

    def set_buy_liquidity_fee(self, caller: str, bps: int) -> None:
        self._require_owner(caller)
        params = self.state.params
        with self._lock:
            self._check_fee_cap(params.burn_fee_bps, bps, params.sell_liquidity_fee_bps)
            old = params.buy_liquidity_fee_bps
            params.buy_liquidity_fee_bps = bps
            self._record_change(EventName.BUY_LIQUIDITY_FEE_UPDATED, "buy_liquidity_fee_bps", old, bps)

    def set_sell_liquidity_fee(self, caller: str, bps: int) -> None:
        self._require_owner(caller)
        params = self.state.params
        with self._lock:
            self._check_fee_cap(params.burn_fee_bps, params.buy_liquidity_fee_bps, bps)
            old = params.sell_liquidity_fee_bps
            params.sell_liquidity_fee_bps = bps
            self._record_change(EventName.SELL_LIQUIDITY_FEE_UPDATED, "sell_liquidity_fee_bps", old, bps)

    def _set_limit(self, caller: str, field_name: str, event: EventName, amount: int) -> None:
        self._require_owner(caller)
        if not is_valid_amount(amount):
            raise ConfigurationError(
                f"{field_name} must be a non-negative int, got {amount!r}",
                code=ErrorCode.CONFIG_INVALID_VALUE,
            )
        with self._lock:
            old = getattr(self.state.params, field_name)
            setattr(self.state.params, field_name, amount)
            self._record_change(event, field_name, old, amount)

    def set_max_buy_amount(self, caller: str, amount: int) -> None:
        """0 removes the limit."""
        self._set_limit(caller, "max_buy_amount", EventName.MAX_BUY_AMOUNT_UPDATED, amount)

    def set_max_sell_amount(self, caller: str, amount: int) -> None:
        """0 removes the limit."""
        self._set_limit(caller, "max_sell_amount", EventName.MAX_SELL_AMOUNT_UPDATED, amount)

    def _set_owner_fee_exempt(self, caller: str, exempt: bool) -> None:
        self._require_owner(caller)
        with self._lock:
            old = self.state.params.owner_fee_exempt
            self.state.params.owner_fee_exempt = exempt
            self._record_change(EventName.OWNER_FEE_EXEMPTION_UPDATED, "owner_fee_exempt", old, exempt)

    def exclude_owner_from_fees(self, caller: str) -> None:
        self._set_owner_fee_exempt(caller, True)

    def include_owner_in_fees(self, caller: str) -> None:
        self._set_owner_fee_exempt(caller, False)

    def _set_excluded(self, caller: str, address: str, excluded: bool) -> None:
        self._require_owner(caller)
        if is_null_address(address):
            raise ConfigurationError(
                "Cannot change fee exclusion of the null address",
                code=ErrorCode.CONFIG_NULL_ADDRESS,
            )
        with self._lock:
            old = address in self.state.excluded_from_fees
            if excluded:
                self.state.excluded_from_fees.add(address)
            else:
                self.state.excluded_from_fees.discard(address)
            self.state.events.emit(
                EventName.FEE_EXCLUSION_UPDATED,
                address=address,
                old_value=old,
                new_value=excluded,
            )
            log_admin_change(logger, "excluded_from_fees", old, excluded, address=address)

    def exclude_from_fees(self, caller: str, address: str) -> None:
        self._set_excluded(caller, address, True)

    def include_in_fees(self, caller: str, address: str) -> None:
        self._set_excluded(caller, address, False)

    def pause(self, caller: str) -> None:
        self._require_owner(caller)
        with self._lock:
            old = self.state.paused
            self.state.paused = True
            self._record_change(EventName.PAUSED, "paused", old, True)

    def unpause(self, caller: str) -> None:
        self._require_owner(caller)
        with self._lock:
            old = self.state.paused
            self.state.paused = False
            self._record_change(EventName.UNPAUSED, "paused", old, False)

    def mint(self, caller: str, to: str, amount: int) -> None:
        self._require_owner(caller)
        with self._lock:
            self.state.ledger.mint(to, amount)
            self.state.params.total_minted += amount
            self.state.events.emit(EventName.MINT, recipient=to, amount=amount)
            logger.info(
                f"Minted {amount} to {to}",
                extra={"context": {"recipient": to, "amount": amount}},
            )

    def distribute_fees(self, caller: str) -> ConversionResult:
        """Run the conversion engine now, outside any transfer."""
        self._require_owner(caller)
        with self._lock:
            if not self.atomic:
                return self.engine.run()
            with self.journal.transaction("distribute_fees"):
                return self.engine.run()

    # =========================================================================
    # REPORTING
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "address": self.address,
            "owner": self.owner,
            "pair_address": self.pair_address,
            "paused": self.paused,
            "total_supply": self.total_supply,
            "params": self.state.params.to_dict(),
            "registry": self.state.registry.to_dict(),
            "excluded_from_fees": sorted(self.state.excluded_from_fees),
            "holding_balance": self.balance_of(self.address),
            "holding_reference_balance": self.state.bank.balance_of(self.address),
        }
