"""
fees/conversion.py - Conversion of fee balances into reference currency.

CONVERSION CONTRACT:
====================

Runs entirely under the re-entrancy latch.

1. to_convert = pending recipient deposits + (liquidity reserve // 2 when
   adding liquidity). Zero -> NOTHING_TO_CONVERT, no state change.
2. Quote. Zero -> ABORTED, no state change; deposits stay for the next
   qualifying transfer.
3. Convert to_convert units; `received` is measured from the holder's
   reference balance before/after, never from the market maker's report.
4. Add liquidity: the other half of the reserve plus
   received * half_reserve // to_convert reference units; pool shares to
   the owner. The reserve keeps only the token units the market maker did
   not take (all of them when either side is empty).
5. Distribute: for each recipient with a deposit, zero the deposit, then
   send received * deposit // to_convert. A rejected send raises
   PayoutFailed; earlier payouts in the same loop are not reversed here.

Market maker failures (slippage, deadline) roll back this run only and
yield a FAILED result.
====================
"""

import time
from typing import Callable, Dict, Optional

from core.constants import (
    DEFAULT_DEADLINE_SECONDS,
    DEFAULT_MAX_SLIPPAGE_BPS,
    ConversionStatus,
    EventName,
)
from core.exceptions import ConversionAborted, MarketMakerError, PayoutFailed
from core.logging import get_logger, log_conversion, log_error
from core.math import apply_slippage, mul_div
from core.models import ConversionResult, LiquiditySupplied
from fees.state import LedgerState
from ledger.journal import Journal

logger = get_logger(__name__)


class ConversionEngine:
    """Converts accumulated fee units and pays out the proceeds."""

    def __init__(
        self,
        state: LedgerState,
        journal: Journal,
        max_slippage_bps: int = DEFAULT_MAX_SLIPPAGE_BPS,
        deadline_seconds: int = DEFAULT_DEADLINE_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._state = state
        self._journal = journal
        self.max_slippage_bps = max_slippage_bps
        self.deadline_seconds = deadline_seconds
        self._clock = clock

    @property
    def path(self) -> tuple:
        return (self._state.address, self._state.bank.symbol)

    def should_add_liquidity(self) -> bool:
        return self._state.params.liquidity_deposit // 2 > 0

    def pending_amount(self, perform_add_liquidity: Optional[bool] = None) -> int:
        """Units the next run would convert."""
        if perform_add_liquidity is None:
            perform_add_liquidity = self.should_add_liquidity()
        half = self._state.params.liquidity_deposit // 2 if perform_add_liquidity else 0
        return self._state.registry.pending_deposits() + half

    def run(self, perform_add_liquidity: Optional[bool] = None) -> ConversionResult:
        """
        Convert and distribute everything pending.

        Raises:
            PayoutFailed: a recipient rejected its payout
            ReentrancyError: called while a conversion is already running
        """
        if perform_add_liquidity is None:
            perform_add_liquidity = self.should_add_liquidity()

        with self._state.latch.engage():
            try:
                with self._journal.transaction("conversion", rollback_on=(MarketMakerError,)):
                    result = self._run(perform_add_liquidity)
            except MarketMakerError as exc:
                log_error(logger, exc.code.value, f"Conversion rolled back: {exc.message}")
                result = ConversionResult(
                    status=ConversionStatus.FAILED,
                    to_convert=self.pending_amount(perform_add_liquidity),
                    error=str(exc),
                )

        log_conversion(
            logger,
            result.status.value,
            result.to_convert,
            result.received,
            payouts=len(result.payouts),
        )
        return result

    def _run(self, perform_add_liquidity: bool) -> ConversionResult:
        state = self._state
        reserve = state.params.liquidity_deposit
        half = reserve // 2 if perform_add_liquidity else 0
        to_convert = state.registry.pending_deposits() + half

        if to_convert == 0:
            return ConversionResult(status=ConversionStatus.NOTHING_TO_CONVERT)

        try:
            received = self._convert(to_convert)
        except ConversionAborted as exc:
            logger.warning(
                "Conversion skipped: zero quote",
                extra={"context": {"to_convert": to_convert}},
            )
            return ConversionResult(
                status=ConversionStatus.ABORTED,
                to_convert=to_convert,
                error=str(exc),
            )

        liquidity = None
        if perform_add_liquidity and half > 0:
            liquidity = self._add_liquidity(reserve - half, mul_div(received, half, to_convert))
            used = liquidity.token_used if liquidity else 0
            state.params.liquidity_deposit = reserve - half - used

        payouts = self._distribute(received, to_convert)

        state.events.emit(
            EventName.SWAP_AND_LIQUIFY,
            converted=to_convert,
            received=received,
            liquidity_tokens=liquidity.token_used if liquidity else 0,
            liquidity_ref=liquidity.ref_used if liquidity else 0,
        )
        return ConversionResult(
            status=ConversionStatus.COMPLETED,
            to_convert=to_convert,
            received=received,
            liquidity=liquidity,
            payouts=payouts,
        )

    def _deadline(self) -> float:
        return self._clock() + self.deadline_seconds

    def _convert(self, to_convert: int) -> int:
        state = self._state
        mm = state.market_maker

        quote = mm.quote_conversion(to_convert)
        if quote <= 0:
            raise ConversionAborted(
                f"Market maker quoted zero for {to_convert}",
                details={"to_convert": to_convert},
            )

        state.ledger.approve(state.address, mm.router_address, to_convert)
        before = state.bank.balance_of(state.address)
        mm.convert(
            sender=state.address,
            amount_in=to_convert,
            min_out=apply_slippage(quote, self.max_slippage_bps),
            path=self.path,
            recipient=state.address,
            deadline=self._deadline(),
        )
        return state.bank.balance_of(state.address) - before

    def _add_liquidity(self, token_amount: int, ref_amount: int) -> Optional[LiquiditySupplied]:
        state = self._state
        if token_amount == 0 or ref_amount == 0:
            logger.warning(
                "Liquidity supply skipped: empty side",
                extra={"context": {"token_amount": token_amount, "ref_amount": ref_amount}},
            )
            return None

        mm = state.market_maker
        state.ledger.approve(state.address, mm.router_address, token_amount)
        return mm.supply_liquidity(
            sender=state.address,
            token_amount=token_amount,
            ref_amount=ref_amount,
            min_token=0,
            min_ref=0,
            to=state.owner,
            deadline=self._deadline(),
        )

    def _distribute(self, received: int, to_convert: int) -> Dict[str, int]:
        state = self._state
        payouts: Dict[str, int] = {}

        for config in state.registry.iterate():
            if config.accumulated_deposit == 0:
                continue
            deposit = state.registry.reset_deposit(config.address)
            payout = mul_div(received, deposit, to_convert)
            if not state.bank.send(state.address, config.address, payout):
                raise PayoutFailed(
                    f"Payout of {payout} to {config.address} rejected",
                    details={"address": config.address, "payout": payout, "deposit": deposit},
                )
            payouts[config.address] = payout
            state.events.emit(
                EventName.FEE_PAYOUT,
                recipient=config.address,
                deposit=deposit,
                amount=payout,
            )

        return payouts
