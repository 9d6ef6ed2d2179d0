"""
simulation/builder.py - Wire a fee token to a simulated market maker.

build_simulation(settings) creates the reference bank, the pool, the
token, mints the initial supply to the owner, registers fee recipients,
seeds pool liquidity and hands out initial balances. The owner is
excluded from fees while the initial distribution runs.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from config import LedgerSettings
from core.constants import TransferDirection
from core.logging import get_logger
from core.models import GlobalFeeParameters, TransferReceipt
from dex.simulated import ConstantProductMarketMaker
from fees.token import FeeToken
from ledger.reference import ReferenceBank

logger = get_logger(__name__)


@dataclass
class TradeResult:
    """One simulated trade and what it did to the trader."""
    direction: TransferDirection
    trader: str
    amount_in: int
    token_delta: int
    reference_delta: int
    receipt: Optional[TransferReceipt] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "direction": self.direction.value,
            "trader": self.trader,
            "amount_in": self.amount_in,
            "token_delta": self.token_delta,
            "reference_delta": self.reference_delta,
            "receipt": self.receipt.to_dict() if self.receipt else None,
        }


@dataclass
class Simulation:
    """A token, its pool and its reference bank."""
    settings: LedgerSettings
    token: FeeToken
    market_maker: ConstantProductMarketMaker
    bank: ReferenceBank
    clock: Callable[[], float] = time.time
    trades: List[TradeResult] = field(default_factory=list)

    def _deadline(self) -> float:
        return self.clock() + self.settings.deadline_seconds

    def _record(
        self,
        direction: TransferDirection,
        trader: str,
        amount_in: int,
        token_before: int,
        ref_before: int,
    ) -> TradeResult:
        result = TradeResult(
            direction=direction,
            trader=trader,
            amount_in=amount_in,
            token_delta=self.token.balance_of(trader) - token_before,
            reference_delta=self.bank.balance_of(trader) - ref_before,
            receipt=self.token.interceptor.last_receipt,
        )
        self.trades.append(result)
        return result

    def sell(self, trader: str, amount: int, min_out: int = 0) -> TradeResult:
        """Sell `amount` tokens through the router for reference currency."""
        token_before = self.token.balance_of(trader)
        ref_before = self.bank.balance_of(trader)
        with self.token.journal.transaction("sell"):
            self.token.approve(trader, self.market_maker.router_address, amount)
            self.market_maker.convert(
                sender=trader,
                amount_in=amount,
                min_out=min_out,
                path=(self.token.address, self.bank.symbol),
                recipient=trader,
                deadline=self._deadline(),
            )
        return self._record(TransferDirection.SELL, trader, amount, token_before, ref_before)

    def buy(self, trader: str, ref_amount: int, min_out: int = 0) -> TradeResult:
        """Spend `ref_amount` reference currency on tokens."""
        token_before = self.token.balance_of(trader)
        ref_before = self.bank.balance_of(trader)
        with self.token.journal.transaction("buy"):
            self.market_maker.buy(trader, ref_amount, min_out=min_out, deadline=self._deadline())
        return self._record(TransferDirection.BUY, trader, ref_amount, token_before, ref_before)

    def transfer(self, trader: str, recipient: str, amount: int) -> TradeResult:
        """Plain wallet-to-wallet transfer."""
        token_before = self.token.balance_of(trader)
        ref_before = self.bank.balance_of(trader)
        self.token.transfer(trader, recipient, amount)
        return self._record(TransferDirection.PLAIN, trader, amount, token_before, ref_before)

    def get_summary(self) -> Dict[str, Any]:
        return {
            "trades": len(self.trades),
            "token": self.token.get_status(),
            "pool": self.market_maker.get_status(),
            "owner_pool_shares": self.market_maker.shares_of(self.token.owner),
            "recipient_reference_balances": {
                r.address: self.bank.balance_of(r.address)
                for r in self.token.fee_recipients()
            },
        }


def build_simulation(
    settings: LedgerSettings,
    clock: Callable[[], float] = time.time,
) -> Simulation:
    """Create and seed a simulation from settings."""
    bank = ReferenceBank(symbol=settings.reference_symbol)
    market_maker = ConstantProductMarketMaker(
        bank,
        pair_address=settings.pair_address,
        router_address=settings.router_address,
        fee_bps=settings.pool.fee_bps,
        clock=clock,
    )
    params = GlobalFeeParameters(
        burn_fee_bps=settings.burn_fee_bps,
        buy_liquidity_fee_bps=settings.buy_liquidity_fee_bps,
        sell_liquidity_fee_bps=settings.sell_liquidity_fee_bps,
        max_buy_amount=settings.max_buy_amount,
        max_sell_amount=settings.max_sell_amount,
        owner_fee_exempt=settings.owner_fee_exempt,
    )
    token = FeeToken(
        address=settings.token_address,
        owner=settings.owner,
        market_maker=market_maker,
        bank=bank,
        params=params,
        name=settings.name,
        symbol=settings.symbol,
        decimals=settings.decimals,
        max_slippage_bps=settings.max_slippage_bps,
        deadline_seconds=settings.deadline_seconds,
        clock=clock,
    )
    market_maker.bind(token)

    owner = settings.owner
    if settings.initial_supply:
        token.mint(owner, owner, settings.initial_supply)

    for recipient in settings.recipients:
        token.add_fee_recipient(
            owner,
            recipient.address,
            recipient.buy_fee_bps,
            recipient.sell_fee_bps,
            recipient.paid_in_reference_currency,
        )
    for address in settings.excluded_from_fees:
        token.exclude_from_fees(owner, address)

    for address, amount in settings.reference_balances.items():
        bank.deposit(address, amount)

    owner_was_excluded = token.is_excluded_from_fees(owner)
    token.exclude_from_fees(owner, owner)
    try:
        pool = settings.pool
        if pool.token_liquidity and pool.ref_liquidity:
            token.approve(owner, market_maker.router_address, pool.token_liquidity)
            market_maker.supply_liquidity(
                sender=owner,
                token_amount=pool.token_liquidity,
                ref_amount=pool.ref_liquidity,
                min_token=0,
                min_ref=0,
                to=owner,
                deadline=clock() + settings.deadline_seconds,
            )
        for address, amount in settings.balances.items():
            token.transfer(owner, address, amount)
    finally:
        if not owner_was_excluded:
            token.include_in_fees(owner, owner)

    logger.info(
        "Simulation ready",
        extra={"context": {
            "symbol": settings.symbol,
            "recipients": len(settings.recipients),
            "reserve_token": market_maker.reserve_token,
            "reserve_ref": market_maker.reserve_ref,
        }},
    )
    return Simulation(
        settings=settings,
        token=token,
        market_maker=market_maker,
        bank=bank,
        clock=clock,
    )
