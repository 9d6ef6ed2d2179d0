"""
dex/simulated.py - Constant-product market maker (x * y = k).

Deterministic in-process pool between the fee token and the reference
currency, Uniswap V2 style:
- swap fee in bps taken from the input (30 bps default)
- amount_out = in_with_fee * R_ref / (R_token * 10000 + in_with_fee)
- first liquidity mints isqrt(token * ref) shares, later deposits mint
  min(token * S / R_token, ref * S / R_ref)

The router pulls ledger units with token.transfer_from(router, sender,
pair, amount), so every conversion re-enters the fee token's transfer
path. Reserves are re-synced from actual balances after each pull, which
handles units lost to transfer fees.

Usage:
    mm = ConstantProductMarketMaker(bank, pair_address="pair", router_address="router")
    token = FeeToken(address="token", owner="owner", market_maker=mm, bank=bank)
    mm.bind(token)
"""

import math
import time
from typing import Any, Callable, Dict, Optional, Protocol, Sequence

from core.constants import BPS_DENOMINATOR, DEFAULT_POOL_FEE_BPS
from core.exceptions import ErrorCode, Expired, MarketMakerError, SlippageExceeded
from core.logging import get_logger
from core.models import LiquiditySupplied
from dex.market_maker import MarketMaker
from ledger.reference import ReferenceBank

logger = get_logger(__name__)


class PoolToken(Protocol):
    """What the pool needs from the token it trades."""

    def balance_of(self, address: str) -> int: ...

    def transfer(self, caller: str, to: str, amount: int) -> Any: ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> Any: ...


class ConstantProductMarketMaker(MarketMaker):
    """Single-pair x*y=k pool with a router that pulls tokens via transfer_from."""

    def __init__(
        self,
        bank: ReferenceBank,
        pair_address: str = "pair",
        router_address: str = "router",
        fee_bps: int = DEFAULT_POOL_FEE_BPS,
        clock: Callable[[], float] = time.time,
    ):
        self._bank = bank
        self._pair_address = pair_address
        self._router_address = router_address
        self.fee_bps = fee_bps
        self._clock = clock
        self._token: Optional[PoolToken] = None
        self.reserve_token = 0
        self.reserve_ref = 0
        self.total_shares = 0
        self._shares: Dict[str, int] = {}

    def bind(self, token: PoolToken) -> None:
        """Attach the token this pool trades against the reference currency."""
        self._token = token

    @property
    def token(self) -> PoolToken:
        if self._token is None:
            raise MarketMakerError("No token bound to market maker")
        return self._token

    @property
    def pair_address(self) -> str:
        return self._pair_address

    @property
    def router_address(self) -> str:
        return self._router_address

    def shares_of(self, address: str) -> int:
        return self._shares.get(address, 0)

    def price(self) -> float:
        """Reference units per token unit at current reserves (display only)."""
        if self.reserve_token == 0:
            return 0.0
        return self.reserve_ref / self.reserve_token

    # -------------------------------------------------------------------------
    # Quoting
    # -------------------------------------------------------------------------

    def _amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        if amount_in <= 0 or reserve_in == 0 or reserve_out == 0:
            return 0
        in_with_fee = amount_in * (BPS_DENOMINATOR - self.fee_bps)
        return in_with_fee * reserve_out // (reserve_in * BPS_DENOMINATOR + in_with_fee)

    def quote_conversion(self, amount_in: int) -> int:
        return self._amount_out(amount_in, self.reserve_token, self.reserve_ref)

    def quote_purchase(self, ref_in: int) -> int:
        """Token units expected for `ref_in` reference currency."""
        return self._amount_out(ref_in, self.reserve_ref, self.reserve_token)

    # -------------------------------------------------------------------------
    # Swaps
    # -------------------------------------------------------------------------

    def _check_deadline(self, deadline: float) -> None:
        now = self._clock()
        if now > deadline:
            raise Expired(
                f"Deadline {deadline} passed (now {now})",
                details={"deadline": deadline, "now": now},
            )

    def _sync(self) -> None:
        self.reserve_token = self.token.balance_of(self._pair_address)
        self.reserve_ref = self._bank.balance_of(self._pair_address)

    def convert(
        self,
        sender: str,
        amount_in: int,
        min_out: int,
        path: Sequence[str],
        recipient: str,
        deadline: float,
    ) -> None:
        self._check_deadline(deadline)
        if len(path) != 2:
            raise MarketMakerError(
                f"Unsupported path {list(path)}",
                code=ErrorCode.MM_INVALID_REQUEST,
            )

        # The pull may trigger a nested swap (the token converting its own
        # fees), which re-syncs reserves; measure input against them afterwards.
        self.token.transfer_from(self._router_address, sender, self._pair_address, amount_in)
        actual_in = self.token.balance_of(self._pair_address) - self.reserve_token

        amount_out = self._amount_out(actual_in, self.reserve_token, self.reserve_ref)
        if amount_out < min_out or amount_out == 0:
            raise SlippageExceeded(
                f"Output {amount_out} below minimum {min_out}",
                details={"amount_in": actual_in, "amount_out": amount_out, "min_out": min_out},
            )

        self._bank.transfer(self._pair_address, recipient, amount_out)
        self._sync()
        logger.debug(
            "Swap token -> reference",
            extra={"context": {
                "sender": sender,
                "amount_in": actual_in,
                "amount_out": amount_out,
                "reserve_token": self.reserve_token,
                "reserve_ref": self.reserve_ref,
            }},
        )

    def buy(self, buyer: str, ref_in: int, min_out: int, deadline: float) -> int:
        """
        Sell reference currency for tokens, paid from the pair to `buyer`.

        The pair -> buyer leg goes through the token, so it is a BUY
        transfer for the fee engine. Returns the tokens the buyer received.
        """
        self._check_deadline(deadline)
        amount_out = self.quote_purchase(ref_in)
        if amount_out < min_out or amount_out == 0:
            raise SlippageExceeded(
                f"Output {amount_out} below minimum {min_out}",
                details={"ref_in": ref_in, "amount_out": amount_out, "min_out": min_out},
            )
        self._bank.transfer(buyer, self._pair_address, ref_in)
        before = self.token.balance_of(buyer)
        self.token.transfer(self._pair_address, buyer, amount_out)
        self._sync()
        return self.token.balance_of(buyer) - before

    # -------------------------------------------------------------------------
    # Liquidity
    # -------------------------------------------------------------------------

    def supply_liquidity(
        self,
        sender: str,
        token_amount: int,
        ref_amount: int,
        min_token: int,
        min_ref: int,
        to: str,
        deadline: float,
    ) -> LiquiditySupplied:
        self._check_deadline(deadline)

        if self.reserve_token == 0 and self.reserve_ref == 0:
            token_used, ref_used = token_amount, ref_amount
        else:
            ref_optimal = token_amount * self.reserve_ref // self.reserve_token
            if ref_optimal <= ref_amount:
                token_used, ref_used = token_amount, ref_optimal
            else:
                token_used = ref_amount * self.reserve_token // self.reserve_ref
                ref_used = ref_amount
        if token_used < min_token or ref_used < min_ref:
            raise SlippageExceeded(
                f"Liquidity amounts {token_used}/{ref_used} below minimum {min_token}/{min_ref}",
                details={"token_used": token_used, "ref_used": ref_used},
            )

        self.token.transfer_from(self._router_address, sender, self._pair_address, token_used)
        self._bank.transfer(sender, self._pair_address, ref_used)

        # Mint against what actually arrived (transfer fees, nested swaps)
        token_in = self.token.balance_of(self._pair_address) - self.reserve_token
        ref_in = self._bank.balance_of(self._pair_address) - self.reserve_ref
        if self.total_shares == 0:
            shares = math.isqrt(token_in * ref_in)
        else:
            shares = min(
                token_in * self.total_shares // self.reserve_token,
                ref_in * self.total_shares // self.reserve_ref,
            )
        if shares <= 0:
            raise MarketMakerError(
                "Insufficient liquidity minted",
                details={"token_in": token_in, "ref_in": ref_in},
            )
        self._sync()

        self.total_shares += shares
        self._shares[to] = self.shares_of(to) + shares

        logger.debug(
            "Liquidity supplied",
            extra={"context": {
                "sender": sender,
                "to": to,
                "token_used": token_used,
                "ref_used": ref_used,
                "shares": shares,
            }},
        )
        return LiquiditySupplied(token_used=token_used, ref_used=ref_used, pool_shares=shares)

    # -------------------------------------------------------------------------
    # Journal
    # -------------------------------------------------------------------------

    def snapshot(self) -> tuple:
        return self.reserve_token, self.reserve_ref, self.total_shares, dict(self._shares)

    def restore(self, state: tuple) -> None:
        self.reserve_token, self.reserve_ref, self.total_shares, shares = state
        self._shares = dict(shares)

    def get_status(self) -> Dict[str, Any]:
        return {
            "pair_address": self._pair_address,
            "router_address": self._router_address,
            "fee_bps": self.fee_bps,
            "reserve_token": self.reserve_token,
            "reserve_ref": self.reserve_ref,
            "total_shares": self.total_shares,
        }
