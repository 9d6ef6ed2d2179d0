"""
Pytest configuration and fixtures for fee ledger tests.
"""

import logging
import sys
from pathlib import Path
from typing import Sequence

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.exceptions import SlippageExceeded  # noqa: E402
from core.models import GlobalFeeParameters, LiquiditySupplied  # noqa: E402
from dex.market_maker import MarketMaker  # noqa: E402
from fees.token import FeeToken  # noqa: E402
from ledger.reference import ReferenceBank  # noqa: E402

FIXED_NOW = 1_700_000_000.0

PARAM_FIELDS = {
    "burn_fee_bps",
    "buy_liquidity_fee_bps",
    "sell_liquidity_fee_bps",
    "max_buy_amount",
    "max_sell_amount",
    "owner_fee_exempt",
}


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


class StubMarketMaker(MarketMaker):
    """
    Deterministic market maker for distribution math.

    Converts at a fixed rate (rate_num / rate_den) out of a funded treasury.
    quote_override replaces the quote only; fail_with is raised after the
    token pull so rollback can be observed. max_token_used caps how many
    tokens supply_liquidity takes.
    """

    def __init__(self, bank: ReferenceBank, rate_num: int = 1, rate_den: int = 2):
        self.bank = bank
        self.rate_num = rate_num
        self.rate_den = rate_den
        self.treasury = "mm_treasury"
        self.token = None
        self.quote_override = None
        self.fail_with = None
        self.max_token_used = None
        self.calls = []

    def bind(self, token) -> None:
        self.token = token

    @property
    def pair_address(self) -> str:
        return "pair"

    @property
    def router_address(self) -> str:
        return "router"

    def quote_conversion(self, amount_in: int) -> int:
        if self.quote_override is not None:
            return self.quote_override
        return amount_in * self.rate_num // self.rate_den

    def convert(
        self,
        sender: str,
        amount_in: int,
        min_out: int,
        path: Sequence[str],
        recipient: str,
        deadline: float,
    ) -> None:
        self.calls.append({
            "op": "convert",
            "amount_in": amount_in,
            "min_out": min_out,
            "path": tuple(path),
            "latch_engaged": self.token.state.latch.engaged,
        })
        self.token.transfer_from(self.router_address, sender, self.pair_address, amount_in)
        if self.fail_with is not None:
            raise self.fail_with
        out = amount_in * self.rate_num // self.rate_den
        if out < min_out:
            raise SlippageExceeded(f"{out} < {min_out}")
        self.bank.transfer(self.treasury, recipient, out)

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
        self.calls.append({
            "op": "supply_liquidity",
            "token_amount": token_amount,
            "ref_amount": ref_amount,
            "to": to,
        })
        token_used = token_amount
        if self.max_token_used is not None:
            token_used = min(token_amount, self.max_token_used)
        self.token.transfer_from(self.router_address, sender, self.pair_address, token_used)
        self.bank.transfer(sender, self.pair_address, ref_amount)
        return LiquiditySupplied(
            token_used=token_used,
            ref_used=ref_amount,
            pool_shares=token_used,
        )


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def bank():
    return ReferenceBank()


@pytest.fixture
def stub_mm(bank):
    mm = StubMarketMaker(bank)
    bank.deposit(mm.treasury, 10**15)
    return mm


@pytest.fixture
def make_token(bank, stub_mm, clock):
    """
    Build a FeeToken on the stub market maker.

    Accepts GlobalFeeParameters fields plus FeeToken keyword arguments.
    Mints 10**12 to owner and 10**9 each to alice and the pair.
    """
    def _make(**kwargs) -> FeeToken:
        params = GlobalFeeParameters(
            **{k: kwargs.pop(k) for k in list(kwargs) if k in PARAM_FIELDS}
        )
        token = FeeToken(
            address="token",
            owner="owner",
            market_maker=stub_mm,
            bank=bank,
            params=params,
            clock=clock,
            **kwargs,
        )
        stub_mm.bind(token)
        token.mint("owner", "owner", 10**12)
        token.mint("owner", "alice", 10**9)
        token.mint("owner", "pair", 10**9)
        return token

    return _make


@pytest.fixture
def token(make_token):
    return make_token()


@pytest.fixture
def restore_root_logging():
    """Put root logger handlers back after a test that calls setup_logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
