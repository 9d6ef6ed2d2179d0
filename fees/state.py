"""
fees/state.py - Shared state of one fee token.

A single owned object handed by reference to the interceptor and the
conversion engine. Administrative changes go through FeeToken methods;
the components only read configuration and update deposits and the
liquidity reserve.
"""

from dataclasses import dataclass, field
from typing import Set

from core.models import GlobalFeeParameters
from dex.market_maker import MarketMaker
from fees.latch import ReentrancyGuardLatch
from fees.registry import FeeRegistry
from ledger.base import InMemoryLedger
from ledger.events import EventLog
from ledger.reference import ReferenceBank


@dataclass
class LedgerState:
    """Everything a fee token owns."""
    address: str  # token contract / holding address
    owner: str
    ledger: InMemoryLedger
    bank: ReferenceBank
    params: GlobalFeeParameters
    registry: FeeRegistry
    events: EventLog
    market_maker: MarketMaker
    latch: ReentrancyGuardLatch = field(default_factory=ReentrancyGuardLatch)
    excluded_from_fees: Set[str] = field(default_factory=set)
    paused: bool = False

    @property
    def pair_address(self) -> str:
        return self.market_maker.pair_address

    def is_owner(self, address: str) -> bool:
        return address == self.owner
