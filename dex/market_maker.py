"""
dex/market_maker.py - Market maker capability.

The fee engine only needs three operations from a market maker, plus the
pair address used to classify transfer direction:

  quote_conversion(amount_in)                    -> estimated reference out
  convert(sender, amount_in, min_out, path, recipient, deadline)
  supply_liquidity(sender, token_amount, ref_amount,
                   min_token, min_ref, to, deadline) -> LiquiditySupplied

Mutating calls take an explicit `sender` (the account whose units and
reference currency are pulled); there is no ambient caller.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from core.models import LiquiditySupplied


class MarketMaker(ABC):
    """Abstract market maker. Implementations raise MarketMakerError subclasses."""

    @property
    @abstractmethod
    def pair_address(self) -> str:
        """Address of the token/reference pair; transfers from it are buys, to it sells."""

    @property
    @abstractmethod
    def router_address(self) -> str:
        """Spender that must be approved before convert/supply_liquidity."""

    @abstractmethod
    def quote_conversion(self, amount_in: int) -> int:
        """Reference currency expected for `amount_in` ledger units (0 if no route)."""

    @abstractmethod
    def convert(
        self,
        sender: str,
        amount_in: int,
        min_out: int,
        path: Sequence[str],
        recipient: str,
        deadline: float,
    ) -> None:
        """
        Sell `amount_in` units of `sender` for reference currency paid to `recipient`.

        Raises:
            SlippageExceeded: output below min_out
            Expired: deadline passed
        """

    @abstractmethod
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
        """Add liquidity from `sender`; pool shares are credited to `to`."""
