"""
dex/ - Market maker layer.

Modules:
- market_maker: Abstract market maker capability (quote, convert, supply liquidity)
- simulated: Deterministic constant-product pool used for simulation and tests
"""

from dex.market_maker import MarketMaker
from dex.simulated import ConstantProductMarketMaker

__all__ = [
    "MarketMaker",
    "ConstantProductMarketMaker",
]
