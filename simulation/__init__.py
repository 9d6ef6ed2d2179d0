"""
simulation/ - In-process ledger simulation.

Modules:
- builder: Build a FeeToken + constant-product market maker from settings
"""

from simulation.builder import Simulation, TradeResult, build_simulation

__all__ = [
    "Simulation",
    "TradeResult",
    "build_simulation",
]
