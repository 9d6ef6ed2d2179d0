"""
fees/ - Transfer interception and fee distribution.

Modules:
- registry: Fee recipient registry (capacity, uniqueness, fee cap)
- calculator: Pure fee planning for one transfer
- latch: Re-entrancy latch
- interceptor: Transfer state machine
- conversion: Conversion and pro-rata distribution
- state: Shared state of one token
- token: FeeToken entry points and administrative surface
"""

from fees.calculator import classify_direction, plan_fees
from fees.conversion import ConversionEngine
from fees.interceptor import TransferInterceptor, TransferState
from fees.latch import ReentrancyGuardLatch
from fees.registry import FeeRegistry
from fees.state import LedgerState
from fees.token import FeeToken

__all__ = [
    "classify_direction",
    "plan_fees",
    "ConversionEngine",
    "TransferInterceptor",
    "TransferState",
    "ReentrancyGuardLatch",
    "FeeRegistry",
    "LedgerState",
    "FeeToken",
]
