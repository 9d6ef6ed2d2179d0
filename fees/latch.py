"""
fees/latch.py - Re-entrancy latch.

Marks the span during which the conversion engine talks to the market
maker. Any transfer that reaches the interceptor while the latch is
engaged (the market maker pulling units from the holding address) is
moved without fees.
"""

from contextlib import contextmanager
from typing import Iterator

from core.exceptions import ReentrancyError


class ReentrancyGuardLatch:
    """Single boolean flag with scoped, exception-safe engagement."""

    def __init__(self):
        self._engaged = False

    @property
    def engaged(self) -> bool:
        return self._engaged

    @contextmanager
    def engage(self) -> Iterator[None]:
        """Set the flag for the block; always cleared on exit."""
        if self._engaged:
            raise ReentrancyError("Conversion already in progress")
        self._engaged = True
        try:
            yield
        finally:
            self._engaged = False
