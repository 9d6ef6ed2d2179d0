"""
tests/unit/test_latch.py - Re-entrancy latch tests.
"""

import pytest

from core.exceptions import ErrorCode, ReentrancyError
from fees.latch import ReentrancyGuardLatch


class TestReentrancyGuardLatch:

    def test_engaged_only_inside_block(self):
        latch = ReentrancyGuardLatch()
        assert latch.engaged is False
        with latch.engage():
            assert latch.engaged is True
        assert latch.engaged is False

    def test_cleared_after_exception(self):
        latch = ReentrancyGuardLatch()
        with pytest.raises(RuntimeError):
            with latch.engage():
                raise RuntimeError("boom")
        assert latch.engaged is False

    def test_nested_engage_rejected(self):
        latch = ReentrancyGuardLatch()
        with latch.engage():
            with pytest.raises(ReentrancyError) as exc_info:
                with latch.engage():
                    pass
            assert exc_info.value.code == ErrorCode.GUARD_REENTRANT
            # The failed inner attempt must not clear the outer engagement
            assert latch.engaged is True
        assert latch.engaged is False
