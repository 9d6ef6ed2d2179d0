"""
tests/unit/test_calculator.py - Fee planning tests.
"""

import pytest

from core.constants import FeeKind, TransferDirection
from core.models import FeeRecipientConfig, GlobalFeeParameters
from fees.calculator import classify_direction, plan_fees


def _recipients(*specs):
    return tuple(
        FeeRecipientConfig(address=a, buy_fee_bps=b, sell_fee_bps=s, paid_in_reference_currency=r)
        for a, b, s, r in specs
    )


@pytest.fixture
def params():
    return GlobalFeeParameters(burn_fee_bps=100, buy_liquidity_fee_bps=50, sell_liquidity_fee_bps=100)


class TestClassifyDirection:
    """Tests for classify_direction."""

    def test_buy(self):
        assert classify_direction("pair", "alice", "pair") == TransferDirection.BUY

    def test_sell(self):
        assert classify_direction("alice", "pair", "pair") == TransferDirection.SELL

    def test_plain(self):
        assert classify_direction("alice", "bob", "pair") == TransferDirection.PLAIN


class TestPlanFees:
    """Tests for plan_fees."""

    def test_buy_breakdown(self, params):
        recipients = _recipients(("a", 200, 300, False))

        breakdown = plan_fees(10_000, TransferDirection.BUY, recipients, params)

        assert [(d.kind, d.amount) for d in breakdown.deductions] == [
            (FeeKind.RECIPIENT, 200),
            (FeeKind.BURN, 100),
            (FeeKind.LIQUIDITY, 50),
        ]
        assert breakdown.amount_remaining == 9_650

    def test_sell_uses_sell_rates(self, params):
        recipients = _recipients(("a", 200, 300, False))

        breakdown = plan_fees(10_000, TransferDirection.SELL, recipients, params)

        assert breakdown.recipient_amount == 300
        assert breakdown.burn_amount == 100
        assert breakdown.liquidity_amount == 100
        assert breakdown.amount_remaining == 9_500

    def test_plain_uses_buy_rates(self, params):
        recipients = _recipients(("a", 200, 300, False))

        breakdown = plan_fees(10_000, TransferDirection.PLAIN, recipients, params)

        assert breakdown.recipient_amount == 200
        assert breakdown.liquidity_amount == 50

    def test_reference_recipient_becomes_deposit(self, params):
        recipients = _recipients(("a", 200, 300, True), ("b", 100, 100, False))

        breakdown = plan_fees(10_000, TransferDirection.BUY, recipients, params)

        assert breakdown.deductions[0].kind == FeeKind.RECIPIENT_DEPOSIT
        assert breakdown.deductions[0].beneficiary == "a"
        assert breakdown.deposit_amount == 200
        assert breakdown.recipient_amount == 300

    def test_registry_order_preserved(self, params):
        recipients = _recipients(("z", 10, 10, False), ("a", 20, 20, False))

        breakdown = plan_fees(10_000, TransferDirection.BUY, recipients, params)

        assert [d.beneficiary for d in breakdown.deductions[:2]] == ["z", "a"]

    def test_fee_floors_to_zero_is_skipped(self, params):
        recipients = _recipients(("a", 200, 300, False))

        breakdown = plan_fees(10, TransferDirection.BUY, recipients, params)

        assert breakdown.deductions == ()
        assert breakdown.amount_remaining == 10

    def test_zero_amount(self, params):
        breakdown = plan_fees(0, TransferDirection.SELL, _recipients(("a", 200, 300, False)), params)
        assert breakdown.deductions == ()
        assert breakdown.amount_remaining == 0

    def test_fee_larger_than_remaining_is_skipped(self):
        # Not reachable through the registry cap; plan_fees still guards it
        recipients = _recipients(("a", 6000, 6000, False), ("b", 6000, 6000, False))
        params = GlobalFeeParameters(burn_fee_bps=1000)

        breakdown = plan_fees(10_000, TransferDirection.BUY, recipients, params)

        assert [(d.beneficiary, d.amount) for d in breakdown.deductions] == [
            ("a", 6000),
            (None, 1000),
        ]
        assert breakdown.amount_remaining == 3000

    @pytest.mark.parametrize("amount", [1, 99, 10_000, 123_457, 10**24 + 7])
    @pytest.mark.parametrize("direction", list(TransferDirection))
    def test_conservation(self, params, amount, direction):
        recipients = _recipients(("a", 333, 777, True), ("b", 1, 9, False), ("c", 4321, 1234, False))

        breakdown = plan_fees(amount, direction, recipients, params)

        assert breakdown.total_fees + breakdown.amount_remaining == amount
        assert breakdown.amount_remaining >= 0
        assert all(d.amount > 0 for d in breakdown.deductions)

    def test_full_fee_leaves_nothing(self):
        recipients = _recipients(("a", 10_000, 10_000, False))

        breakdown = plan_fees(5_000, TransferDirection.SELL, recipients, GlobalFeeParameters())

        assert breakdown.recipient_amount == 5_000
        assert breakdown.amount_remaining == 0

    def test_to_dict(self, params):
        breakdown = plan_fees(10_000, TransferDirection.BUY, (), params)
        data = breakdown.to_dict()
        assert data["direction"] == "BUY"
        assert data["total_fees"] == 150
        assert data["deductions"][0]["kind"] == "BURN"
