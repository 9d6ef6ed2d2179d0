"""
tests/unit/test_registry.py - Fee recipient registry tests.
"""

import pytest

from core.constants import MAX_FEE_RECIPIENTS, NULL_ADDRESS, EventName
from core.exceptions import ConfigurationError, ErrorCode
from core.models import GlobalFeeParameters
from fees.registry import FeeRegistry
from ledger.events import EventLog


@pytest.fixture
def params():
    return GlobalFeeParameters(burn_fee_bps=100, buy_liquidity_fee_bps=50, sell_liquidity_fee_bps=100)


@pytest.fixture
def events():
    return EventLog()


@pytest.fixture
def registry(params, events):
    return FeeRegistry(params, events)


class TestAdd:
    """Tests for FeeRegistry.add."""

    def test_add_appends_in_order(self, registry):
        registry.add("a", 200, 300)
        registry.add("b", 100, 100, paid_in_reference_currency=True)

        assert registry.addresses == ("a", "b")
        assert len(registry) == 2
        assert "a" in registry
        assert registry.get("b").paid_in_reference_currency is True
        assert registry.get("a").accumulated_deposit == 0

    def test_add_emits_event(self, registry, events):
        registry.add("a", 200, 300, paid_in_reference_currency=True)

        event = events.last(EventName.FEE_RECIPIENT_ADDED)
        assert event.fields == {
            "address": "a",
            "buy_fee_bps": 200,
            "sell_fee_bps": 300,
            "paid_in_reference_currency": True,
        }

    @pytest.mark.parametrize("address", ["", NULL_ADDRESS])
    def test_null_address_rejected(self, registry, address):
        with pytest.raises(ConfigurationError) as exc_info:
            registry.add(address, 100, 100)
        assert exc_info.value.code == ErrorCode.CONFIG_NULL_ADDRESS

    def test_duplicate_rejected(self, registry):
        registry.add("a", 100, 100)
        with pytest.raises(ConfigurationError) as exc_info:
            registry.add("a", 50, 50)
        assert exc_info.value.code == ErrorCode.CONFIG_DUPLICATE_RECIPIENT
        assert registry.get("a").buy_fee_bps == 100

    @pytest.mark.parametrize("buy,sell", [(0, 100), (100, 0), (10_001, 100), (-1, 100), (1.5, 100)])
    def test_invalid_fee_rejected(self, registry, buy, sell):
        with pytest.raises(ConfigurationError) as exc_info:
            registry.add("a", buy, sell)
        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_FEE
        assert len(registry) == 0

    def test_capacity_enforced(self, events):
        registry = FeeRegistry(GlobalFeeParameters(), events)
        for i in range(MAX_FEE_RECIPIENTS):
            registry.add(f"r{i}", 1, 1)

        with pytest.raises(ConfigurationError) as exc_info:
            registry.add("one_too_many", 1, 1)
        assert exc_info.value.code == ErrorCode.CONFIG_CAPACITY_EXCEEDED
        assert len(registry) == MAX_FEE_RECIPIENTS

    def test_buy_cap_counts_burn_and_liquidity(self, registry):
        # 100 burn + 50 buy liquidity leaves 9850 for recipients
        registry.add("a", 9850, 100)
        with pytest.raises(ConfigurationError) as exc_info:
            registry.add("b", 1, 1)
        assert exc_info.value.code == ErrorCode.CONFIG_FEE_CAP_EXCEEDED
        assert "b" not in registry

    def test_sell_cap_counts_burn_and_liquidity(self, registry):
        # 100 burn + 100 sell liquidity leaves 9800 for recipients
        with pytest.raises(ConfigurationError) as exc_info:
            registry.add("a", 100, 9801)
        assert exc_info.value.code == ErrorCode.CONFIG_FEE_CAP_EXCEEDED
        registry.add("a", 100, 9800)
        assert registry.cumulative_sell_bps() == 10_000

    def test_returned_config_is_a_copy(self, registry):
        config = registry.add("a", 100, 100)
        config.buy_fee_bps = 5000
        assert registry.get("a").buy_fee_bps == 100


class TestRemove:
    """Tests for FeeRegistry.remove."""

    def test_swap_with_last(self, registry):
        for address in ("a", "b", "c", "d"):
            registry.add(address, 10, 10)

        registry.remove("b")

        assert registry.addresses == ("a", "d", "c")

    def test_remove_last(self, registry):
        registry.add("a", 10, 10)
        registry.add("b", 10, 10)
        registry.remove("b")
        assert registry.addresses == ("a",)

    def test_remove_frees_fee_budget(self, registry):
        registry.add("a", 9850, 9800)
        registry.remove("a")
        registry.add("b", 9850, 9800)
        assert registry.total_buy_fee_bps() == 9850

    def test_remove_drops_deposit(self, registry):
        registry.add("a", 10, 10, paid_in_reference_currency=True)
        registry.accrue("a", 500)
        removed = registry.remove("a")
        assert removed.accumulated_deposit == 500
        assert registry.pending_deposits() == 0

    def test_unknown_rejected(self, registry):
        with pytest.raises(ConfigurationError) as exc_info:
            registry.remove("ghost")
        assert exc_info.value.code == ErrorCode.CONFIG_UNKNOWN_RECIPIENT

    def test_null_rejected(self, registry):
        with pytest.raises(ConfigurationError) as exc_info:
            registry.remove(NULL_ADDRESS)
        assert exc_info.value.code == ErrorCode.CONFIG_NULL_ADDRESS

    def test_remove_emits_event(self, registry, events):
        registry.add("a", 10, 20)
        registry.remove("a")
        assert events.last(EventName.FEE_RECIPIENT_REMOVED).fields["address"] == "a"


class TestIterationAndDeposits:
    """Tests for iterate, totals and deposit bookkeeping."""

    def test_iterate_is_stable_snapshot(self, registry):
        registry.add("a", 10, 10)
        registry.add("b", 20, 20)

        snapshot = registry.iterate()
        registry.remove("a")
        registry.add("c", 30, 30)

        assert [c.address for c in snapshot] == ["a", "b"]
        assert registry.addresses == ("b", "c")

    def test_accrue_and_reset(self, registry):
        registry.add("a", 10, 10, paid_in_reference_currency=True)
        registry.add("b", 10, 10, paid_in_reference_currency=True)

        assert registry.accrue("a", 70) == 70
        assert registry.accrue("a", 30) == 100
        registry.accrue("b", 5)

        assert registry.pending_deposits() == 105
        assert registry.reset_deposit("a") == 100
        assert registry.get("a").accumulated_deposit == 0
        assert registry.pending_deposits() == 5

    def test_totals(self, registry):
        registry.add("a", 200, 300)
        registry.add("b", 100, 100)

        assert registry.total_buy_fee_bps() == 300
        assert registry.total_sell_fee_bps() == 400
        assert registry.cumulative_buy_bps() == 300 + 100 + 50
        assert registry.cumulative_sell_bps() == 400 + 100 + 100

    def test_snapshot_restore(self, registry):
        registry.add("a", 10, 10, paid_in_reference_currency=True)
        state = registry.snapshot()

        registry.accrue("a", 99)
        registry.add("b", 10, 10)
        registry.restore(state)

        assert registry.addresses == ("a",)
        assert registry.get("a").accumulated_deposit == 0

    def test_to_dict(self, registry):
        registry.add("a", 200, 300)
        data = registry.to_dict()
        assert data["count"] == 1
        assert data["capacity"] == MAX_FEE_RECIPIENTS
        assert data["recipients"][0]["address"] == "a"
