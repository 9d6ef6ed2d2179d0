"""
tests/unit/test_conversion.py - Conversion engine tests.

The stub market maker converts at 1:2 out of a funded treasury, so
distribution math can be checked exactly.
"""

import threading

import pytest

from core.constants import ConversionStatus, EventName
from core.exceptions import Expired, PayoutFailed, ReentrancyError, SlippageExceeded


@pytest.fixture
def fee_token(make_token):
    """Two reference-paid recipients, burn and sell liquidity."""
    token = make_token(burn_fee_bps=100, buy_liquidity_fee_bps=50, sell_liquidity_fee_bps=100)
    token.add_fee_recipient("owner", "a", 200, 300, paid_in_reference_currency=True)
    token.add_fee_recipient("owner", "b", 100, 100, paid_in_reference_currency=True)
    return token


class TestConversionOnSell:

    def test_sell_converts_and_distributes(self, fee_token, bank, stub_mm):
        receipt = fee_token.transfer("alice", "pair", 10_000)

        # a 300 + b 100 deposits, 100 burn, 100 reserve; half the reserve converts
        result = receipt.conversion
        assert result.status == ConversionStatus.COMPLETED
        assert result.to_convert == 450
        assert result.received == 225
        assert result.payouts == {"a": 150, "b": 50}
        assert result.liquidity.token_used == 50
        assert result.liquidity.ref_used == 25

        assert bank.balance_of("a") == 150
        assert bank.balance_of("b") == 50
        assert bank.balance_of("token") == 0
        assert fee_token.balance_of("token") == 0
        assert fee_token.registry.pending_deposits() == 0
        assert fee_token.params.liquidity_deposit == 0
        assert receipt.amount_received == 9_400

    def test_market_maker_called_under_latch(self, fee_token, stub_mm):
        fee_token.transfer("alice", "pair", 10_000)

        convert = stub_mm.calls[0]
        assert convert["op"] == "convert"
        assert convert["latch_engaged"] is True
        assert convert["path"] == ("token", "NATIVE")
        # 225 quoted, 50 bps slippage
        assert convert["min_out"] == 223
        assert stub_mm.calls[1]["to"] == "owner"
        assert fee_token.state.latch.engaged is False

    def test_buy_never_converts(self, fee_token, stub_mm):
        receipt = fee_token.transfer("pair", "bob", 10_000)

        assert receipt.conversion is None
        assert stub_mm.calls == []
        assert fee_token.registry.get("a").accumulated_deposit == 200
        assert fee_token.registry.get("b").accumulated_deposit == 100

    def test_plain_transfer_converts_accumulated(self, fee_token, bank):
        fee_token.transfer("pair", "bob", 10_000)

        receipt = fee_token.transfer("alice", "bob", 10_000)

        # Buy deposits (200 + 100) plus plain deposits (200 + 100),
        # reserve 50 + 50 = 100, half converts
        assert receipt.conversion.to_convert == 650
        assert bank.balance_of("a") == 325 * 400 // 650
        assert bank.balance_of("b") == 325 * 200 // 650

    def test_emits_payout_and_summary_events(self, fee_token):
        fee_token.transfer("alice", "pair", 10_000)

        payouts = fee_token.events.events(EventName.FEE_PAYOUT)
        assert [(e.fields["recipient"], e.fields["amount"]) for e in payouts] == [
            ("a", 150),
            ("b", 50),
        ]
        summary = fee_token.events.last(EventName.SWAP_AND_LIQUIFY)
        assert summary.fields["converted"] == 450
        assert summary.fields["received"] == 225


class TestConversionEdgeCases:

    def test_received_is_measured_not_quoted(self, fee_token, bank, stub_mm):
        stub_mm.quote_override = 100

        receipt = fee_token.transfer("alice", "pair", 10_000)

        assert receipt.conversion.received == 225
        assert bank.balance_of("a") == 150

    def test_zero_quote_aborts_and_keeps_deposits(self, fee_token, stub_mm):
        stub_mm.quote_override = 0

        receipt = fee_token.transfer("alice", "pair", 10_000)

        assert receipt.conversion.status == ConversionStatus.ABORTED
        assert fee_token.registry.get("a").accumulated_deposit == 300
        assert fee_token.registry.get("b").accumulated_deposit == 100
        assert fee_token.params.liquidity_deposit == 100
        assert fee_token.events.last(EventName.FEE_PAYOUT) is None
        assert fee_token.balance_of("pair") == 10**9 + 9_400

    def test_market_maker_failure_rolls_back_conversion_only(self, fee_token, bank, stub_mm):
        stub_mm.fail_with = SlippageExceeded("price moved")

        receipt = fee_token.transfer("alice", "pair", 10_000)

        assert receipt.conversion.status == ConversionStatus.FAILED
        # The pull into the pair was undone
        assert fee_token.balance_of("token") == 500
        assert fee_token.balance_of("pair") == 10**9 + 9_400
        assert fee_token.registry.pending_deposits() == 400
        assert bank.balance_of("a") == 0

        # The next qualifying transfer retries everything pending
        stub_mm.fail_with = None
        receipt = fee_token.transfer("alice", "pair", 10_000)
        assert receipt.conversion.status == ConversionStatus.COMPLETED
        assert receipt.conversion.to_convert == 800 + 100
        assert fee_token.registry.pending_deposits() == 0

    def test_expired_is_a_market_maker_failure(self, fee_token, stub_mm):
        stub_mm.fail_with = Expired("late")
        receipt = fee_token.transfer("alice", "pair", 10_000)
        assert receipt.conversion.status == ConversionStatus.FAILED

    def test_liquidity_only(self, make_token, stub_mm):
        token = make_token(sell_liquidity_fee_bps=200)

        receipt = token.transfer("alice", "pair", 10_000)

        # reserve 200: 100 converts to 50, 100 tokens + 50 ref supplied
        assert receipt.conversion.to_convert == 100
        assert receipt.conversion.liquidity.token_used == 100
        assert receipt.conversion.liquidity.ref_used == 50
        assert receipt.conversion.payouts == {}
        assert token.params.liquidity_deposit == 0

    def test_skipped_supply_keeps_unconverted_half(self, make_token, stub_mm):
        token = make_token(sell_liquidity_fee_bps=200)
        stub_mm.rate_num = 0
        stub_mm.quote_override = 1

        receipt = token.transfer("alice", "pair", 10_000)

        # 100 converts to nothing, so the reference side is empty
        assert receipt.conversion.status == ConversionStatus.COMPLETED
        assert receipt.conversion.received == 0
        assert receipt.conversion.liquidity is None
        assert [c["op"] for c in stub_mm.calls] == ["convert"]
        assert token.params.liquidity_deposit == 100
        assert token.balance_of("token") == 100

    def test_partial_supply_carries_remainder(self, make_token, stub_mm):
        token = make_token(sell_liquidity_fee_bps=200)
        stub_mm.max_token_used = 60

        receipt = token.transfer("alice", "pair", 10_000)

        assert receipt.conversion.liquidity.token_used == 60
        assert token.params.liquidity_deposit == 40
        assert token.balance_of("token") == 40

        stub_mm.max_token_used = None
        receipt = token.transfer("alice", "pair", 10_000)

        # 40 carried + 200 new, half converts
        assert receipt.conversion.to_convert == 120
        assert receipt.conversion.liquidity.token_used == 120
        assert token.params.liquidity_deposit == 0
        assert token.balance_of("token") == 0

    def test_single_unit_reserve_is_kept(self, make_token, stub_mm):
        token = make_token(sell_liquidity_fee_bps=1)

        receipt = token.transfer("alice", "pair", 10_000)

        assert receipt.conversion is None
        assert token.params.liquidity_deposit == 1
        assert stub_mm.calls == []


class TestDistributeFees:

    def test_idempotent(self, fee_token, stub_mm):
        fee_token.transfer("alice", "pair", 10_000)
        calls = len(stub_mm.calls)

        result = fee_token.distribute_fees("owner")

        assert result.status == ConversionStatus.NOTHING_TO_CONVERT
        assert result.to_convert == 0
        assert len(stub_mm.calls) == calls

    def test_manual_run_after_buys(self, fee_token, bank):
        fee_token.transfer("pair", "bob", 10_000)

        result = fee_token.distribute_fees("owner")

        # 300 deposits + 25 of the 50 reserve
        assert result.to_convert == 325
        assert result.received == 162
        assert bank.balance_of("a") == 162 * 200 // 325
        assert bank.balance_of("b") == 162 * 100 // 325

    def test_engine_refuses_reentry(self, fee_token):
        fee_token.transfer("pair", "bob", 10_000)
        with fee_token.state.latch.engage():
            with pytest.raises(ReentrancyError):
                fee_token.engine.run()


class TestPayoutFailure:

    def test_atomic_rolls_back_whole_transfer(self, fee_token, bank):
        bank.reject_payments("b")
        alice_before = fee_token.balance_of("alice")
        pair_before = fee_token.balance_of("pair")
        supply = fee_token.total_supply
        events_before = len(fee_token.events)

        with pytest.raises(PayoutFailed):
            fee_token.transfer("alice", "pair", 10_000)

        assert fee_token.balance_of("alice") == alice_before
        assert fee_token.balance_of("pair") == pair_before
        assert fee_token.total_supply == supply
        assert bank.balance_of("a") == 0
        assert fee_token.registry.pending_deposits() == 0
        assert fee_token.params.liquidity_deposit == 0
        assert len(fee_token.events) == events_before
        assert fee_token.state.latch.engaged is False

    def test_non_atomic_keeps_earlier_payouts(self, make_token, bank):
        token = make_token(atomic=False, sell_liquidity_fee_bps=100, burn_fee_bps=100)
        token.add_fee_recipient("owner", "a", 200, 300, paid_in_reference_currency=True)
        token.add_fee_recipient("owner", "b", 100, 100, paid_in_reference_currency=True)
        bank.reject_payments("b")

        with pytest.raises(PayoutFailed):
            token.transfer("alice", "pair", 10_000)

        assert bank.balance_of("a") == 150
        assert token.registry.get("a").accumulated_deposit == 0
        assert token.state.latch.engaged is False

    def test_rollback_keeps_calls_made_from_other_threads(self, fee_token, bank, stub_mm, monkeypatch):
        bank.reject_payments("b")
        convert = stub_mm.convert
        attempting = threading.Event()

        def other_thread():
            attempting.set()
            fee_token.approve("bob", "carol", 500)
            fee_token.set_max_buy_amount("owner", 7_000)

        worker = threading.Thread(target=other_thread)

        def convert_while_other_thread_runs(**kwargs):
            worker.start()
            attempting.wait(timeout=5)
            convert(**kwargs)

        monkeypatch.setattr(stub_mm, "convert", convert_while_other_thread_runs)

        with pytest.raises(PayoutFailed):
            fee_token.transfer("alice", "pair", 10_000)
        worker.join(timeout=5)

        assert not worker.is_alive()
        assert fee_token.allowance("bob", "carol") == 500
        assert fee_token.events.last(EventName.APPROVAL).fields["amount"] == 500
        assert fee_token.params.max_buy_amount == 7_000
        assert fee_token.events.last(EventName.MAX_BUY_AMOUNT_UPDATED).fields["new_value"] == 7_000
