"""
fees/interceptor.py - Transfer interception state machine.

TRANSFER STATE CONTRACT:
========================

States (TransferState):
  LIMIT_CHECK          max buy / max sell, balance pre-check
  FEE_EXEMPTION_CHECK  excluded parties, holding address, owner, latch
  FEE_APPLICATION      apply the fee plan (recipients, burn, liquidity)
  CONVERSION_DECISION  convert pending fees on non-buy transfers
  FINAL_TRANSFER       remainder to the recipient
  COMPLETED            terminal
  FAILED               terminal

Transitions:
  LIMIT_CHECK          -> FEE_EXEMPTION_CHECK
  FEE_EXEMPTION_CHECK  -> FEE_APPLICATION | FINAL_TRANSFER (exempt)
  FEE_APPLICATION      -> CONVERSION_DECISION
  CONVERSION_DECISION  -> FINAL_TRANSFER
  FINAL_TRANSFER       -> COMPLETED
  * (non-terminal)     -> FAILED

========================

Limits are not applied to internal settlement (sender is the holding
address, or the latch is engaged), otherwise a conversion larger than the
max sell amount could never reach the pair.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from core.constants import EventName, ExemptionReason, FeeKind, TransferDirection
from core.exceptions import InsufficientBalance, LimitExceeded
from core.logging import get_logger, log_transfer
from core.models import ConversionResult, FeeBreakdown, TransferContext, TransferReceipt
from fees.calculator import classify_direction, plan_fees
from fees.conversion import ConversionEngine
from fees.state import LedgerState

logger = get_logger(__name__)


class TransferState(str, Enum):
    """Interception states."""
    LIMIT_CHECK = "LIMIT_CHECK"
    FEE_EXEMPTION_CHECK = "FEE_EXEMPTION_CHECK"
    FEE_APPLICATION = "FEE_APPLICATION"
    CONVERSION_DECISION = "CONVERSION_DECISION"
    FINAL_TRANSFER = "FINAL_TRANSFER"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


VALID_TRANSITIONS: Dict[TransferState, List[TransferState]] = {
    TransferState.LIMIT_CHECK: [TransferState.FEE_EXEMPTION_CHECK, TransferState.FAILED],
    TransferState.FEE_EXEMPTION_CHECK: [
        TransferState.FEE_APPLICATION,
        TransferState.FINAL_TRANSFER,
        TransferState.FAILED,
    ],
    TransferState.FEE_APPLICATION: [TransferState.CONVERSION_DECISION, TransferState.FAILED],
    TransferState.CONVERSION_DECISION: [TransferState.FINAL_TRANSFER, TransferState.FAILED],
    TransferState.FINAL_TRANSFER: [TransferState.COMPLETED, TransferState.FAILED],
    TransferState.COMPLETED: [],  # Terminal state
    TransferState.FAILED: [],  # Terminal state
}


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


@dataclass
class TransferStateMachine:
    """Tracks the state of one intercepted transfer."""
    state: TransferState = TransferState.LIMIT_CHECK
    history: List[TransferState] = field(default_factory=lambda: [TransferState.LIMIT_CHECK])
    failure: Optional[str] = None

    def transition_to(self, new_state: TransferState) -> None:
        if new_state not in VALID_TRANSITIONS.get(self.state, []):
            raise InvalidTransitionError(
                f"Cannot transition from {self.state.value} to {new_state.value}"
            )
        self.state = new_state
        self.history.append(new_state)

    def fail(self, reason: str) -> None:
        if not self.is_terminal:
            self.transition_to(TransferState.FAILED)
        self.failure = reason

    @property
    def is_terminal(self) -> bool:
        return len(VALID_TRANSITIONS.get(self.state, [])) == 0


class TransferInterceptor:
    """Wraps every ledger transfer with limits, fees and conversion."""

    def __init__(self, state: LedgerState, engine: ConversionEngine):
        self._state = state
        self._engine = engine
        self.last_receipt: Optional[TransferReceipt] = None

    def run(self, sender: str, recipient: str, amount: int) -> TransferReceipt:
        """
        Move `amount` from sender to recipient, taking fees on the way.

        Raises:
            LimitExceeded: above max buy / max sell
            InsufficientBalance: sender cannot cover amount
            PayoutFailed: conversion payout rejected
        """
        machine = TransferStateMachine()
        ctx = TransferContext(
            sender=sender,
            recipient=recipient,
            amount=amount,
            direction=classify_direction(sender, recipient, self._state.pair_address),
        )
        receipt = TransferReceipt(context=ctx)

        try:
            self._check_limits(ctx)
            machine.transition_to(TransferState.FEE_EXEMPTION_CHECK)

            receipt.exemption = self.exemption_for(ctx.sender, ctx.recipient)
            if receipt.exemption is None:
                machine.transition_to(TransferState.FEE_APPLICATION)
                receipt.breakdown = self._apply_fees(ctx)

                machine.transition_to(TransferState.CONVERSION_DECISION)
                receipt.conversion = self._maybe_convert(ctx)

            machine.transition_to(TransferState.FINAL_TRANSFER)
            self._final_transfer(ctx)
            machine.transition_to(TransferState.COMPLETED)
        except Exception as exc:
            machine.fail(str(exc))
            raise

        receipt.states = tuple(s.value for s in machine.history)
        self.last_receipt = receipt
        log_transfer(
            logger,
            ctx.sender,
            ctx.recipient,
            ctx.direction.value,
            ctx.amount,
            ctx.amount_remaining,
            exemption=receipt.exemption.value if receipt.exemption else None,
            fees=receipt.breakdown.total_fees if receipt.breakdown else 0,
        )
        return receipt

    # -------------------------------------------------------------------------
    # States
    # -------------------------------------------------------------------------

    def _is_internal(self, sender: str) -> bool:
        return sender == self._state.address or self._state.latch.engaged

    def _check_limits(self, ctx: TransferContext) -> None:
        params = self._state.params
        if not self._is_internal(ctx.sender):
            if (
                ctx.direction == TransferDirection.BUY
                and params.max_buy_amount > 0
                and ctx.amount > params.max_buy_amount
            ):
                raise LimitExceeded(
                    f"Buy of {ctx.amount} exceeds max {params.max_buy_amount}",
                    details={"amount": ctx.amount, "max_buy_amount": params.max_buy_amount},
                )
            if (
                ctx.direction == TransferDirection.SELL
                and params.max_sell_amount > 0
                and ctx.amount > params.max_sell_amount
            ):
                raise LimitExceeded(
                    f"Sell of {ctx.amount} exceeds max {params.max_sell_amount}",
                    details={"amount": ctx.amount, "max_sell_amount": params.max_sell_amount},
                )

        balance = self._state.ledger.balance_of(ctx.sender)
        if balance < ctx.amount:
            raise InsufficientBalance(
                f"{ctx.sender} has {balance}, needs {ctx.amount}",
                details={"address": ctx.sender, "balance": balance, "amount": ctx.amount},
            )

    def exemption_for(self, sender: str, recipient: str) -> Optional[ExemptionReason]:
        """Why a transfer between these parties skips fees, or None."""
        state = self._state
        if sender in state.excluded_from_fees:
            return ExemptionReason.EXCLUDED_SENDER
        if recipient in state.excluded_from_fees:
            return ExemptionReason.EXCLUDED_RECIPIENT
        if sender == state.address:
            return ExemptionReason.HOLDING_ADDRESS
        if state.params.owner_fee_exempt and (state.is_owner(sender) or state.is_owner(recipient)):
            return ExemptionReason.OWNER_EXEMPT
        if state.latch.engaged:
            return ExemptionReason.LATCH_ENGAGED
        return None

    def _apply_fees(self, ctx: TransferContext) -> FeeBreakdown:
        state = self._state
        breakdown = plan_fees(ctx.amount, ctx.direction, state.registry.iterate(), state.params)

        for deduction in breakdown.deductions:
            if deduction.kind == FeeKind.RECIPIENT:
                state.ledger.transfer(ctx.sender, deduction.beneficiary, deduction.amount)
                state.events.emit(
                    EventName.TRANSFER,
                    sender=ctx.sender,
                    recipient=deduction.beneficiary,
                    amount=deduction.amount,
                )
            elif deduction.kind == FeeKind.RECIPIENT_DEPOSIT:
                state.ledger.transfer(ctx.sender, state.address, deduction.amount)
                state.registry.accrue(deduction.beneficiary, deduction.amount)
                state.events.emit(
                    EventName.TRANSFER,
                    sender=ctx.sender,
                    recipient=state.address,
                    amount=deduction.amount,
                )
            elif deduction.kind == FeeKind.BURN:
                state.ledger.burn(ctx.sender, deduction.amount)
                state.params.total_burned += deduction.amount
                state.events.emit(EventName.BURN, holder=ctx.sender, amount=deduction.amount)
            elif deduction.kind == FeeKind.LIQUIDITY:
                state.ledger.transfer(ctx.sender, state.address, deduction.amount)
                state.params.liquidity_deposit += deduction.amount
                state.events.emit(
                    EventName.TRANSFER,
                    sender=ctx.sender,
                    recipient=state.address,
                    amount=deduction.amount,
                )
            ctx.amount_remaining -= deduction.amount

        return breakdown

    def _maybe_convert(self, ctx: TransferContext) -> Optional[ConversionResult]:
        # The market maker refuses re-entry during its own buy
        if ctx.direction == TransferDirection.BUY:
            return None
        perform_add_liquidity = self._engine.should_add_liquidity()
        if self._engine.pending_amount(perform_add_liquidity) == 0:
            return None
        return self._engine.run(perform_add_liquidity)

    def _final_transfer(self, ctx: TransferContext) -> None:
        self._state.ledger.transfer(ctx.sender, ctx.recipient, ctx.amount_remaining)
        self._state.events.emit(
            EventName.TRANSFER,
            sender=ctx.sender,
            recipient=ctx.recipient,
            amount=ctx.amount_remaining,
        )
