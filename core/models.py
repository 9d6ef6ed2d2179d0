# PATH: core/models.py
"""
Core data models for the fee ledger.

FEE ENGINE DATA CONTRACT
========================

FeeRecipientConfig   one per fee-entitled address; mutable deposit
GlobalFeeParameters  burn/liquidity fees, limits, reserve, supply counters
TransferContext      ephemeral, one per intercepted transfer
FeeDeduction         one planned deduction (immutable)
FeeBreakdown         ordered deductions + remainder for one transfer

Conservation: sum(d.amount for d in breakdown.deductions)
              + breakdown.amount_remaining == breakdown.amount
========================
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from core.constants import (
    ConversionStatus,
    ExemptionReason,
    FeeKind,
    TransferDirection,
)


@dataclass
class FeeRecipientConfig:
    """Fee configuration for one recipient address."""
    address: str
    buy_fee_bps: int
    sell_fee_bps: int
    paid_in_reference_currency: bool = False
    accumulated_deposit: int = 0

    def fee_bps(self, direction: TransferDirection) -> int:
        """Sell rate for sells; buy rate for buys and plain transfers."""
        if direction == TransferDirection.SELL:
            return self.sell_fee_bps
        return self.buy_fee_bps

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "buy_fee_bps": self.buy_fee_bps,
            "sell_fee_bps": self.sell_fee_bps,
            "paid_in_reference_currency": self.paid_in_reference_currency,
            "accumulated_deposit": self.accumulated_deposit,
        }


@dataclass
class GlobalFeeParameters:
    """Global fee settings plus the liquidity reserve and supply counters."""
    burn_fee_bps: int = 0
    buy_liquidity_fee_bps: int = 0
    sell_liquidity_fee_bps: int = 0
    max_buy_amount: int = 0   # 0 = unlimited
    max_sell_amount: int = 0  # 0 = unlimited
    owner_fee_exempt: bool = False
    liquidity_deposit: int = 0
    total_minted: int = 0
    total_burned: int = 0

    def liquidity_fee_bps(self, direction: TransferDirection) -> int:
        """Sell rate for sells; buy rate for buys and plain transfers."""
        if direction == TransferDirection.SELL:
            return self.sell_liquidity_fee_bps
        return self.buy_liquidity_fee_bps

    def snapshot(self) -> "GlobalFeeParameters":
        return dataclasses.replace(self)

    def restore(self, state: "GlobalFeeParameters") -> None:
        for f in dataclasses.fields(self):
            setattr(self, f.name, getattr(state, f.name))

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass
class TransferContext:
    """State of one transfer while it passes through the interceptor."""
    sender: str
    recipient: str
    amount: int
    direction: TransferDirection = TransferDirection.PLAIN
    amount_remaining: int = -1

    def __post_init__(self):
        if self.amount_remaining < 0:
            self.amount_remaining = self.amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "recipient": self.recipient,
            "amount": self.amount,
            "direction": self.direction.value,
            "amount_remaining": self.amount_remaining,
        }


@dataclass(frozen=True)
class FeeDeduction:
    """One planned deduction. beneficiary is None for burn and liquidity."""
    kind: FeeKind
    amount: int
    bps: int
    beneficiary: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "amount": self.amount,
            "bps": self.bps,
            "beneficiary": self.beneficiary,
        }


@dataclass(frozen=True)
class FeeBreakdown:
    """All deductions for one transfer, in application order."""
    amount: int
    direction: TransferDirection
    deductions: Tuple[FeeDeduction, ...] = ()
    amount_remaining: int = 0

    def amount_for(self, *kinds: FeeKind) -> int:
        return sum(d.amount for d in self.deductions if d.kind in kinds)

    @property
    def total_fees(self) -> int:
        return sum(d.amount for d in self.deductions)

    @property
    def burn_amount(self) -> int:
        return self.amount_for(FeeKind.BURN)

    @property
    def liquidity_amount(self) -> int:
        return self.amount_for(FeeKind.LIQUIDITY)

    @property
    def deposit_amount(self) -> int:
        return self.amount_for(FeeKind.RECIPIENT_DEPOSIT)

    @property
    def recipient_amount(self) -> int:
        return self.amount_for(FeeKind.RECIPIENT, FeeKind.RECIPIENT_DEPOSIT)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": self.amount,
            "direction": self.direction.value,
            "deductions": [d.to_dict() for d in self.deductions],
            "total_fees": self.total_fees,
            "amount_remaining": self.amount_remaining,
        }


@dataclass(frozen=True)
class LiquiditySupplied:
    """Amounts the market maker actually took, and pool shares minted."""
    token_used: int
    ref_used: int
    pool_shares: int


@dataclass
class ConversionResult:
    """What one conversion engine run did."""
    status: ConversionStatus
    to_convert: int = 0
    received: int = 0
    liquidity: Optional[LiquiditySupplied] = None
    payouts: Dict[str, int] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.status == ConversionStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "to_convert": self.to_convert,
            "received": self.received,
            "liquidity": dataclasses.asdict(self.liquidity) if self.liquidity else None,
            "payouts": dict(self.payouts),
            "error": self.error,
        }


@dataclass
class TransferReceipt:
    """Outcome of one intercepted transfer."""
    context: TransferContext
    breakdown: Optional[FeeBreakdown] = None
    exemption: Optional[ExemptionReason] = None
    conversion: Optional[ConversionResult] = None
    states: Tuple[str, ...] = ()

    @property
    def fees_applied(self) -> bool:
        return self.breakdown is not None and self.breakdown.total_fees > 0

    @property
    def amount_received(self) -> int:
        return self.context.amount_remaining

    def to_dict(self) -> Dict[str, Any]:
        return {
            "context": self.context.to_dict(),
            "breakdown": self.breakdown.to_dict() if self.breakdown else None,
            "exemption": self.exemption.value if self.exemption else None,
            "conversion": self.conversion.to_dict() if self.conversion else None,
            "states": list(self.states),
        }
