# PATH: core/exceptions.py
"""
Typed exceptions for the fee ledger.

Every error carries an ErrorCode so callers (and logs) can tell a
configuration rejection from a transfer-level revert or a market maker
failure without parsing messages.
"""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Error codes for all ledger failures."""
    # Configuration
    CONFIG_NULL_ADDRESS = "CONFIG_NULL_ADDRESS"
    CONFIG_DUPLICATE_RECIPIENT = "CONFIG_DUPLICATE_RECIPIENT"
    CONFIG_UNKNOWN_RECIPIENT = "CONFIG_UNKNOWN_RECIPIENT"
    CONFIG_INVALID_FEE = "CONFIG_INVALID_FEE"
    CONFIG_CAPACITY_EXCEEDED = "CONFIG_CAPACITY_EXCEEDED"
    CONFIG_FEE_CAP_EXCEEDED = "CONFIG_FEE_CAP_EXCEEDED"
    CONFIG_INVALID_VALUE = "CONFIG_INVALID_VALUE"

    # Transfer
    TRANSFER_LIMIT_EXCEEDED = "TRANSFER_LIMIT_EXCEEDED"
    TRANSFER_PAUSED = "TRANSFER_PAUSED"
    TRANSFER_INVALID_AMOUNT = "TRANSFER_INVALID_AMOUNT"

    # Ledger
    LEDGER_INSUFFICIENT_BALANCE = "LEDGER_INSUFFICIENT_BALANCE"
    LEDGER_INSUFFICIENT_ALLOWANCE = "LEDGER_INSUFFICIENT_ALLOWANCE"

    # Conversion
    CONVERSION_ABORTED = "CONVERSION_ABORTED"
    CONVERSION_PAYOUT_FAILED = "CONVERSION_PAYOUT_FAILED"

    # Market maker
    MM_SLIPPAGE_EXCEEDED = "MM_SLIPPAGE_EXCEEDED"
    MM_EXPIRED = "MM_EXPIRED"
    MM_INVALID_REQUEST = "MM_INVALID_REQUEST"

    # Access / guard
    AUTH_UNAUTHORIZED = "AUTH_UNAUTHORIZED"
    GUARD_REENTRANT = "GUARD_REENTRANT"

    UNKNOWN = "UNKNOWN"


class LedgerError(Exception):
    """Base exception for the fee ledger."""

    default_code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def __str__(self):
        return f"[{self.code.value}] {self.message}"

    def to_dict(self) -> dict:
        """Serialize for logs and CLI output."""
        return {
            "error_code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(LedgerError):
    """Invalid recipient parameters, capacity or fee cap exceeded."""
    default_code = ErrorCode.CONFIG_INVALID_VALUE


class LimitExceeded(LedgerError):
    """Transfer above the configured max buy / max sell amount."""
    default_code = ErrorCode.TRANSFER_LIMIT_EXCEEDED


class TransfersPaused(LedgerError):
    """Transfers are halted by the pause switch."""
    default_code = ErrorCode.TRANSFER_PAUSED


class InsufficientBalance(LedgerError):
    """Base ledger (or reference bank) balance too low."""
    default_code = ErrorCode.LEDGER_INSUFFICIENT_BALANCE


class InsufficientAllowance(LedgerError):
    """Spender allowance too low for transfer_from."""
    default_code = ErrorCode.LEDGER_INSUFFICIENT_ALLOWANCE


class ConversionAborted(LedgerError):
    """
    Market maker quoted zero for the conversion.

    Never surfaced to transfer callers: the engine turns it into an
    ABORTED result and deposits stay accumulated.
    """
    default_code = ErrorCode.CONVERSION_ABORTED


class PayoutFailed(LedgerError):
    """A recipient rejected its reference-currency payout."""
    default_code = ErrorCode.CONVERSION_PAYOUT_FAILED


class Unauthorized(LedgerError):
    """Administrative call from a non-owner identity."""
    default_code = ErrorCode.AUTH_UNAUTHORIZED


class ReentrancyError(LedgerError):
    """The re-entrancy latch was engaged twice."""
    default_code = ErrorCode.GUARD_REENTRANT


class MarketMakerError(LedgerError):
    """Market maker rejected a request."""
    default_code = ErrorCode.MM_INVALID_REQUEST


class SlippageExceeded(MarketMakerError):
    """Output below the caller's minimum."""
    default_code = ErrorCode.MM_SLIPPAGE_EXCEEDED


class Expired(MarketMakerError):
    """Request deadline already passed."""
    default_code = ErrorCode.MM_EXPIRED
