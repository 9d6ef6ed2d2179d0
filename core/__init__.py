"""
core - Core utilities and models for the fee ledger.

This package contains:
- constants.py: Enums, limits and defaults
- exceptions.py: Typed exceptions with error codes
- math.py: Integer bps and pro-rata math (no float)
- models.py: Fee recipient, parameters, transfer and conversion models
- logging.py: Structured JSON logging
"""

from core.constants import (
    BPS_DENOMINATOR,
    MAX_FEE_RECIPIENTS,
    NULL_ADDRESS,
    ConversionStatus,
    EventName,
    ExemptionReason,
    FeeKind,
    TransferDirection,
)
from core.exceptions import (
    ConfigurationError,
    ConversionAborted,
    ErrorCode,
    Expired,
    InsufficientAllowance,
    InsufficientBalance,
    LedgerError,
    LimitExceeded,
    MarketMakerError,
    PayoutFailed,
    ReentrancyError,
    SlippageExceeded,
    TransfersPaused,
    Unauthorized,
)
from core.logging import get_logger, setup_logging
from core.models import (
    ConversionResult,
    FeeBreakdown,
    FeeDeduction,
    FeeRecipientConfig,
    GlobalFeeParameters,
    LiquiditySupplied,
    TransferContext,
    TransferReceipt,
)

__all__ = [
    # Constants
    "BPS_DENOMINATOR",
    "MAX_FEE_RECIPIENTS",
    "NULL_ADDRESS",
    "ConversionStatus",
    "EventName",
    "ExemptionReason",
    "FeeKind",
    "TransferDirection",
    # Exceptions
    "ConfigurationError",
    "ConversionAborted",
    "ErrorCode",
    "Expired",
    "InsufficientAllowance",
    "InsufficientBalance",
    "LedgerError",
    "LimitExceeded",
    "MarketMakerError",
    "PayoutFailed",
    "ReentrancyError",
    "SlippageExceeded",
    "TransfersPaused",
    "Unauthorized",
    # Models
    "ConversionResult",
    "FeeBreakdown",
    "FeeDeduction",
    "FeeRecipientConfig",
    "GlobalFeeParameters",
    "LiquiditySupplied",
    "TransferContext",
    "TransferReceipt",
    # Logging
    "get_logger",
    "setup_logging",
]
