# PATH: core/constants.py
"""
Constants for the fee ledger.

Contains enums, defaults, and hard limits shared by the fee engine,
the simulated market maker, and configuration loading.
"""

from enum import Enum
from typing import Final

# =============================================================================
# HARD LIMITS
# =============================================================================

# 1 bps = 1/10000
BPS_DENOMINATOR: Final[int] = 10_000
MAX_BPS: Final[int] = 10_000

# Every transfer iterates the full recipient list, so keep it small
MAX_FEE_RECIPIENTS: Final[int] = 10

NULL_ADDRESS: Final[str] = "0x0000000000000000000000000000000000000000"

# =============================================================================
# DEFAULTS
# =============================================================================

# Conversion defaults
DEFAULT_MAX_SLIPPAGE_BPS: Final[int] = 50
DEFAULT_DEADLINE_SECONDS: Final[int] = 300

# Constant-product pool swap fee (0.3%, Uniswap V2 style)
DEFAULT_POOL_FEE_BPS: Final[int] = 30

# Token defaults
DEFAULT_DECIMALS: Final[int] = 18
DEFAULT_REFERENCE_SYMBOL: Final[str] = "NATIVE"


class TransferDirection(str, Enum):
    """Direction of a transfer relative to the market pair."""
    BUY = "BUY"      # sender is the pair
    SELL = "SELL"    # recipient is the pair
    PLAIN = "PLAIN"  # neither


class FeeKind(str, Enum):
    """Category of a single deduction taken from a transfer."""
    RECIPIENT = "RECIPIENT"                  # paid in ledger units
    RECIPIENT_DEPOSIT = "RECIPIENT_DEPOSIT"  # held for reference-currency payout
    BURN = "BURN"
    LIQUIDITY = "LIQUIDITY"


class ExemptionReason(str, Enum):
    """Why a transfer skipped fee application."""
    EXCLUDED_SENDER = "EXCLUDED_SENDER"
    EXCLUDED_RECIPIENT = "EXCLUDED_RECIPIENT"
    HOLDING_ADDRESS = "HOLDING_ADDRESS"
    OWNER_EXEMPT = "OWNER_EXEMPT"
    LATCH_ENGAGED = "LATCH_ENGAGED"


class ConversionStatus(str, Enum):
    """Outcome of one conversion engine run."""
    COMPLETED = "COMPLETED"
    ABORTED = "ABORTED"                        # market maker quoted zero
    NOTHING_TO_CONVERT = "NOTHING_TO_CONVERT"
    FAILED = "FAILED"                          # market maker rejected, rolled back


class EventName(str, Enum):
    """Notification names emitted by the ledger."""
    TRANSFER = "Transfer"
    APPROVAL = "Approval"
    MINT = "Mint"
    BURN = "Burn"
    FEE_RECIPIENT_ADDED = "FeeRecipientAdded"
    FEE_RECIPIENT_REMOVED = "FeeRecipientRemoved"
    BURN_FEE_UPDATED = "BurnFeeUpdated"
    BUY_LIQUIDITY_FEE_UPDATED = "BuyLiquidityFeeUpdated"
    SELL_LIQUIDITY_FEE_UPDATED = "SellLiquidityFeeUpdated"
    MAX_BUY_AMOUNT_UPDATED = "MaxBuyAmountUpdated"
    MAX_SELL_AMOUNT_UPDATED = "MaxSellAmountUpdated"
    OWNER_FEE_EXEMPTION_UPDATED = "OwnerFeeExemptionUpdated"
    FEE_EXCLUSION_UPDATED = "FeeExclusionUpdated"
    PAUSED = "Paused"
    UNPAUSED = "Unpaused"
    SWAP_AND_LIQUIFY = "SwapAndLiquify"
    FEE_PAYOUT = "FeePayout"
