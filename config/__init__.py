"""
Configuration loading for the fee ledger.

Settings come from a YAML file (config/ledger.yaml by default) with
environment overrides read through python-dotenv:

    FEE_LEDGER_CONFIG        path to the YAML file
    FEE_LEDGER_LOG_LEVEL     DEBUG / INFO / WARNING / ERROR
    FEE_LEDGER_SLIPPAGE_BPS  max slippage for fee conversions

All amounts are ints in the smallest unit.
"""

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from core.constants import (
    DEFAULT_DEADLINE_SECONDS,
    DEFAULT_DECIMALS,
    DEFAULT_MAX_SLIPPAGE_BPS,
    DEFAULT_POOL_FEE_BPS,
    DEFAULT_REFERENCE_SYMBOL,
    MAX_BPS,
    MAX_FEE_RECIPIENTS,
)
from core.exceptions import ConfigurationError, ErrorCode
from core.math import is_valid_amount, is_valid_bps

CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_FILE = CONFIG_DIR / "ledger.yaml"

ENV_CONFIG_PATH = "FEE_LEDGER_CONFIG"
ENV_LOG_LEVEL = "FEE_LEDGER_LOG_LEVEL"
ENV_SLIPPAGE_BPS = "FEE_LEDGER_SLIPPAGE_BPS"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class RecipientSettings:
    """One fee recipient from config."""
    address: str
    buy_fee_bps: int
    sell_fee_bps: int
    paid_in_reference_currency: bool = False


@dataclass
class PoolSettings:
    """Initial pool liquidity, supplied by the owner."""
    token_liquidity: int = 0
    ref_liquidity: int = 0
    fee_bps: int = DEFAULT_POOL_FEE_BPS


@dataclass
class LedgerSettings:
    """Full ledger configuration."""

    # Token
    name: str = "Fee Token"
    symbol: str = "FEE"
    decimals: int = DEFAULT_DECIMALS
    token_address: str = "token"
    owner: str = "owner"
    initial_supply: int = 0

    # Market maker
    pair_address: str = "pair"
    router_address: str = "router"
    reference_symbol: str = DEFAULT_REFERENCE_SYMBOL
    pool: PoolSettings = field(default_factory=PoolSettings)

    # Fees
    burn_fee_bps: int = 0
    buy_liquidity_fee_bps: int = 0
    sell_liquidity_fee_bps: int = 0
    max_buy_amount: int = 0
    max_sell_amount: int = 0
    owner_fee_exempt: bool = True
    excluded_from_fees: List[str] = field(default_factory=list)
    recipients: List[RecipientSettings] = field(default_factory=list)

    # Initial distribution (from the owner)
    balances: Dict[str, int] = field(default_factory=dict)
    reference_balances: Dict[str, int] = field(default_factory=dict)

    # Conversion
    max_slippage_bps: int = DEFAULT_MAX_SLIPPAGE_BPS
    deadline_seconds: int = DEFAULT_DEADLINE_SECONDS

    log_level: str = "INFO"

    def validate(self) -> "LedgerSettings":
        """Raise ConfigurationError on the first invalid value."""
        for name in ("burn_fee_bps", "buy_liquidity_fee_bps", "sell_liquidity_fee_bps",
                     "max_slippage_bps"):
            if not is_valid_bps(getattr(self, name)):
                raise ConfigurationError(
                    f"{name} must be an int in 0..{MAX_BPS}",
                    code=ErrorCode.CONFIG_INVALID_FEE,
                    details={name: getattr(self, name)},
                )
        for name in ("initial_supply", "max_buy_amount", "max_sell_amount", "deadline_seconds"):
            if not is_valid_amount(getattr(self, name)):
                raise ConfigurationError(
                    f"{name} must be a non-negative int",
                    code=ErrorCode.CONFIG_INVALID_VALUE,
                    details={name: getattr(self, name)},
                )
        if len(self.recipients) > MAX_FEE_RECIPIENTS:
            raise ConfigurationError(
                f"At most {MAX_FEE_RECIPIENTS} fee recipients",
                code=ErrorCode.CONFIG_CAPACITY_EXCEEDED,
            )
        if sum(self.balances.values()) > self.initial_supply:
            raise ConfigurationError(
                "Initial balances exceed initial supply",
                code=ErrorCode.CONFIG_INVALID_VALUE,
            )
        if self.pool.token_liquidity + sum(self.balances.values()) > self.initial_supply:
            raise ConfigurationError(
                "Pool liquidity plus balances exceed initial supply",
                code=ErrorCode.CONFIG_INVALID_VALUE,
            )
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(
                f"log_level must be one of {LOG_LEVELS}",
                code=ErrorCode.CONFIG_INVALID_VALUE,
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


def load_yaml(path: Path) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        path: File path

    Returns:
        Parsed YAML as dict
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config root must be a mapping: {path}",
            code=ErrorCode.CONFIG_INVALID_VALUE,
        )
    return data


def parse_settings(data: Dict[str, Any]) -> LedgerSettings:
    """Build LedgerSettings from a parsed YAML mapping; unknown keys are rejected."""
    data = dict(data)
    known = {f.name for f in dataclasses.fields(LedgerSettings)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown config keys: {sorted(unknown)}",
            code=ErrorCode.CONFIG_INVALID_VALUE,
        )

    try:
        recipients = [RecipientSettings(**r) for r in data.pop("recipients", None) or []]
        pool = PoolSettings(**(data.pop("pool", None) or {}))
    except TypeError as exc:
        raise ConfigurationError(
            f"Invalid recipient or pool entry: {exc}",
            code=ErrorCode.CONFIG_INVALID_VALUE,
        ) from exc

    return LedgerSettings(recipients=recipients, pool=pool, **data)


def load_settings(
    config_path: Optional[Path] = None,
    load_env: bool = True,
) -> LedgerSettings:
    """
    Load ledger settings.

    Resolution order for the file: explicit argument, FEE_LEDGER_CONFIG,
    config/ledger.yaml. A missing default file yields default settings.

    Args:
        config_path: Path to a YAML file
        load_env: Read a .env file into the environment first

    Returns:
        Validated LedgerSettings
    """
    if load_env:
        load_dotenv()

    if config_path is None and os.environ.get(ENV_CONFIG_PATH):
        config_path = Path(os.environ[ENV_CONFIG_PATH])

    if config_path is None:
        data = load_yaml(DEFAULT_CONFIG_FILE) if DEFAULT_CONFIG_FILE.exists() else {}
    else:
        data = load_yaml(Path(config_path))

    settings = parse_settings(data)

    if os.environ.get(ENV_LOG_LEVEL):
        settings.log_level = os.environ[ENV_LOG_LEVEL].upper()
    if os.environ.get(ENV_SLIPPAGE_BPS):
        try:
            settings.max_slippage_bps = int(os.environ[ENV_SLIPPAGE_BPS])
        except ValueError as exc:
            raise ConfigurationError(
                f"{ENV_SLIPPAGE_BPS} must be an int",
                code=ErrorCode.CONFIG_INVALID_VALUE,
            ) from exc

    return settings.validate()
