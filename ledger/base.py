"""
ledger/base.py - In-memory fungible-unit ledger.

Plain bookkeeping with no fee logic: balances, allowances, mint and burn.
The fee engine is layered on top (fees/token.py) and calls these primitives
for every partial movement of a transfer.
"""

from typing import Dict, Tuple

from core.constants import NULL_ADDRESS
from core.exceptions import (
    ConfigurationError,
    ErrorCode,
    InsufficientAllowance,
    InsufficientBalance,
)
from core.math import is_valid_amount


def is_null_address(address: str | None) -> bool:
    """True for the empty identity and the zero address."""
    return not address or address == NULL_ADDRESS


class InMemoryLedger:
    """Balance and allowance book for one fungible unit."""

    def __init__(self):
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._total_supply = 0

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def _require_amount(self, amount: int) -> None:
        if not is_valid_amount(amount):
            raise ConfigurationError(
                f"Invalid amount: {amount!r}",
                code=ErrorCode.TRANSFER_INVALID_AMOUNT,
                details={"amount": amount},
            )

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Move `amount` units; raises InsufficientBalance without mutating."""
        self._require_amount(amount)
        if is_null_address(recipient):
            raise ConfigurationError(
                "Transfer to null address",
                code=ErrorCode.CONFIG_NULL_ADDRESS,
            )
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(
                f"{sender} has {balance}, needs {amount}",
                details={"address": sender, "balance": balance, "amount": amount},
            )
        self._balances[sender] = balance - amount
        self._balances[recipient] = self.balance_of(recipient) + amount

    def mint(self, recipient: str, amount: int) -> None:
        self._require_amount(amount)
        if is_null_address(recipient):
            raise ConfigurationError(
                "Mint to null address",
                code=ErrorCode.CONFIG_NULL_ADDRESS,
            )
        self._balances[recipient] = self.balance_of(recipient) + amount
        self._total_supply += amount

    def burn(self, holder: str, amount: int) -> None:
        """Destroy `amount` units held by `holder`."""
        self._require_amount(amount)
        balance = self.balance_of(holder)
        if balance < amount:
            raise InsufficientBalance(
                f"{holder} has {balance}, cannot burn {amount}",
                details={"address": holder, "balance": balance, "amount": amount},
            )
        self._balances[holder] = balance - amount
        self._total_supply -= amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self._require_amount(amount)
        self._allowances[(owner, spender)] = amount

    def spend_allowance(self, owner: str, spender: str, amount: int) -> None:
        current = self.allowance(owner, spender)
        if current < amount:
            raise InsufficientAllowance(
                f"{spender} may spend {current} of {owner}, needs {amount}",
                details={"owner": owner, "spender": spender, "allowance": current, "amount": amount},
            )
        self._allowances[(owner, spender)] = current - amount

    def holders(self) -> Dict[str, int]:
        """Non-zero balances."""
        return {a: b for a, b in self._balances.items() if b}

    def snapshot(self) -> tuple:
        return dict(self._balances), dict(self._allowances), self._total_supply

    def restore(self, state: tuple) -> None:
        balances, allowances, total_supply = state
        self._balances = dict(balances)
        self._allowances = dict(allowances)
        self._total_supply = total_supply
