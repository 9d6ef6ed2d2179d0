"""
ledger/reference.py - Reference-currency settlement.

Holds reference-currency (native coin) balances. `send` models a value
call to an arbitrary address: it returns False when the recipient rejects
the payment instead of raising, leaving the decision to the caller.
"""

from typing import Dict, Set

from core.exceptions import ConfigurationError, ErrorCode, InsufficientBalance
from core.math import is_valid_amount


class ReferenceBank:
    """Reference-currency balances plus a set of addresses that refuse payments."""

    def __init__(self, symbol: str = "NATIVE"):
        self.symbol = symbol
        self._balances: Dict[str, int] = {}
        self._rejecting: Set[str] = set()

    def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    def deposit(self, address: str, amount: int) -> None:
        """Credit `amount` from outside the system (funding)."""
        self._require_amount(amount)
        self._balances[address] = self.balance_of(address) + amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Move funds; raises InsufficientBalance. Ignores the rejecting set."""
        self._require_amount(amount)
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(
                f"{sender} holds {balance} {self.symbol}, needs {amount}",
                details={"address": sender, "balance": balance, "amount": amount},
            )
        self._balances[sender] = balance - amount
        self._balances[recipient] = self.balance_of(recipient) + amount

    def send(self, sender: str, recipient: str, amount: int) -> bool:
        """Pay `recipient`; False (and no movement) if it rejects or funds are short."""
        if recipient in self._rejecting or self.balance_of(sender) < amount:
            return False
        self.transfer(sender, recipient, amount)
        return True

    def reject_payments(self, address: str, rejecting: bool = True) -> None:
        """Make `address` refuse (or accept again) incoming sends."""
        if rejecting:
            self._rejecting.add(address)
        else:
            self._rejecting.discard(address)

    def _require_amount(self, amount: int) -> None:
        if not is_valid_amount(amount):
            raise ConfigurationError(
                f"Invalid amount: {amount!r}",
                code=ErrorCode.TRANSFER_INVALID_AMOUNT,
            )

    def snapshot(self) -> tuple:
        return dict(self._balances), set(self._rejecting)

    def restore(self, state: tuple) -> None:
        balances, rejecting = state
        self._balances = dict(balances)
        self._rejecting = set(rejecting)
