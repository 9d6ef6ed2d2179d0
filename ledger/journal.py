"""
ledger/journal.py - Whole-call-or-nothing transactions.

Python offers no transaction rollback, so every stateful participant
(ledger, reference bank, fee registry, parameters, market maker, event log)
exposes snapshot()/restore(state) and a Journal restores all of them when
the wrapped block raises.

Usage:
    journal = Journal([ledger, bank, registry])
    with journal.transaction():
        ...  # any exception restores every participant, then re-raises
"""

from contextlib import contextmanager
from typing import Any, Iterator, List, Protocol, Tuple, Type, runtime_checkable

from core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class Snapshotable(Protocol):
    """A participant whose state can be captured and restored."""

    def snapshot(self) -> Any: ...

    def restore(self, state: Any) -> None: ...


class Journal:
    """Snapshot/restore coordinator over a fixed set of participants."""

    def __init__(self, participants: List[Snapshotable] | None = None):
        self._participants: List[Snapshotable] = []
        for participant in participants or []:
            self.register(participant)

    def register(self, participant: Snapshotable) -> None:
        if not isinstance(participant, Snapshotable):
            raise TypeError(f"{type(participant).__name__} cannot be journaled")
        if not any(p is participant for p in self._participants):
            self._participants.append(participant)

    @property
    def participants(self) -> List[Snapshotable]:
        return list(self._participants)

    def capture(self) -> List[Any]:
        return [p.snapshot() for p in self._participants]

    def rollback(self, states: List[Any]) -> None:
        for participant, state in zip(self._participants, states):
            participant.restore(state)

    @contextmanager
    def transaction(
        self,
        label: str = "call",
        rollback_on: Tuple[Type[BaseException], ...] = (Exception,),
    ) -> Iterator[None]:
        """
        Run the block; restore all participants if it raises one of
        `rollback_on`, then re-raise. Other exceptions propagate untouched.
        """
        states = self.capture()
        try:
            yield
        except rollback_on as exc:
            self.rollback(states)
            logger.debug(
                f"Rolled back {label}",
                extra={"context": {"label": label, "error": str(exc)}},
            )
            raise
