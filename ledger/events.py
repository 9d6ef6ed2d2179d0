"""
ledger/events.py - Notification log.

Every mutation the ledger reports is recorded here as an Event and echoed
to the structured log at DEBUG level.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.constants import EventName
from core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Event:
    """A single emitted notification."""
    name: EventName
    fields: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name.value, "fields": dict(self.fields), "timestamp": self.timestamp}


class EventLog:
    """
    Append-only event log.

    Participates in Journal transactions: restoring a snapshot truncates
    the log back to its earlier length.
    """

    def __init__(self):
        self._events: List[Event] = []

    def emit(self, name: EventName, **fields: Any) -> Event:
        event = Event(
            name=name,
            fields=fields,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        self._events.append(event)
        logger.debug(
            f"Event: {name.value}",
            extra={"context": {"event": name.value, **fields}},
        )
        return event

    def events(self, name: Optional[EventName] = None) -> List[Event]:
        """All events, or only those named `name`, oldest first."""
        if name is None:
            return list(self._events)
        return [e for e in self._events if e.name == name]

    def last(self, name: Optional[EventName] = None) -> Optional[Event]:
        matching = self.events(name)
        return matching[-1] if matching else None

    def __len__(self) -> int:
        return len(self._events)

    def snapshot(self) -> int:
        return len(self._events)

    def restore(self, state: int) -> None:
        del self._events[state:]
