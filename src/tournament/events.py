"""
Tournament event log and change notifications.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

logger = logging.getLogger(__name__)

TOURNAMENT_CREATED = 'tournament_created'
TOURNAMENT_LOADED = 'tournament_loaded'
TOURNAMENT_RESET = 'tournament_reset'
MATCH_UPDATED = 'match_updated'
GROUP_STAGE_COMPLETED = 'group_stage_completed'
TOURNAMENT_COMPLETED = 'tournament_completed'
STAGE_CHANGED = 'stage_changed'


class Event(NamedTuple):
    sequence: int
    type: str
    payload: Dict
    timestamp: str

    def to_dict(self) -> Dict:
        return {
            'sequence': self.sequence,
            'type': self.type,
            'payload': dict(self.payload),
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Event':
        return cls(data['sequence'], data['type'], dict(data.get('payload') or {}), data['timestamp'])


class EventLog:
    """Append-only, ordered record of what happened to a tournament."""

    def __init__(self, events=None):
        self._events: List[Event] = list(events) if events else []

    def append(self, event_type: str, payload: Dict = None) -> Event:
        event = Event(len(self._events) + 1, event_type, dict(payload or {}),
                      datetime.now().isoformat())
        self._events.append(event)
        return event

    def since(self, sequence: int = 0) -> List[Event]:
        """Events with a sequence number greater than *sequence*."""
        return [e for e in self._events if e.sequence > sequence]

    @property
    def last_sequence(self) -> int:
        return self._events[-1].sequence if self._events else 0

    def __len__(self):
        return len(self._events)

    def __iter__(self):
        return iter(self._events)

    def to_list(self) -> List[Dict]:
        return [e.to_dict() for e in self._events]

    @classmethod
    def from_list(cls, data) -> 'EventLog':
        return cls(Event.from_dict(item) for item in (data or []))


class Notifier:
    """Synchronous listener registry; listeners are called in registration order."""

    def __init__(self):
        self._listeners: List[Callable[[str, Dict], None]] = []

    def add_listener(self, listener: Callable[[str, Dict], None]):
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener) -> bool:
        if listener in self._listeners:
            self._listeners.remove(listener)
            return True
        return False

    def emit(self, event_type: str, payload: Dict = None):
        for listener in list(self._listeners):
            try:
                listener(event_type, dict(payload or {}))
            except Exception:
                logger.exception("Listener %r failed on %s", listener, event_type)
