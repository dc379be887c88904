"""Change notifications for presentation layers.

The tracker publishes ``DATA_CHANGED`` after add/update/delete/generate and
budget updates, and ``DATA_CLEARED`` after bulk clears.  Listeners react by
calling ``ExpenseTracker.refresh()``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple, Optional

__all__ = ['DATA_CHANGED', 'DATA_CLEARED', 'Event', 'EventBus']

logger = logging.getLogger(__name__)

DATA_CHANGED = "expense_data_changed"
DATA_CLEARED = "expense_data_cleared"


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event], None]


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        if name not in self._subscribers:
            self._subscribers[name] = []
        self._subscribers[name].append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        if name in self._subscribers:
            if handler in self._subscribers[name]:
                self._subscribers[name].remove(handler)

    def publish(self, name: str, payload: Optional[dict] = None) -> int:
        """Deliver an event to every handler of ``name``; returns how many ran cleanly.

        A handler that raises is logged and skipped so the remaining
        listeners still refresh.
        """
        handlers = list(self._subscribers.get(name, []))
        if not handlers:
            return 0

        event = Event(
            name=name,
            ts=datetime.now().isoformat(),
            payload=dict(payload or {}),
        )

        delivered = 0
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Listener %r failed while handling %s", handler, name)
                continue
            delivered += 1
        return delivered
