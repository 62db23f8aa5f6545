from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

__all__ = ['OBLIGATION_EXECUTED', 'TRANSACTION_APPENDED', 'Event', 'EventBus']

OBLIGATION_EXECUTED = "OBLIGATION_EXECUTED"
TRANSACTION_APPENDED = "TRANSACTION_APPENDED"


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], object]


class EventBus:
    """Synchronous publish/subscribe, injected where it is needed.

    The orchestration layer publishes after its writes have landed so
    subscribers (e.g. a screen) can re-run the aggregations they show.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, name: str, payload: dict) -> List[object]:
        if name not in self._subscribers:
            return []

        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        return [handler(event, payload) for handler in list(self._subscribers[name])]
