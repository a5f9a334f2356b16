from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


@dataclass
class InternalEvent:
    name: str
    payload: dict[str, Any]


EventHandler = Callable[[InternalEvent], None]


class InProcessEventBus:
    """Synchronous fan-out of named events.

    Handlers subscribe to an exact name (``crm.deal.stage_changed``) or to a
    prefix ending in ``.*`` (``crm.deal.*``); ``*`` alone receives everything.
    Handler exceptions propagate to the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, pattern: str, handler: EventHandler) -> None:
        self._subscribers[pattern].append(handler)

    def unsubscribe(self, pattern: str, handler: EventHandler) -> None:
        handlers = self._subscribers.get(pattern, [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event_name: str) -> list[EventHandler]:
        matched: list[EventHandler] = []
        for pattern, handlers in list(self._subscribers.items()):
            if _matches(pattern, event_name):
                matched.extend(handlers)
        return matched

    def publish(self, event_name: str, payload: dict[str, Any]) -> None:
        event = InternalEvent(name=event_name, payload=payload)
        for handler in self.handlers_for(event_name):
            handler(event)

    def clear(self) -> None:
        self._subscribers.clear()


def _matches(pattern: str, event_name: str) -> bool:
    if pattern == "*" or pattern == event_name:
        return True
    if pattern.endswith(".*"):
        return event_name.startswith(pattern[:-1])
    return False


event_bus = InProcessEventBus()
