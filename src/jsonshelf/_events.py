"""Per-database publish/subscribe delivery.

Each Database owns one EventBus. Delivery is synchronous: ``emit`` calls
every subscriber of the event, in registration order, on the calling thread
before it returns. Exceptions raised by a subscriber propagate to the code
that triggered the event.
"""

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any, TypeAlias

logger = logging.getLogger(__name__)

__all__ = ["Event", "EventBus", "Listener"]

Listener: TypeAlias = "Callable[..., Any]"


class Event(str, Enum):
    """Names of the events a database publishes.

    Payloads:
        READY: ``(database,)``
        UPDATE: ``(path, value, table)``
        DELETE: ``(key, table)``
        EXPIRES: ``(timeout_entry,)``
        CREATE_TIMEOUT: ``(timeout_entry,)``
        SAVE_ERROR: ``(table, error)``
    """

    READY = "ready"
    UPDATE = "update"
    DELETE = "delete"
    EXPIRES = "expires"
    CREATE_TIMEOUT = "createTimeout"
    SAVE_ERROR = "saveError"


class _Once:
    __slots__ = ("callback",)

    def __init__(self, callback: Listener) -> None:
        self.callback = callback


class EventBus:
    """Synchronous, multi-subscriber event delivery."""

    __slots__ = ("_listeners",)

    _listeners: "dict[Event, list[Listener | _Once]]"

    def __init__(self) -> None:
        self._listeners = {event: [] for event in Event}

    def on(self, event: "Event | str", callback: Listener) -> Listener:
        """Subscribe a callback. Returns the callback, so this works as a decorator."""
        self._listeners[Event(event)].append(callback)
        return callback

    def once(self, event: "Event | str", callback: Listener) -> Listener:
        """Subscribe a callback that is removed after its first delivery."""
        self._listeners[Event(event)].append(_Once(callback))
        return callback

    def off(self, event: "Event | str", callback: Listener) -> bool:
        """Remove the first registration of callback.

        Returns:
            True if the callback was subscribed, False otherwise.
        """
        listeners = self._listeners[Event(event)]
        for i, entry in enumerate(listeners):
            target = entry.callback if isinstance(entry, _Once) else entry
            if target == callback:
                del listeners[i]
                return True
        return False

    def listeners(self, event: "Event | str") -> list[Listener]:
        """Return the subscribed callbacks in delivery order."""
        return [
            entry.callback if isinstance(entry, _Once) else entry
            for entry in self._listeners[Event(event)]
        ]

    def clear(self) -> None:
        """Remove every subscriber of every event."""
        for listeners in self._listeners.values():
            listeners.clear()

    def emit(self, event: "Event | str", *args: object) -> bool:
        """Deliver an event to its subscribers.

        Subscribers registered or removed during delivery do not affect the
        current delivery.

        Returns:
            True if the event had at least one subscriber.
        """
        event = Event(event)
        listeners = self._listeners[event]
        if not listeners:
            return False
        logger.debug("emit %s to %d listener(s)", event.value, len(listeners))
        for entry in list(listeners):
            if isinstance(entry, _Once):
                try:
                    listeners.remove(entry)
                except ValueError:
                    # already removed by an earlier subscriber
                    continue
                entry.callback(*args)
            else:
                entry(*args)
        return True
