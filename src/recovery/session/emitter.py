"""Outbound event emitter — hands cart session events to collaborators.

Emission is synchronous and fire-and-forget. A listener that raises is
logged and skipped: delivery belongs to the collaborator, and a failing
email provider must never undo or block a state transition.
"""

from collections import defaultdict
from collections.abc import Callable, Iterable

import structlog

from recovery.session.events import CartAbandoned, CartRecovered

logger = structlog.get_logger(__name__)

Listener = Callable[[object], None]


class EventEmitter:
    def __init__(self):
        self._listeners: dict[type, list[Listener]] = defaultdict(list)
        self.failures = 0

    def subscribe(self, event_cls: type, listener: Listener) -> Listener:
        self._listeners[event_cls].append(listener)
        return listener

    def unsubscribe(self, event_cls: type, listener: Listener) -> None:
        if listener in self._listeners.get(event_cls, []):
            self._listeners[event_cls].remove(listener)

    def on_abandoned(self, listener: Listener) -> Listener:
        """Register a listener for sessions the sweep marks Abandoned."""
        return self.subscribe(CartAbandoned, listener)

    def on_recovered(self, listener: Listener) -> Listener:
        """Register a listener for sessions closed by checkout completion."""
        return self.subscribe(CartRecovered, listener)

    def listeners_for(self, event) -> list[Listener]:
        return [
            listener
            for event_cls, listeners in self._listeners.items()
            if isinstance(event, event_cls)
            for listener in listeners
        ]

    def emit(self, events: Iterable) -> int:
        """Deliver each event to its listeners. Returns the number of failed deliveries."""
        failed = 0
        for event in events:
            for listener in self.listeners_for(event):
                try:
                    listener(event)
                except Exception as exc:
                    failed += 1
                    logger.error(
                        "Cart session event listener failed",
                        event_type=event.__class__.__name__,
                        session_id=str(getattr(event, "session_id", "")),
                        listener=getattr(listener, "__qualname__", repr(listener)),
                        error=str(exc),
                        exc_info=True,
                    )

        self.failures += failed
        return failed
