"""Synchronous publish/subscribe bus for note and tag lifecycle events."""

from collections import deque
from dataclasses import dataclass
from typing import Callable, TypeVar

from notecache.logging import get_logger
from notecache.models import Event

logger = get_logger('services.bus')

E = TypeVar("E", bound=Event)
Handler = Callable[[E], None]


def _handler_name(handler: Callable) -> str:
    owner = getattr(handler, "__self__", None)
    name = getattr(handler, "__name__", repr(handler))
    return f"{type(owner).__name__}.{name}" if owner is not None else name


@dataclass(slots=True)
class _Subscription:
    event_type: type[Event]
    handler: Callable[[Event], None]


class NotificationBus:
    """Typed, single-threaded publish/subscribe channel.

    Handlers run synchronously, in the order they subscribed, before
    ``publish`` returns. A handler that raises is logged and skipped; later
    handlers still run. Events published from inside a handler are queued and
    delivered once the current dispatch has finished, so delivery never
    recurses.

    Example::

        bus = NotificationBus()
        bus.subscribe(NoteTrashed, lambda e: print(e.note_id))
        bus.publish(NoteTrashed(note_id="n1"))
    """

    def __init__(self) -> None:
        self._subscriptions: list[_Subscription] = []
        self._queue: deque[Event] = deque()
        self._dispatching = False

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for ``event_type`` and its subclasses."""
        self._subscriptions.append(_Subscription(event_type, handler))
        logger.debug(
            "Subscribed %s to %s", _handler_name(handler), event_type.__name__
        )

    def subscribe_all(self, handler: Handler[Event]) -> None:
        """Register ``handler`` for every event."""
        self.subscribe(Event, handler)

    def publish(self, event: Event) -> None:
        """Deliver ``event`` to every matching subscriber.

        Fire-and-forget: handler failures never reach the publisher.
        """
        self._queue.append(event)
        if self._dispatching:
            logger.debug("Queued nested %s", event.kind)
            return

        self._dispatching = True
        try:
            while self._queue:
                self._dispatch(self._queue.popleft())
        finally:
            self._dispatching = False

    def _dispatch(self, event: Event) -> None:
        # Snapshot so handlers subscribing mid-dispatch only see later events.
        subscriptions = [
            s for s in self._subscriptions if isinstance(event, s.event_type)
        ]
        logger.debug("Publishing %s to %d handler(s)", event.kind, len(subscriptions))
        for subscription in subscriptions:
            try:
                subscription.handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(subscription.handler),
                    event.kind,
                )

    def clear(self) -> None:
        """Remove all subscriptions and drop queued events."""
        self._subscriptions.clear()
        self._queue.clear()
