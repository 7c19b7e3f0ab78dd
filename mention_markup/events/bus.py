"""Event bus for mention controller events."""

import logging
from collections.abc import Callable

from mention_markup.events.schemas import MentionEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[MentionEvent], None]


class EventBus:
    """Simple event bus for publishing and subscribing to controller events.

    Subscribers are called synchronously. Errors in handlers are isolated
    and logged to prevent one failing handler from breaking others.
    """

    def __init__(self) -> None:
        self._subscribers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        """Subscribe a handler to receive all events.

        Args:
            handler: Callable that takes a MentionEvent
        """
        self._subscribers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        """Remove a previously subscribed handler, if present."""
        if handler in self._subscribers:
            self._subscribers.remove(handler)

    def publish(self, event: MentionEvent) -> None:
        """Publish an event to all subscribers.

        Errors in handlers are caught and logged to prevent cascading failures.

        Args:
            event: MentionEvent to publish
        """
        for handler in list(self._subscribers):
            try:
                handler(event)
            except Exception:
                logger.exception(f"Error in event handler {getattr(handler, '__name__', handler)!r}")
