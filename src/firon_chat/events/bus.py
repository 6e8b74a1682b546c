"""Event bus connecting the conversation controller to the presentation layer.

Usage:
    bus = EventBus()

    async def on_notice(event):
        print(event.data["text"])

    bus.subscribe(NOTICE, on_notice)
    await bus.publish(NOTICE, {"text": "Message copied!", "seconds": 3.0})
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import inspect
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)

CONVERSATION_CHANGED = "conversation.changed"
SESSION_CHANGED = "session.changed"
NOTICE = "notice"


@dataclass
class Event:
    """Event data container."""

    name: str
    data: dict[str, Any]
    source: str | None = None


class EventBus:
    """Publish/subscribe hub; handlers may be plain callables or coroutines."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Callable[[Event], Any]]] = {}

    def subscribe(self, event_name: str, handler: Callable[[Event], Any]) -> None:
        """Register ``handler`` for ``event_name``."""
        self._subscribers.setdefault(event_name, []).append(handler)
        LOGGER.debug(
            "bus.subscribe",
            extra={"event": "bus.subscribe", "event_name": event_name},
        )

    def unsubscribe(self, event_name: str, handler: Callable[[Event], Any]) -> None:
        handlers = self._subscribers.get(event_name)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return

    async def publish(
        self, event_name: str, data: dict[str, Any], source: str | None = None
    ) -> None:
        """Deliver an event to every subscriber.

        A failing handler is logged and does not stop delivery to the rest.
        """
        event = Event(name=event_name, data=data, source=source)
        handlers = list(self._subscribers.get(event_name, []))
        if not handlers:
            return

        for handler in handlers:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:  # noqa: BLE001 - subscriber errors must not break the publisher.
                LOGGER.exception(
                    "bus.handler_failed",
                    extra={"event": "bus.handler_failed", "event_name": event_name},
                )

    def clear(self, event_name: str | None = None) -> None:
        """Drop subscribers for one event, or for all events."""
        if event_name:
            self._subscribers.pop(event_name, None)
        else:
            self._subscribers.clear()
