"""In-process events published by the conversation controller."""

from .bus import (
    CONVERSATION_CHANGED,
    NOTICE,
    SESSION_CHANGED,
    Event,
    EventBus,
)

__all__ = [
    "CONVERSATION_CHANGED",
    "NOTICE",
    "SESSION_CHANGED",
    "Event",
    "EventBus",
]
