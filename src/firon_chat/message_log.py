"""Ordered message log with id-preserving in-place updates."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
import dataclasses
from dataclasses import asdict, dataclass
from enum import Enum
import json
import time
from typing import Any, Literal


class Sender(str, Enum):
    """Author of a message in the conversation log."""

    USER = "user"
    AI = "ai"


TurnRole = Literal["user", "model"]


@dataclass(frozen=True)
class Turn:
    """One entry of the alternating user/model exchange sent for text generation."""

    role: TurnRole
    text: str


@dataclass
class Message:
    """A single conversation entry.

    ``original_prompt_id`` and ``original_image_prompt`` are plain lookup
    keys; the message they point at may have been edited or may be gone.
    """

    id: int
    sender: Sender
    text: str = ""
    timestamp: str = ""
    image: str | None = None
    original_prompt_id: int | None = None
    original_image_prompt: str | None = None
    refined: bool = False

    @property
    def has_image(self) -> bool:
        return bool(self.image)

    @property
    def is_image_message(self) -> bool:
        """Return True for AI messages that carry a generated image."""
        return self.sender is Sender.AI and self.original_image_prompt is not None

    def to_turn(self) -> Turn:
        return Turn(role="user" if self.sender is Sender.USER else "model", text=self.text)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["sender"] = self.sender.value
        return data


class IdSequence:
    """Issue unique, increasing message ids from a millisecond clock."""

    def __init__(self, clock_ms: Callable[[], int] | None = None) -> None:
        self._clock_ms = clock_ms or (lambda: time.time_ns() // 1_000_000)
        self._last = 0

    def next(self) -> int:
        candidate = int(self._clock_ms())
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return candidate


class MessageLog:
    """Keep messages in insertion order and allow lookups by id."""

    def __init__(self, messages: Iterable[Message] | None = None) -> None:
        self._messages: list[Message] = []
        for message in messages or ():
            self.append(message)

    @property
    def messages(self) -> list[Message]:
        """Return a shallow copy of all stored messages."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def clear(self) -> None:
        self._messages = []

    def append(self, message: Message) -> Message:
        """Append a message; ids must be unique within the log."""
        if self.index_of(message.id) is not None:
            raise ValueError(f"Message id {message.id} is already in the log.")
        self._messages.append(message)
        return message

    def index_of(self, message_id: int | None) -> int | None:
        if message_id is None:
            return None
        for index, message in enumerate(self._messages):
            if message.id == message_id:
                return index
        return None

    def get(self, message_id: int | None) -> Message | None:
        """Return the message with ``message_id`` or ``None`` when it is missing."""
        index = self.index_of(message_id)
        return None if index is None else self._messages[index]

    def replace(self, message_id: int, message: Message) -> bool:
        """Swap the message at ``message_id`` in place, keeping its id and position."""
        index = self.index_of(message_id)
        if index is None:
            return False
        self._messages[index] = dataclasses.replace(message, id=message_id)
        return True

    def update(self, message_id: int, **changes: Any) -> Message | None:
        """Apply field changes to an existing message and return the new value."""
        index = self.index_of(message_id)
        if index is None:
            return None
        changes.pop("id", None)
        updated = dataclasses.replace(self._messages[index], **changes)
        self._messages[index] = updated
        return updated

    def before(self, message_id: int) -> list[Message]:
        """Return the messages that precede ``message_id`` (all of them if it is missing)."""
        index = self.index_of(message_id)
        if index is None:
            return self.messages
        return self._messages[:index]

    def to_turns(self, messages: Iterable[Message] | None = None) -> list[Turn]:
        """Translate messages into turns, one turn per message."""
        items = self._messages if messages is None else list(messages)
        return [message.to_turn() for message in items]

    def export_json(self) -> str:
        """Export the log using stable list and field ordering."""
        return json.dumps(
            [message.to_dict() for message in self._messages],
            ensure_ascii=False,
            separators=(",", ":"),
            sort_keys=False,
        )
