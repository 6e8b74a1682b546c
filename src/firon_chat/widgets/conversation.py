"""Scrollable conversation view widget."""

from __future__ import annotations

from collections.abc import Sequence

from textual.containers import VerticalScroll

from ..message_log import Message
from .message import MessageBubble


class ConversationView(VerticalScroll):
    """A scrollable container that hosts message bubbles, keyed by message id."""

    def __init__(self, *args, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(*args, **kwargs)
        self._bubbles: dict[int, MessageBubble] = {}

    def bubble_for(self, message_id: int) -> MessageBubble | None:
        return self._bubbles.get(message_id)

    async def add_message(self, message: Message, show_timestamp: bool = True) -> MessageBubble:
        """Create, mount, and scroll to a new message bubble."""
        bubble = MessageBubble(message, show_timestamp=show_timestamp)
        bubble.add_class(f"message-{message.sender.value}")
        self._bubbles[message.id] = bubble
        await self.mount(bubble)
        self.scroll_end(animate=True)
        return bubble

    async def sync(self, messages: Sequence[Message], show_timestamp: bool = True) -> None:
        """Bring the rendered bubbles in line with ``messages``.

        Existing bubbles are updated in place; new ones are appended. When the
        rendered order no longer matches (for example after a new chat) the
        view is rebuilt.
        """
        wanted = [message.id for message in messages]
        rendered = list(self._bubbles)
        if rendered != wanted[: len(rendered)]:
            await self.clear_messages()
            rendered = []
        for message in messages:
            bubble = self._bubbles.get(message.id)
            if bubble is None:
                await self.add_message(message, show_timestamp=show_timestamp)
            elif bubble.message != message:
                bubble.set_message(message)

    async def clear_messages(self) -> None:
        """Remove all rendered conversation bubbles."""
        self._bubbles.clear()
        await self.remove_children()
