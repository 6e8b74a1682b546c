"""Message bubble widget for conversation rendering."""

from __future__ import annotations

from typing import Any

from rich.markdown import Markdown
from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.message import Message as TextualMessage
from textual.widgets import Button, Static

from ..attachments import describe_image
from ..message_log import Message, Sender


class MessageBubble(Vertical):
    """Render a single chat message with its image label and action buttons."""

    DEFAULT_CSS = """
    MessageBubble {
        height: auto;
    }
    MessageBubble > .bubble-header {
        padding: 0;
    }
    MessageBubble > .bubble-image {
        color: $text-muted;
        padding: 0 1;
        border-left: solid $accent;
    }
    MessageBubble > .bubble-content {
        height: auto;
    }
    MessageBubble > .bubble-actions {
        height: auto;
    }
    MessageBubble .bubble-actions Button {
        min-width: 8;
        margin-right: 1;
    }
    """

    class ActionRequested(TextualMessage):
        """Posted when one of the bubble's action buttons is pressed."""

        def __init__(self, action: str, message: Message) -> None:
            super().__init__()
            self.action = action
            self.message = message

    ACTIONS: dict[Sender, tuple[tuple[str, str], ...]] = {
        Sender.USER: (("copy", "Copy"), ("reply", "Reply"), ("edit", "Edit")),
        Sender.AI: (("copy", "Copy"), ("reply", "Reply"), ("refine", "Refine")),
    }

    def __init__(
        self,
        message: Message,
        show_timestamp: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self.message = message
        self.show_timestamp = show_timestamp
        self.add_class(f"role-{message.sender.value}")

        self._header_widget: Static | None = None
        self._image_widget: Static | None = None
        self._content_widget: Static | None = None

    @property
    def message_id(self) -> int:
        return self.message.id

    @property
    def role_prefix(self) -> str:
        return "You" if self.message.sender is Sender.USER else "Firon"

    def _compose_header(self) -> str:
        parts = [f"**{self.role_prefix}**"]
        if self.show_timestamp and self.message.timestamp:
            parts.append(f"_{self.message.timestamp}_")
        if self.message.refined:
            parts.append("(Refined)")
        return "  ".join(parts)

    def compose(self) -> ComposeResult:
        self._header_widget = Static(
            Markdown(self._compose_header()), classes="bubble-header"
        )
        self._image_widget = Static("", classes="bubble-image")
        self._content_widget = Static("", classes="bubble-content")
        yield self._header_widget
        yield self._image_widget
        yield self._content_widget
        with Horizontal(classes="bubble-actions"):
            for action, label in self.ACTIONS[self.message.sender]:
                yield Button(label, classes=f"action-{action}")

    def on_mount(self) -> None:
        self._refresh()

    def _refresh(self) -> None:
        if self._header_widget is not None:
            self._header_widget.update(Markdown(self._compose_header()))
        if self._image_widget is not None:
            label = describe_image(self.message.image)
            self._image_widget.update(Text(label, style="italic"))
            self._image_widget.display = bool(label)
        if self._content_widget is not None:
            text = self.message.text.rstrip()
            self._content_widget.update(Markdown(text) if text else "")

    def set_message(self, message: Message) -> None:
        """Swap in an updated version of the same message and rerender."""
        self.message = message
        self._refresh()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        for action, _label in self.ACTIONS[self.message.sender]:
            if event.button.has_class(f"action-{action}"):
                event.stop()
                self.post_message(self.ActionRequested(action, self.message))
                return
