"""Input region with mode switch, suggestions, message field, attach and send buttons."""

from __future__ import annotations

from collections.abc import Sequence

from textual.containers import Horizontal, Vertical
from textual.message import Message
from textual.widgets import Button, Input, Label

from ..state import Mode


class InputBox(Vertical):
    """Input region posting high-level intents for the app to forward."""

    class AttachRequested(Message):
        """Posted when the user clicks the image upload button."""

    class ClearAttachmentRequested(Message):
        """Posted when the user removes a pending upload."""

    class ModeRequested(Message):
        """Posted when a mode button is clicked."""

        def __init__(self, mode: Mode) -> None:
            super().__init__()
            self.mode = mode

    class SuggestionPicked(Message):
        """Posted when a suggestion button is clicked."""

        def __init__(self, text: str) -> None:
            super().__init__()
            self.text = text

    def compose(self):  # type: ignore[override]
        with Horizontal(id="mode_row"):
            yield Button("Chat Mode", id="mode_chat", variant="primary")
            yield Button("Image Mode", id="mode_image", variant="default")
            yield Label("", id="attachment_label")
            yield Button("x", id="clear_attachment", classes="hidden")
        yield Horizontal(id="suggestion_row")
        with Horizontal(id="input_row"):
            yield Input(placeholder="Type your message...", id="message_input")
            yield Button("Upload", id="attach_button", variant="default")
            yield Button("Send", id="send_button", variant="success")

    async def set_suggestions(self, suggestions: Sequence[str]) -> None:
        """Replace the suggestion buttons."""
        row = self.query_one("#suggestion_row", Horizontal)
        await row.remove_children()
        await row.mount_all(
            Button(text, classes="suggestion") for text in suggestions
        )

    def show_mode(self, mode: Mode) -> None:
        """Highlight the active mode and adapt the input affordances."""
        self.query_one("#mode_chat", Button).variant = (
            "primary" if mode is Mode.CHAT else "default"
        )
        self.query_one("#mode_image", Button).variant = (
            "primary" if mode is Mode.IMAGE else "default"
        )
        self.query_one("#attach_button", Button).display = mode is Mode.CHAT
        self.query_one("#send_button", Button).label = (
            "Send" if mode is Mode.CHAT else "Generate"
        )
        self.query_one("#message_input", Input).placeholder = (
            "Type your message..." if mode is Mode.CHAT else "Describe the image to generate..."
        )

    def show_attachment(self, label: str) -> None:
        self.query_one("#attachment_label", Label).update(label)
        clear_button = self.query_one("#clear_attachment", Button)
        clear_button.set_class(not label, "hidden")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button = event.button
        if button.id == "attach_button":
            event.stop()
            self.post_message(self.AttachRequested())
        elif button.id == "clear_attachment":
            event.stop()
            self.post_message(self.ClearAttachmentRequested())
        elif button.id == "mode_chat":
            event.stop()
            self.post_message(self.ModeRequested(Mode.CHAT))
        elif button.id == "mode_image":
            event.stop()
            self.post_message(self.ModeRequested(Mode.IMAGE))
        elif button.has_class("suggestion"):
            event.stop()
            self.post_message(self.SuggestionPicked(str(button.label)))
