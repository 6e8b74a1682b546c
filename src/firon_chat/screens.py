"""Modal screens for refinement options, image upload paths, and help text."""

from __future__ import annotations

from typing import Any

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Static

from .state import IMAGE_REFINE_OPTIONS, TEXT_REFINE_OPTIONS, RefineSelection


class InfoScreen(ModalScreen[None]):
    """Modal that shows a block of text and closes on Escape/OK."""

    CSS = """
    InfoScreen {
        align: center middle;
    }

    #info-dialog {
        width: 80;
        max-width: 120;
        max-height: 28;
        padding: 1 2;
        border: round $panel;
        background: $surface;
    }

    #info-body {
        height: auto;
    }

    #info-actions {
        dock: bottom;
        height: 3;
        align: right middle;
    }
    """

    def __init__(self, text: str) -> None:
        super().__init__()
        self._text = text

    def compose(self) -> ComposeResult:
        with Container(id="info-dialog"):
            yield Static(self._text, id="info-body")
            with Container(id="info-actions"):
                yield Button("OK", id="info-ok", variant="primary")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "info-ok":
            event.stop()
            self.dismiss(None)

    def on_key(self, event: Any) -> None:  # noqa: ANN401
        key = str(getattr(event, "key", "")).lower()
        if key in {"escape", "enter"}:
            self.dismiss(None)


class TextPromptScreen(ModalScreen[str | None]):
    """Modal screen to prompt for a single line of text."""

    CSS = """
    TextPromptScreen {
        align: center middle;
    }

    #text-prompt-dialog {
        width: 70;
        height: auto;
        padding: 1 2;
        border: round $panel;
        background: $surface;
    }

    #text-prompt-title {
        padding-bottom: 1;
        text-style: bold;
    }

    #text-prompt-input {
        width: 100%;
        margin-bottom: 1;
    }
    """

    def __init__(self, title: str, placeholder: str = "") -> None:
        super().__init__()
        self._title = title
        self._placeholder = placeholder

    def compose(self) -> ComposeResult:
        with Container(id="text-prompt-dialog"):
            yield Static(self._title, id="text-prompt-title")
            yield Input(placeholder=self._placeholder, id="text-prompt-input")
            yield Static("Enter to confirm | Esc to cancel", id="text-prompt-help")

    def on_mount(self) -> None:
        self.query_one("#text-prompt-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "text-prompt-input":
            return
        event.stop()
        self.dismiss(event.value.strip())

    def on_key(self, event: Any) -> None:  # noqa: ANN401
        if str(getattr(event, "key", "")).lower() == "escape":
            self.dismiss(None)


class ImageAttachScreen(TextPromptScreen):
    """Prompt for the path of an image to upload for analysis."""

    def __init__(self) -> None:
        super().__init__("Upload image for analysis", placeholder="~/Pictures/photo.png")


class RefineScreen(ModalScreen[RefineSelection | None]):
    """Pick refinement options for a text or image message.

    Dismisses with the chosen :class:`RefineSelection` on Confirm, ``None``
    on Cancel/Escape. Validation of an empty choice is left to the caller.
    """

    CSS = """
    RefineScreen {
        align: center middle;
    }

    #refine-dialog {
        width: 72;
        height: auto;
        padding: 1 2;
        border: round $panel;
        background: $surface;
    }

    #refine-title {
        padding-bottom: 1;
        text-style: bold;
    }

    .refine-row {
        height: auto;
        margin-bottom: 1;
    }

    .refine-row Label {
        width: 10;
        padding-top: 1;
    }

    .refine-row Button {
        margin-right: 1;
    }

    #refine-actions {
        height: 3;
        align: right middle;
    }
    """

    def __init__(self, for_image: bool, selection: RefineSelection | None = None) -> None:
        super().__init__()
        self.for_image = for_image
        self.selection = RefineSelection(**vars(selection)) if selection else RefineSelection()
        self._options = IMAGE_REFINE_OPTIONS if for_image else TEXT_REFINE_OPTIONS

    @staticmethod
    def _button_id(option: str, value: str) -> str:
        return f"opt-{option}-{value.replace(' ', '_')}"

    def compose(self) -> ComposeResult:
        title = "Refine image" if self.for_image else "Refine response"
        with Container(id="refine-dialog"):
            yield Static(title, id="refine-title")
            for option, values in self._options.items():
                with Horizontal(classes="refine-row"):
                    yield Label(option.capitalize())
                    for value in values:
                        yield Button(value, id=self._button_id(option, value))
            with Horizontal(id="refine-actions"):
                yield Button("Cancel", id="refine-cancel", variant="default")
                yield Button("Confirm", id="refine-confirm", variant="primary")

    def on_mount(self) -> None:
        self._refresh_buttons()

    def _refresh_buttons(self) -> None:
        for option, values in self._options.items():
            current = getattr(self.selection, option)
            for value in values:
                button = self.query_one(f"#{self._button_id(option, value)}", Button)
                button.variant = "primary" if current == value else "default"

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        button_id = event.button.id or ""
        if button_id == "refine-cancel":
            self.dismiss(None)
            return
        if button_id == "refine-confirm":
            self.dismiss(self.selection)
            return
        for option, values in self._options.items():
            for value in values:
                if button_id == self._button_id(option, value):
                    self.selection.select(option, value)
                    self._refresh_buttons()
                    return

    def on_key(self, event: Any) -> None:  # noqa: ANN401
        if str(getattr(event, "key", "")).lower() == "escape":
            self.dismiss(None)
