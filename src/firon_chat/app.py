"""Main Textual application for chatting with and generating images through Gemini."""

from __future__ import annotations

from collections.abc import Coroutine
import logging
from pathlib import Path
import sys
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.widgets import Button, Footer, Header, Input

from .attachments import describe_image, encode_image_file
from .client import AIServiceClient, GeminiClient
from .config import load_config, resolve_api_key
from .controller import ConversationController
from .events import CONVERSATION_CHANGED, NOTICE, SESSION_CHANGED, Event, EventBus
from .exceptions import AttachmentError
from .logging_utils import configure_logging
from .screens import ImageAttachScreen, InfoScreen, RefineScreen
from .state import REFINE_OPTIONS, Mode, RefineSelection
from .task_manager import TaskManager
from .widgets.conversation import ConversationView
from .widgets.input_box import InputBox
from .widgets.message import MessageBubble
from .widgets.status_bar import StatusBar

LOGGER = logging.getLogger(__name__)


class FironChatApp(App[None]):
    """Chat and image-generation TUI backed by the Generative Language API."""

    CSS = """
    Screen {
        layout: vertical;
        background: $background;
    }

    #app-root {
        layout: vertical;
        width: 100%;
        height: 1fr;
        background: $background;
    }

    #conversation {
        height: 1fr;
        padding: 1;
    }

    InputBox {
        height: auto;
        padding: 0 1 1 1;
        border-top: solid $panel;
        background: $surface;
    }

    #mode_row, #suggestion_row, #input_row {
        height: auto;
    }

    #mode_row Button, #suggestion_row Button {
        margin-right: 1;
    }

    #attachment_label {
        padding: 1 1 0 2;
        color: $text-muted;
    }

    #clear_attachment.hidden {
        display: none;
    }

    #message_input {
        width: 1fr;
    }

    #attach_button, #send_button {
        margin-left: 1;
        min-width: 10;
    }

    #status_bar {
        height: auto;
        padding: 0 1;
        border-top: solid $panel;
        background: $surface;
    }

    MessageBubble {
        width: 85%;
        margin: 1 0;
        padding: 1 2;
        border: round $panel;
    }

    .message-user {
        align-horizontal: right;
        background: $primary 30%;
    }

    .message-ai {
        align-horizontal: left;
        background: $surface;
    }
    """

    DEFAULT_ACTION_DESCRIPTIONS: dict[str, str] = {
        "send_message": "Send",
        "new_chat": "New Chat",
        "toggle_mode": "Mode",
        "attach_image": "Upload",
        "quit": "Quit",
    }

    def __init__(
        self,
        config_path: Path | None = None,
        client: AIServiceClient | None = None,
    ) -> None:
        self.config = load_config(config_path)
        self.window_title = str(self.config["app"]["title"])
        configure_logging(self.config["logging"])
        LOGGER.info(
            "app.python",
            extra={
                "event": "app.python",
                "executable": sys.executable,
                "version": sys.version.split()[0],
            },
        )

        gemini_cfg = self.config["gemini"]
        self._api_key = resolve_api_key(gemini_cfg)
        self.client: AIServiceClient = client or GeminiClient(
            self._api_key,
            base_url=str(gemini_cfg["base_url"]),
            chat_model=str(gemini_cfg["chat_model"]),
            image_model=str(gemini_cfg["image_model"]),
            timeout=int(gemini_cfg["timeout"]),
            sample_count=int(gemini_cfg["sample_count"]),
        )

        ui_cfg = self.config["ui"]
        self.bus = EventBus()
        self.controller = ConversationController(
            self.client,
            bus=self.bus,
            clipboard=self._copy_to_clipboard,
            notice_seconds=float(ui_cfg["notice_seconds"]),
            reply_excerpt_chars=int(ui_cfg["reply_excerpt_chars"]),
        )
        self._task_manager = TaskManager()
        self._rendered_mode: Mode | None = None
        self._binding_specs = self._binding_specs_from_config(self.config)

        self._w_input: Input | None = None
        self._w_send: Button | None = None
        self._w_input_box: InputBox | None = None
        self._w_status: StatusBar | None = None
        self._w_conversation: ConversationView | None = None
        super().__init__()

    @classmethod
    def _binding_specs_from_config(
        cls, config: dict[str, dict[str, Any]]
    ) -> list[Binding]:
        keybinds = config.get("keybinds", {})
        bindings: list[Binding] = []
        for action_name, description in cls.DEFAULT_ACTION_DESCRIPTIONS.items():
            binding_key = keybinds.get(action_name)
            if isinstance(binding_key, str) and binding_key.strip():
                bindings.append(
                    Binding(
                        key=binding_key.strip(),
                        action=action_name,
                        description=description,
                        show=True,
                    )
                )
        return bindings

    @property
    def show_timestamps(self) -> bool:
        return bool(self.config["ui"].get("show_timestamps", True))

    def compose(self) -> ComposeResult:
        yield Header()
        with Container(id="app-root"):
            yield ConversationView(id="conversation")
            yield InputBox()
            yield StatusBar(id="status_bar")
        yield Footer()

    async def on_mount(self) -> None:
        """Wire the bus, register keybindings, and render the initial state."""
        self.title = self.window_title
        self.sub_title = f"Chat: {self.config['gemini']['chat_model']}"
        for binding in self._binding_specs:
            self.bind(
                binding.key,
                binding.action,
                description=binding.description,
                show=binding.show,
            )
        self.bind("f1", "help", description="Help", show=True)

        self._w_input = self.query_one("#message_input", Input)
        self._w_send = self.query_one("#send_button", Button)
        self._w_input_box = self.query_one(InputBox)
        self._w_status = self.query_one("#status_bar", StatusBar)
        self._w_conversation = self.query_one(ConversationView)

        self.bus.subscribe(CONVERSATION_CHANGED, self._on_conversation_changed)
        self.bus.subscribe(SESSION_CHANGED, self._on_session_changed)
        self.bus.subscribe(NOTICE, self._on_notice)

        await self._render_session()
        self._w_input.focus()
        if not self._api_key:
            api_env = self.config["gemini"]["api_key_env"]
            self.notify(
                f"No API key configured. Set gemini.api_key or ${api_env}.",
                severity="warning",
                timeout=10,
            )

    async def on_unmount(self) -> None:
        """Cancel in-flight requests and release the HTTP client."""
        await self._task_manager.cancel_all()
        self.bus.clear()
        aclose = getattr(self.client, "aclose", None)
        if aclose is not None:
            await aclose()

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> None:
        """Run a controller operation without blocking the message loop."""
        self._task_manager.spawn(coro, name=name)

    def _copy_to_clipboard(self, text: str) -> None:
        self.copy_to_clipboard(text)

    # Rendering

    async def _on_conversation_changed(self, _event: Event) -> None:
        conversation = self._w_conversation or self.query_one(ConversationView)
        await conversation.sync(
            self.controller.messages, show_timestamp=self.show_timestamps
        )

    async def _on_session_changed(self, _event: Event) -> None:
        await self._render_session()

    def _on_notice(self, event: Event) -> None:
        self.notify(
            str(event.data.get("text", "")),
            timeout=float(event.data.get("seconds", 3.0)),
        )

    async def _render_session(self) -> None:
        state = self.controller.state
        input_widget = self._w_input or self.query_one("#message_input", Input)
        input_box = self._w_input_box or self.query_one(InputBox)
        if input_widget.value != state.input_text:
            input_widget.value = state.input_text
            input_widget.cursor_position = len(input_widget.value)
        if self._rendered_mode is not state.mode:
            self._rendered_mode = state.mode
            input_box.show_mode(state.mode)
            await input_box.set_suggestions(self.controller.suggestions())
        input_box.show_attachment(describe_image(state.attached_image))
        send_button = self._w_send or self.query_one("#send_button", Button)
        send_button.disabled = self.controller.is_busy
        status = self._w_status or self.query_one("#status_bar", StatusBar)
        status.set_status(state=state, message_count=len(self.controller.log))

    # Input events

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id != "message_input":
            return
        self.controller.state.input_text = event.value

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "message_input":
            await self.action_send_message()

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send_button":
            await self.action_send_message()

    async def on_input_box_mode_requested(self, message: InputBox.ModeRequested) -> None:
        self._spawn(self.controller.switch_mode(message.mode), name="switch_mode")

    async def on_input_box_suggestion_picked(
        self, message: InputBox.SuggestionPicked
    ) -> None:
        self._spawn(self.controller.apply_suggestion(message.text), name="suggestion")
        if self._w_input is not None:
            self._w_input.focus()

    async def on_input_box_attach_requested(
        self, _message: InputBox.AttachRequested
    ) -> None:
        await self.action_attach_image()

    async def on_input_box_clear_attachment_requested(
        self, _message: InputBox.ClearAttachmentRequested
    ) -> None:
        self._spawn(self.controller.clear_attached_image(), name="clear_attachment")

    async def on_message_bubble_action_requested(
        self, request: MessageBubble.ActionRequested
    ) -> None:
        message = request.message
        if request.action == "copy":
            self._spawn(self.controller.copy_text(message.text), name="copy")
        elif request.action == "reply":
            self._spawn(self.controller.reply_to(message.text), name="reply")
            if self._w_input is not None:
                self._w_input.focus()
        elif request.action == "edit":
            self._spawn(self.controller.edit_message(message.id), name="edit")
            if self._w_input is not None:
                self._w_input.focus()
        elif request.action == "refine":
            await self._open_refine(message.id)

    # Refinement

    async def _open_refine(self, message_id: int) -> None:
        target = await self.controller.open_refine(message_id)
        if target is None:
            return
        self.push_screen(
            RefineScreen(for_image=target.has_image),
            callback=self._on_refine_dismissed,
        )

    def _on_refine_dismissed(self, selection: RefineSelection | None) -> None:
        if selection is None:
            self._spawn(self.controller.cancel_refine(), name="refine_cancel")
            return
        self._spawn(self._confirm_refine(selection), name="refine_confirm")

    async def _confirm_refine(self, selection: RefineSelection) -> None:
        for option in REFINE_OPTIONS:
            value = getattr(selection, option)
            if value is not None:
                await self.controller.select_refine_option(option, value)
        await self.controller.confirm_refine()

    # Actions

    async def action_send_message(self) -> None:
        """Submit the current input in the active mode."""
        if self.controller.is_busy:
            self.notify("Busy. Wait for the current request to finish.", timeout=3)
            return
        self._spawn(self.controller.submit(), name="submit")

    async def action_new_chat(self) -> None:
        self._spawn(self.controller.start_new_chat(), name="new_chat")

    async def action_toggle_mode(self) -> None:
        next_mode = Mode.IMAGE if self.controller.state.mode is Mode.CHAT else Mode.CHAT
        self._spawn(self.controller.switch_mode(next_mode), name="switch_mode")

    async def action_attach_image(self) -> None:
        """Ask for an image path to upload for analysis (chat mode only)."""
        if self.controller.state.mode is not Mode.CHAT:
            self.notify("Image upload is available in chat mode.", timeout=3)
            return
        self.push_screen(ImageAttachScreen(), callback=self._on_image_path_dismissed)

    def _on_image_path_dismissed(self, path: str | None) -> None:
        if not path:
            return
        try:
            data_uri = encode_image_file(
                path, max_bytes=int(self.config["ui"]["max_image_bytes"])
            )
        except AttachmentError as exc:
            LOGGER.warning(
                "app.image.rejected",
                extra={"event": "app.image.rejected", "reason": str(exc)},
            )
            self.notify(str(exc), severity="warning", timeout=5)
            return
        self._spawn(self.controller.attach_image(data_uri), name="attach_image")

    async def action_help(self) -> None:
        lines = ["Keybindings:", ""]
        for binding in self._binding_specs:
            lines.append(f"{binding.key}  {binding.description}")
        lines.extend(
            [
                "",
                "Message buttons: Copy, Reply, Edit (your messages), Refine (Firon's).",
                "Chat mode answers text and analyzes uploaded images.",
                "Image mode turns your prompt into a picture.",
            ]
        )
        await self.push_screen(InfoScreen("\n".join(lines)))

    async def action_quit(self) -> None:
        self.exit()
