"""Status bar widget for mode, conversation size, and in-flight requests."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.widgets import Label, Static

from ..state import SessionState


class StatusBar(Static):
    """Render compact runtime status information.

    Segments (left to right):
        Mode: chat  |  Messages: 4  |  ⏳ Thinking...
    """

    DEFAULT_CSS = """
    StatusBar {
        layout: horizontal;
        height: auto;
    }
    StatusBar Label {
        margin-right: 1;
    }
    StatusBar #status_activity {
        color: $warning;
    }
    """

    def compose(self) -> ComposeResult:
        yield Label("Mode: chat", id="status_mode")
        yield Label("|", id="status_sep1")
        yield Label("Messages: 0", id="status_messages")
        yield Label("|", id="status_sep2")
        yield Label("", id="status_activity")

    def on_mount(self) -> None:
        """Cache label references once after the DOM is ready."""
        self._lbl_mode = self.query_one("#status_mode", Label)
        self._lbl_messages = self.query_one("#status_messages", Label)
        self._lbl_activity = self.query_one("#status_activity", Label)
        self._sep_activity = self.query_one("#status_sep2", Label)

    @staticmethod
    def activity_text(state: SessionState) -> str:
        """Describe every request currently in flight."""
        parts: list[str] = []
        if state.loading.chat:
            parts.append("⏳ Thinking...")
        if state.loading.analysis:
            parts.append("🔍 Analyzing image...")
        if state.loading.image_generation:
            parts.append("🎨 Generating image...")
        if state.editing_id is not None:
            parts.append("✏️ Editing")
        return "  ".join(parts)

    def set_status(self, *, state: SessionState, message_count: int) -> None:
        self._lbl_mode.update(f"Mode: {state.mode.value}")
        self._lbl_messages.update(f"Messages: {message_count}")
        activity = self.activity_text(state)
        self._lbl_activity.update(activity)
        visible = bool(activity)
        self._lbl_activity.display = visible
        self._sep_activity.display = visible
