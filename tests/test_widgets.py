"""Unit tests for individual widget classes."""

from __future__ import annotations

import unittest

from firon_chat.message_log import Message, Sender
from firon_chat.state import LoadingFlags, Mode, RefineSelection, SessionState

try:
    from textual.app import App, ComposeResult
    from textual.widgets import Button

    from firon_chat.screens import RefineScreen
    from firon_chat.widgets.conversation import ConversationView
    from firon_chat.widgets.input_box import InputBox
    from firon_chat.widgets.message import MessageBubble
    from firon_chat.widgets.status_bar import StatusBar
except ModuleNotFoundError:
    App = None  # type: ignore[assignment,misc]
    ComposeResult = None  # type: ignore[assignment,misc]
    Button = None  # type: ignore[assignment]
    RefineScreen = None  # type: ignore[assignment,misc]
    ConversationView = None  # type: ignore[assignment,misc]
    InputBox = None  # type: ignore[assignment,misc]
    MessageBubble = None  # type: ignore[assignment,misc]
    StatusBar = None  # type: ignore[assignment,misc]


def _message(message_id: int, sender: Sender = Sender.USER, **kwargs: object) -> Message:
    return Message(
        id=message_id,
        sender=sender,
        text=kwargs.pop("text", f"message {message_id}"),  # type: ignore[arg-type]
        timestamp="12:00:00",
        **kwargs,  # type: ignore[arg-type]
    )


@unittest.skipIf(MessageBubble is None, "textual is not installed")
class MessageBubbleTests(unittest.TestCase):
    """Validate bubble header text and action sets."""

    def test_header_shows_role_timestamp_and_refined_marker(self) -> None:
        bubble = MessageBubble(_message(1, Sender.AI, refined=True))
        self.assertEqual(bubble._compose_header(), "**Firon**  _12:00:00_  (Refined)")
        self.assertTrue(bubble.has_class("role-ai"))

    def test_header_can_hide_timestamp(self) -> None:
        bubble = MessageBubble(_message(1), show_timestamp=False)
        self.assertEqual(bubble._compose_header(), "**You**")

    def test_actions_differ_per_sender(self) -> None:
        user_actions = [a for a, _ in MessageBubble.ACTIONS[Sender.USER]]
        ai_actions = [a for a, _ in MessageBubble.ACTIONS[Sender.AI]]
        self.assertEqual(user_actions, ["copy", "reply", "edit"])
        self.assertEqual(ai_actions, ["copy", "reply", "refine"])


@unittest.skipIf(StatusBar is None, "textual is not installed")
class StatusBarTests(unittest.TestCase):
    """Validate activity text derived from session state."""

    def test_activity_text_lists_every_active_request(self) -> None:
        state = SessionState(
            editing_id=3, loading=LoadingFlags(chat=True, image_generation=True)
        )
        text = StatusBar.activity_text(state)
        self.assertIn("Thinking", text)
        self.assertIn("Generating image", text)
        self.assertIn("Editing", text)
        self.assertNotIn("Analyzing", text)

    def test_activity_text_is_empty_when_idle(self) -> None:
        self.assertEqual(StatusBar.activity_text(SessionState.initial()), "")


if App is not None:

    class _WidgetHarness(App[None]):
        def __init__(self) -> None:
            super().__init__()
            self.actions: list[MessageBubble.ActionRequested] = []
            self.modes: list[Mode] = []
            self.suggestions: list[str] = []

        def compose(self) -> ComposeResult:
            yield ConversationView(id="conversation")
            yield InputBox()

        def on_message_bubble_action_requested(
            self, message: MessageBubble.ActionRequested
        ) -> None:
            self.actions.append(message)

        def on_input_box_mode_requested(self, message: InputBox.ModeRequested) -> None:
            self.modes.append(message.mode)

        def on_input_box_suggestion_picked(
            self, message: InputBox.SuggestionPicked
        ) -> None:
            self.suggestions.append(message.text)


@unittest.skipIf(App is None, "textual is not installed")
class MountedWidgetTests(unittest.IsolatedAsyncioTestCase):
    """Validate widgets inside a running app."""

    async def test_sync_adds_updates_and_rebuilds_bubbles(self) -> None:
        app = _WidgetHarness()
        async with app.run_test(size=(120, 50)) as pilot:
            view = app.query_one(ConversationView)
            first = _message(1)
            second = _message(2, Sender.AI)
            await view.sync([first, second])
            await pilot.pause()
            self.assertEqual(len(app.query(MessageBubble)), 2)

            refined = _message(2, Sender.AI, text="better", refined=True)
            await view.sync([first, refined])
            await pilot.pause()
            bubble = view.bubble_for(2)
            assert bubble is not None
            self.assertEqual(bubble.message.text, "better")
            self.assertEqual(len(app.query(MessageBubble)), 2)

            await view.sync([])
            await pilot.pause()
            self.assertEqual(len(app.query(MessageBubble)), 0)
            self.assertIsNone(view.bubble_for(1))

    async def test_bubble_buttons_post_action_requests(self) -> None:
        app = _WidgetHarness()
        async with app.run_test(size=(120, 50)) as pilot:
            view = app.query_one(ConversationView)
            await view.sync([_message(5, Sender.AI, text="answer")])
            await pilot.pause()
            bubble = view.bubble_for(5)
            assert bubble is not None
            bubble.query_one(".action-refine", Button).press()
            await pilot.pause()
            self.assertEqual(len(app.actions), 1)
            self.assertEqual(app.actions[0].action, "refine")
            self.assertEqual(app.actions[0].message.id, 5)

    async def test_input_box_mode_and_suggestions(self) -> None:
        app = _WidgetHarness()
        async with app.run_test(size=(120, 50)) as pilot:
            box = app.query_one(InputBox)
            await box.set_suggestions(["Tell me a joke."])
            box.show_mode(Mode.IMAGE)
            await pilot.pause()
            self.assertEqual(str(app.query_one("#send_button", Button).label), "Generate")
            self.assertFalse(app.query_one("#attach_button", Button).display)

            app.query_one("#mode_chat", Button).press()
            app.query_one(".suggestion", Button).press()
            await pilot.pause()
            self.assertEqual(app.modes, [Mode.CHAT])
            self.assertEqual(app.suggestions, ["Tell me a joke."])

    async def test_show_attachment_toggles_clear_button(self) -> None:
        app = _WidgetHarness()
        async with app.run_test(size=(120, 50)) as pilot:
            box = app.query_one(InputBox)
            box.show_attachment("[image: png, 3 B]")
            await pilot.pause()
            self.assertFalse(app.query_one("#clear_attachment", Button).has_class("hidden"))
            box.show_attachment("")
            await pilot.pause()
            self.assertTrue(app.query_one("#clear_attachment", Button).has_class("hidden"))

    async def test_refine_screen_returns_selection(self) -> None:
        app = _WidgetHarness()
        results: list[RefineSelection | None] = []
        async with app.run_test(size=(120, 50)) as pilot:
            app.push_screen(RefineScreen(for_image=True), callback=results.append)
            await pilot.pause()
            app.screen.query_one("#opt-style-3d_cartoon", Button).press()
            await pilot.pause()
            app.screen.query_one("#refine-confirm", Button).press()
            await pilot.pause()
        self.assertEqual(results, [RefineSelection(style="3d cartoon")])

    async def test_refine_screen_cancel_returns_none(self) -> None:
        app = _WidgetHarness()
        results: list[RefineSelection | None] = []
        async with app.run_test(size=(120, 50)) as pilot:
            app.push_screen(RefineScreen(for_image=False), callback=results.append)
            await pilot.pause()
            await pilot.press("escape")
            await pilot.pause()
        self.assertEqual(results, [None])


if __name__ == "__main__":
    unittest.main()
