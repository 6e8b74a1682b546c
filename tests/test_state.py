"""Tests for session state and refinement selections."""

from __future__ import annotations

import unittest

from firon_chat.state import LoadingFlags, Mode, RefineSelection, SessionState


class RefineSelectionTests(unittest.TestCase):
    """Validate option picking and resets."""

    def test_select_sets_and_toggles_off(self) -> None:
        selection = RefineSelection()
        selection.select("style", "realistic")
        self.assertEqual(selection.style, "realistic")
        selection.select("style", "realistic")
        self.assertIsNone(selection.style)

    def test_select_replaces_previous_value(self) -> None:
        selection = RefineSelection()
        selection.select("length", "shorter")
        selection.select("length", "longer")
        self.assertEqual(selection.length, "longer")

    def test_select_rejects_unknown_option_or_value(self) -> None:
        selection = RefineSelection()
        with self.assertRaises(ValueError):
            selection.select("color", "red")
        with self.assertRaises(ValueError):
            selection.select("tone", "angry")

    def test_resets_only_touch_their_group(self) -> None:
        selection = RefineSelection(tone="more casual", blur="blurry background")
        selection.reset_image()
        self.assertEqual(selection.tone, "more casual")
        self.assertIsNone(selection.blur)
        selection.reset_text()
        self.assertTrue(selection.is_empty())

    def test_option_group_checks(self) -> None:
        self.assertTrue(RefineSelection(clarity="more detailed").has_text_option())
        self.assertFalse(RefineSelection(clarity="more detailed").has_image_option())
        self.assertTrue(RefineSelection(blur="blurry foreground").has_image_option())


class SessionStateTests(unittest.TestCase):
    """Validate initial values and refine closing."""

    def test_initial_state(self) -> None:
        state = SessionState.initial()
        self.assertEqual(state.input_text, "")
        self.assertIs(state.mode, Mode.CHAT)
        self.assertIsNone(state.editing_id)
        self.assertIsNone(state.refine_target_id)
        self.assertFalse(state.show_refine_menu)
        self.assertTrue(state.refine.is_empty())
        self.assertIsNone(state.attached_image)
        self.assertFalse(state.loading.any_active())

    def test_initial_states_do_not_share_selections(self) -> None:
        first = SessionState.initial()
        second = SessionState.initial()
        first.refine.style = "realistic"
        self.assertIsNone(second.refine.style)

    def test_close_refine_clears_menu_target_and_selection(self) -> None:
        state = SessionState(
            show_refine_menu=True,
            refine_target_id=3,
            refine=RefineSelection(length="shorter", style="3d cartoon"),
        )
        state.close_refine()
        self.assertFalse(state.show_refine_menu)
        self.assertIsNone(state.refine_target_id)
        self.assertTrue(state.refine.is_empty())

    def test_to_dict_uses_mode_value(self) -> None:
        data = SessionState(mode=Mode.IMAGE).to_dict()
        self.assertEqual(data["mode"], "image")
        self.assertEqual(data["loading"]["chat"], False)


class LoadingFlagsTests(unittest.TestCase):
    """Validate loading flag helpers."""

    def test_any_active_and_clear(self) -> None:
        flags = LoadingFlags(analysis=True)
        self.assertTrue(flags.any_active())
        flags.clear()
        self.assertFalse(flags.any_active())


if __name__ == "__main__":
    unittest.main()
