from __future__ import annotations

import unittest

from ftdv.keys import KeyComboBinding, KeyComboRegistry
from ftdv.layout import body_rows, pane_widths


class PaneGeometryTests(unittest.TestCase):
    def test_diff_pane_gets_diff_area_width(self) -> None:
        self.assertEqual(pane_widths(100), (19, 80))
        self.assertEqual(pane_widths(200), (39, 160))

    def test_narrow_terminal_keeps_tree_usable(self) -> None:
        tree_width, diff_width = pane_widths(40)
        self.assertEqual(tree_width, 12)
        self.assertEqual(tree_width + 1 + diff_width, 40)

    def test_body_rows_leave_room_for_status(self) -> None:
        self.assertEqual(body_rows(24), 23)
        self.assertEqual(body_rows(1), 1)


class KeyRegistryTests(unittest.TestCase):
    def test_dispatch_and_overwrite(self) -> None:
        calls: list[str] = []
        registry = KeyComboRegistry().register_bindings(
            KeyComboBinding(("j", "DOWN"), lambda: calls.append("down")),
            KeyComboBinding(("q",), lambda: True),
        )
        registry.register_binding(KeyComboBinding(("DOWN",), lambda: calls.append("other")))

        registry.dispatch("j")
        registry.dispatch("DOWN")

        self.assertEqual(calls, ["down", "other"])
        self.assertTrue(registry.dispatch("q"))
        self.assertIsNone(registry.dispatch("x"))


if __name__ == "__main__":
    unittest.main()
