"""Pane geometry shared by the state machine and the frame renderer."""

from __future__ import annotations

from .templates import template_values

DIVIDER_WIDTH = 1
STATUS_ROWS = 1
MIN_TREE_WIDTH = 12


def pane_widths(columns: int) -> tuple[int, int]:
    """Return ``(tree_width, diff_width)`` for a terminal ``columns`` wide.

    The diff pane gets the ``diffAreaWidth`` share advertised to templates;
    the tree pane keeps a usable minimum on narrow terminals.
    """
    columns = max(1, columns)
    diff_width = template_values(columns)["diffAreaWidth"]
    tree_width = columns - diff_width - DIVIDER_WIDTH
    if tree_width < MIN_TREE_WIDTH:
        tree_width = min(MIN_TREE_WIDTH, max(0, columns - DIVIDER_WIDTH - 1))
        diff_width = max(1, columns - tree_width - DIVIDER_WIDTH)
    return tree_width, diff_width


def body_rows(rows: int) -> int:
    return max(1, rows - STATUS_ROWS)
