"""Frame construction for the tree | diff layout.

``build_frame`` turns the app's session state into one terminal frame
string; ``render_frame`` writes it in a single ``os.write``. All text that
came from git or a diff tool is sanitized before it reaches the terminal.
"""

from __future__ import annotations

import os
import sys

from .ansi import (
    DEFAULT_STYLE,
    Style,
    StyledLine,
    StyledSpan,
    display_width,
    sanitize_terminal_text,
    slice_styled_line,
    spans_to_ansi,
    style_to_sgr,
)
from .app import DiffViewerApp
from .config import describe_tool
from .git import describe_target
from .layout import pane_widths
from .state import Mode
from .theme import Theme
from .tree_model import DiffStatus, TreeRow

REVIEWED_MARK = "[x] "
UNREVIEWED_MARK = "[ ] "
EXPANDED_ICON = "▾ "
COLLAPSED_ICON = "▸ "
NORMAL_HINTS = "│ / search  tab review  q quit"
SEARCH_HINTS = "│ enter keep  esc/ctrl-c leave search"


def build_status_line(left_text: str, width: int, right_text: str = NORMAL_HINTS) -> str:
    usable = max(1, width - 1)
    if usable <= len(right_text):
        return right_text[-usable:]
    left_limit = max(0, usable - len(right_text) - 1)
    left = left_text[:left_limit]
    gap = " " * (usable - len(left) - len(right_text))
    return f"{left}{gap}{right_text}"


def _scroll_percent(start: int, total_lines: int, visible_rows: int) -> float:
    if total_lines <= 0:
        return 0.0
    max_start = max(0, total_lines - visible_rows)
    if max_start == 0:
        return 100.0
    return min(100.0, 100.0 * start / max_start)


def _status_slot(status: DiffStatus | None) -> str:
    if status is DiffStatus.ADDED or status is DiffStatus.UNTRACKED:
        return "status_added"
    if status is DiffStatus.REMOVED:
        return "status_removed"
    return "status_modified"


def _guide_prefix(row: TreeRow) -> str:
    if row.depth == 0:
        return ""
    parts = ["   " if last else "│  " for last in row.guides[1:]]
    parts.append("└─ " if row.is_last else "├─ ")
    return "".join(parts)


def tree_row_spans(row: TreeRow, theme: Theme, selected: bool) -> list[StyledSpan]:
    """Styled pieces of one tree row, before width clipping."""
    guide = theme.fg("tree_line")
    mark = REVIEWED_MARK if row.reviewed else UNREVIEWED_MARK
    spans = [StyledSpan(_guide_prefix(row), guide)]
    if row.is_dir:
        spans.append(StyledSpan(EXPANDED_ICON if row.expanded else COLLAPSED_ICON, guide))
        spans.append(StyledSpan(mark, theme.fg("text_dim")))
        spans.append(StyledSpan(sanitize_terminal_text(row.name) + "/", theme.fg("tree_directory", bold=True)))
        if not row.expanded:
            noun = "file" if row.file_count == 1 else "files"
            summary = f" {row.file_count} {noun} +{row.added} -{row.removed}"
            spans.append(StyledSpan(summary, theme.fg("text_dim")))
    else:
        badge = row.status.badge if row.status is not None else " "
        spans.append(StyledSpan(mark, theme.fg("text_dim")))
        spans.append(StyledSpan(badge + " ", theme.fg(_status_slot(row.status), bold=True)))
        spans.append(StyledSpan(sanitize_terminal_text(row.name), theme.fg("tree_file", dim=row.reviewed)))
        if row.added or row.removed:
            spans.append(StyledSpan(f" +{row.added}", theme.fg("status_added")))
            spans.append(StyledSpan(f" -{row.removed}", theme.fg("status_removed")))
    if selected:
        highlight = theme.selected()
        spans = [StyledSpan(span.text, highlight) for span in spans]
    return [span for span in spans if span.text]


def _fit(spans: list[StyledSpan], width: int, fill: Style = DEFAULT_STYLE) -> str:
    visible = slice_styled_line(StyledLine(tuple(spans)), 0, width)
    used = sum(display_width(span.text) for span in visible)
    if used < width:
        visible.append(StyledSpan(" " * (width - used), fill))
    return spans_to_ansi(visible)


def _tree_cell(app: DiffViewerApp, index: int, width: int) -> str:
    if width <= 0:
        return ""
    state = app.state
    theme = app.context.theme
    if index >= len(state.rows):
        if index == 0:
            message = "no matches" if state.query else "no files"
            return _fit([StyledSpan(message, theme.fg("text_dim"))], width)
        return " " * width
    selected = index == state.selected_idx
    fill = theme.selected() if selected else DEFAULT_STYLE
    return _fit(tree_row_spans(state.rows[index], theme, selected), width, fill)


def _diff_cell(app: DiffViewerApp, offset: int, width: int) -> str:
    state = app.state
    theme = app.context.theme
    index = state.scroll_y + offset
    if index < len(state.diff_lines):
        return _fit(slice_styled_line(state.diff_lines[index], state.scroll_x, width), width)
    if offset == 0 and not state.diff_lines:
        if state.diff_path is None:
            hint = "press space to load the diff"
        else:
            hint = "(no differences)"
        return _fit([StyledSpan(hint, theme.fg("text_dim"))], width)
    return " " * width


def _status_text(app: DiffViewerApp) -> tuple[str, str]:
    state = app.state
    if state.mode is Mode.SEARCH:
        return f"/{state.query}", SEARCH_HINTS
    if state.status_message:
        left = state.status_message
    else:
        reviewed, total = app.review_progress()
        target = describe_target(app.context.target)
        left = f" {state.selected_path or ''}  {reviewed}/{total} reviewed  {target}"
        if state.query:
            left += f"  filter: {state.query}"
        if state.diff_lines:
            percent = _scroll_percent(state.scroll_y, len(state.diff_lines), state.body_rows)
            left += f"  {percent:5.1f}%"
    right = f"{describe_tool(app.context.tool)} {NORMAL_HINTS}"
    return left, right


def build_frame(app: DiffViewerApp) -> str:
    """Return the full-screen frame for ``app``'s current state."""
    state = app.state
    theme = app.context.theme
    width = state.columns
    tree_width, diff_width = pane_widths(width)
    divider = spans_to_ansi([StyledSpan("│", theme.fg("border"))])

    out: list[str] = ["\033[H\033[J"]
    for offset in range(state.body_rows):
        out.append(_tree_cell(app, state.tree_start + offset, tree_width))
        out.append(divider)
        out.append(_diff_cell(app, offset, diff_width))
        out.append("\r\n")

    left, right = _status_text(app)
    status = build_status_line(sanitize_terminal_text(left), width, sanitize_terminal_text(right))
    status_sgr = "\033[7m" if theme.plain else style_to_sgr(theme.status_bar()) or "\033[7m"
    out.append(status_sgr)
    out.append(status)
    out.append("\033[0m")
    return "".join(out)


def render_frame(app: DiffViewerApp) -> None:
    os.write(sys.stdout.fileno(), build_frame(app).encode("utf-8", errors="replace"))
