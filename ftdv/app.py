"""Application state machine for the interactive diff viewer.

``DiffViewerApp`` owns the session state and reacts to one key token at a
time. It has two modes, Normal and Search. Diff content is fetched only on
explicit refresh. Every failure below this layer is turned into diff-pane
text or a status message.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .ansi import StyledLine, max_line_width, parse_ansi, plain_lines
from .config import ToolConfig
from .fetcher import FetchResult, ProcessError, fetch
from .git import CompareTarget, GitError
from .invocation import DiffRequest, InvocationPlan, plan_invocation
from .keys import KeyComboBinding, KeyComboRegistry
from .layout import body_rows, pane_widths
from .persistence import PersistenceError, ReviewStore
from .state import Mode, SessionState
from .theme import Theme
from .tree_model import FileTree, TreeRow

logger = logging.getLogger(__name__)

FINE_SCROLL = 1
COARSE_SCROLL = 10
PAGE_SCROLL = 20
HORIZONTAL_SCROLL = 5
COARSE_HORIZONTAL_SCROLL = 20
ENTER_KEYS = ("ENTER_CR", "ENTER_LF")


@dataclass(frozen=True)
class AppContext:
    """Startup-built collaborators threaded through the session."""

    target: CompareTarget
    root: Path | None
    tool: ToolConfig
    theme: Theme
    store: ReviewStore
    identity: str
    timeout_seconds: float
    style: str | None = None


class DiffViewerApp:
    def __init__(
        self,
        context: AppContext,
        tree: FileTree,
        *,
        plan: Callable[..., InvocationPlan] = plan_invocation,
        run_plan: Callable[[InvocationPlan, float], FetchResult] = fetch,
    ) -> None:
        self.context = context
        self.tree = tree
        self.state = SessionState()
        self._plan = plan
        self._run_plan = run_plan
        self._normal_bindings = self._build_normal_bindings()
        self._rebuild_rows()

    # Geometry -----------------------------------------------------------

    def resize(self, columns: int, rows: int) -> None:
        state = self.state
        columns = max(1, columns)
        body = body_rows(rows)
        _, diff_width = pane_widths(columns)
        if (columns, body, diff_width) == (state.columns, state.body_rows, state.diff_width):
            return
        state.columns = columns
        state.body_rows = body
        state.diff_width = diff_width
        self._clamp_scroll()
        self._ensure_selection_visible()
        state.dirty = True

    # Selection ----------------------------------------------------------

    @property
    def selected_row(self) -> TreeRow | None:
        rows = self.state.rows
        if not rows:
            return None
        return rows[self.state.selected_idx]

    def _rebuild_rows(self, preferred_path: str | None = None) -> None:
        """Recompute visible rows and keep the selection on the same path when possible."""
        state = self.state
        target_path = preferred_path if preferred_path is not None else state.selected_path
        state.rows = self.tree.visible_rows(state.query)
        index = None
        if target_path is not None:
            for i, row in enumerate(state.rows):
                if row.path == target_path:
                    index = i
                    break
        if index is None:
            index = min(state.selected_idx, len(state.rows) - 1) if state.rows else 0
        self._select_index(index)
        state.dirty = True

    def _select_index(self, index: int) -> None:
        state = self.state
        if not state.rows:
            state.selected_idx = 0
            state.selected_path = None
            state.tree_start = 0
            return
        state.selected_idx = max(0, min(index, len(state.rows) - 1))
        state.selected_path = state.rows[state.selected_idx].path
        self._ensure_selection_visible()

    def _ensure_selection_visible(self) -> None:
        state = self.state
        height = max(1, state.body_rows)
        if state.selected_idx < state.tree_start:
            state.tree_start = state.selected_idx
        elif state.selected_idx >= state.tree_start + height:
            state.tree_start = state.selected_idx - height + 1
        max_start = max(0, len(state.rows) - height)
        state.tree_start = max(0, min(state.tree_start, max_start))

    def move_selection(self, delta: int) -> bool:
        before = self.state.selected_idx
        self._select_index(before + delta)
        self.state.dirty = True
        return False

    def select_first(self) -> bool:
        self._select_index(0)
        self.state.dirty = True
        return False

    def select_last(self) -> bool:
        self._select_index(len(self.state.rows) - 1)
        self.state.dirty = True
        return False

    # Diff pane ----------------------------------------------------------

    def _clamp_scroll(self) -> None:
        state = self.state
        max_y = max(0, len(state.diff_lines) - state.body_rows)
        max_x = max(0, max_line_width(state.diff_lines) - state.diff_width)
        state.scroll_y = max(0, min(state.scroll_y, max_y))
        state.scroll_x = max(0, min(state.scroll_x, max_x))

    def scroll(self, dy: int = 0, dx: int = 0) -> bool:
        self.state.scroll_y += dy
        self.state.scroll_x += dx
        self._clamp_scroll()
        self.state.dirty = True
        return False

    def _set_diff(self, path: str | None, lines: list[StyledLine], *, error: bool = False) -> None:
        state = self.state
        state.diff_path = path
        state.diff_lines = lines
        state.diff_error = error
        state.scroll_y = 0
        state.scroll_x = 0
        self._clamp_scroll()
        state.dirty = True

    def refresh(self) -> bool:
        """Fetch and show the diff of the selected row."""
        row = self.selected_row
        if row is None:
            self._set_diff(None, [])
            return False
        if row.is_dir:
            self._set_diff(row.path, plain_lines(f"Directory: {row.path}", self.context.theme.fg("text_secondary")))
            return False

        request = DiffRequest(
            target=self.context.target,
            root=self.context.root,
            path=row.path,
            is_directory=False,
            status=row.status,
        )
        try:
            plan = self._plan(
                request,
                self.context.tool,
                self.state.columns,
                style=self.context.style,
                timeout_seconds=self.context.timeout_seconds,
            )
            result = self._run_plan(plan, self.context.timeout_seconds)
        except (ProcessError, GitError) as exc:
            logger.debug("diff fetch failed for %s: %s", row.path, exc)
            error_style = self.context.theme.fg("status_removed", bold=True)
            self._set_diff(row.path, plain_lines(f"Error: {exc}", error_style), error=True)
            return False
        if result.plain:
            lines = plain_lines(result.output.decode("utf-8", errors="replace"))
        else:
            lines = parse_ansi(result.output)
        self._set_diff(row.path, lines)
        return False

    # Tree actions -------------------------------------------------------

    def activate(self) -> bool:
        row = self.selected_row
        if row is None:
            return False
        if row.is_dir:
            return self.toggle_directory()
        return self.refresh()

    def toggle_directory(self) -> bool:
        row = self.selected_row
        if row is None or not row.is_dir:
            return False
        self.tree.toggle_expanded(row.path)
        self._rebuild_rows(row.path)
        return False

    def toggle_reviewed(self) -> bool:
        """Flip the selected file's reviewed flag and write the set through to the store."""
        row = self.selected_row
        if row is None or row.is_dir:
            return False
        if self.tree.toggle_reviewed(row.path) is None:
            return False
        try:
            self.context.store.save(self.context.identity, self.tree.reviewed_paths())
        except PersistenceError as exc:
            logger.debug("persistence: %s", exc)
            self.state.status_message = f"Could not save reviewed state: {exc}"
        self._rebuild_rows(row.path)
        return False

    def review_progress(self) -> tuple[int, int]:
        files = self.tree.file_paths()
        reviewed = self.tree.reviewed_paths()
        return sum(1 for path in files if path in reviewed), len(files)

    # Search -------------------------------------------------------------

    def enter_search(self) -> bool:
        state = self.state
        state.search_prev_path = state.selected_path
        state.mode = Mode.SEARCH
        state.dirty = True
        return False

    def _set_query(self, query: str, preferred_path: str | None = None) -> None:
        self.state.query = query
        self._rebuild_rows(preferred_path)

    def confirm_search(self) -> None:
        self.state.mode = Mode.NORMAL
        self.state.dirty = True

    def cancel_search(self) -> None:
        state = self.state
        state.mode = Mode.NORMAL
        self._set_query("", state.search_prev_path)

    def clear_filter(self) -> None:
        self._set_query("", self.state.selected_path)

    # Key handling -------------------------------------------------------

    def _build_normal_bindings(self) -> KeyComboRegistry:
        return KeyComboRegistry().register_bindings(
            KeyComboBinding(("j", "DOWN"), lambda: self.move_selection(1)),
            KeyComboBinding(("k", "UP"), lambda: self.move_selection(-1)),
            KeyComboBinding(("g", "HOME"), self.select_first),
            KeyComboBinding(("G", "END"), self.select_last),
            KeyComboBinding(("J", "e"), lambda: self.scroll(dy=FINE_SCROLL)),
            KeyComboBinding(("K", "y"), lambda: self.scroll(dy=-FINE_SCROLL)),
            KeyComboBinding(("d", "PAGE_DOWN"), lambda: self.scroll(dy=COARSE_SCROLL)),
            KeyComboBinding(("u", "PAGE_UP"), lambda: self.scroll(dy=-COARSE_SCROLL)),
            KeyComboBinding(("f",), lambda: self.scroll(dy=PAGE_SCROLL)),
            KeyComboBinding(("b",), lambda: self.scroll(dy=-PAGE_SCROLL)),
            KeyComboBinding(("h", "LEFT"), lambda: self.scroll(dx=-HORIZONTAL_SCROLL)),
            KeyComboBinding(("l", "RIGHT"), lambda: self.scroll(dx=HORIZONTAL_SCROLL)),
            KeyComboBinding(("H",), lambda: self.scroll(dx=-COARSE_HORIZONTAL_SCROLL)),
            KeyComboBinding(("L",), lambda: self.scroll(dx=COARSE_HORIZONTAL_SCROLL)),
            KeyComboBinding(ENTER_KEYS, self.activate),
            KeyComboBinding((" ", "r"), self.refresh),
            KeyComboBinding(("TAB",), self.toggle_reviewed),
            KeyComboBinding(("/",), self.enter_search),
            KeyComboBinding(("q", "CTRL_C"), lambda: True),
            KeyComboBinding(("ESC",), self._escape_normal),
        )

    def _escape_normal(self) -> bool:
        if self.state.query:
            self.clear_filter()
            return False
        return True

    def handle_key(self, key: str) -> bool:
        """Handle one key token and return ``True`` when the session should end."""
        if not key:
            return False
        self.state.status_message = ""
        self.state.dirty = True
        if self.state.mode is Mode.SEARCH:
            self._handle_search_key(key)
            return False
        handled = self._normal_bindings.dispatch(key)
        return bool(handled)

    def _handle_search_key(self, key: str) -> None:
        if key in ("ESC", "CTRL_C"):
            self.cancel_search()
        elif key in ENTER_KEYS:
            self.confirm_search()
        elif key == "BACKSPACE":
            if self.state.query:
                self._set_query(self.state.query[:-1])
        elif key == "TAB":
            self.toggle_reviewed()
        elif key in ("UP", "DOWN"):
            self.move_selection(-1 if key == "UP" else 1)
        elif len(key) == 1 and key.isprintable():
            self._set_query(self.state.query + key)
