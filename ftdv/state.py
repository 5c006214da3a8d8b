from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .ansi import StyledLine
from .tree_model import TreeRow


class Mode(Enum):
    NORMAL = "normal"
    SEARCH = "search"


@dataclass
class SessionState:
    rows: list[TreeRow] = field(default_factory=list)
    selected_idx: int = 0
    selected_path: str | None = None
    tree_start: int = 0
    mode: Mode = Mode.NORMAL
    query: str = ""
    search_prev_path: str | None = None
    diff_path: str | None = None
    diff_lines: list[StyledLine] = field(default_factory=list)
    diff_error: bool = False
    diff_width: int = 0
    scroll_y: int = 0
    scroll_x: int = 0
    columns: int = 80
    body_rows: int = 23
    status_message: str = ""
    dirty: bool = True
