"""Datatypes shared by the diff file tree and its row projections."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class DiffStatus(Enum):
    """Change kind of one path, as reported by the git collaborator."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNTRACKED = "untracked"
    UNCHANGED = "unchanged"

    @property
    def badge(self) -> str:
        return _BADGES[self]


_BADGES = {
    DiffStatus.ADDED: "A",
    DiffStatus.REMOVED: "D",
    DiffStatus.MODIFIED: "M",
    DiffStatus.UNTRACKED: "?",
    DiffStatus.UNCHANGED: " ",
}


@dataclass(frozen=True)
class DiffEntry:
    """One changed path with optional numstat line counts (``None`` for binary)."""

    path: str
    status: DiffStatus
    added: int | None = None
    removed: int | None = None


@dataclass
class TreeNode:
    """Directory or file node; parents own children, children never point back."""

    name: str
    path: str
    is_dir: bool
    status: DiffStatus | None = None
    added: int = 0
    removed: int = 0
    file_count: int = 0
    expanded: bool = True
    reviewed: bool = False
    children: list[TreeNode] = field(default_factory=list)


@dataclass(frozen=True)
class TreeRow:
    """One visible row of the flattened tree.

    ``guides`` holds, for each ancestor from the top level down, whether that
    ancestor was the last of its siblings; the renderer draws connector lines
    from it. Directory rows carry aggregate counts of their files.
    """

    path: str
    name: str
    depth: int
    is_dir: bool
    status: DiffStatus | None
    expanded: bool
    reviewed: bool
    added: int
    removed: int
    file_count: int
    is_last: bool
    guides: tuple[bool, ...] = ()
