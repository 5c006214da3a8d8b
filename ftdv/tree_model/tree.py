"""Mutable file tree facade used by the application state machine."""

from __future__ import annotations

from collections.abc import Iterable

from .build import build_tree
from .filtering import flatten_rows
from .types import DiffEntry, TreeNode, TreeRow


class FileTree:
    """Diff entries arranged as a foldable tree with per-file review flags.

    Nodes are addressed by path through an index; fold and review changes are
    single flag flips and visible rows are recomputed on demand.
    """

    def __init__(self, root: TreeNode, index: dict[str, TreeNode]) -> None:
        """Keep the synthetic root and its path index."""
        self.root = root
        self._index = index

    @classmethod
    def from_entries(cls, entries: Iterable[DiffEntry]) -> FileTree:
        """Build a tree from listed diff entries."""
        root, index = build_tree(entries)
        return cls(root, index)

    def __len__(self) -> int:
        """Return number of indexed nodes, directories included."""
        return len(self._index)

    def __contains__(self, path: object) -> bool:
        """Return whether ``path`` names a node in this tree."""
        return path in self._index

    def node(self, path: str) -> TreeNode | None:
        """Return the node at ``path`` or ``None``."""
        return self._index.get(path)

    def is_empty(self) -> bool:
        """Return whether the tree holds no entries at all."""
        return not self.root.children

    def file_paths(self) -> list[str]:
        """Return file paths in depth-first display order."""
        out: list[str] = []

        def walk(node: TreeNode) -> None:
            for child in node.children:
                if child.is_dir:
                    walk(child)
                else:
                    out.append(child.path)

        walk(self.root)
        return out

    def toggle_expanded(self, path: str) -> bool:
        """Flip a directory's fold flag; return ``False`` for files and unknown paths."""
        node = self._index.get(path)
        if node is None or not node.is_dir:
            return False
        node.expanded = not node.expanded
        return True

    def toggle_reviewed(self, path: str) -> bool | None:
        """Flip a file's reviewed flag and return the new value.

        Directories carry no flag of their own; ``None`` is returned for them
        and for unknown paths.
        """
        node = self._index.get(path)
        if node is None or node.is_dir:
            return None
        node.reviewed = not node.reviewed
        return node.reviewed

    def apply_reviewed(self, paths: Iterable[str]) -> None:
        """Mark the given file paths reviewed; paths not in this tree are ignored."""
        for path in paths:
            node = self._index.get(path)
            if node is not None and not node.is_dir:
                node.reviewed = True

    def reviewed_paths(self) -> set[str]:
        """Return paths of all files currently flagged reviewed."""
        return {path for path, node in self._index.items() if not node.is_dir and node.reviewed}

    def visible_rows(self, query: str = "") -> list[TreeRow]:
        """Flatten visible nodes into display rows, filtered by ``query``."""
        return flatten_rows(self.root, query)
