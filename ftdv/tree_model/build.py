"""Tree construction from an ordered list of diff entries."""

from __future__ import annotations

from collections.abc import Iterable

from .types import DiffEntry, TreeNode


def child_sort_key(node: TreeNode) -> tuple[bool, str, str]:
    """Sort directories before files, then case-insensitively by name."""
    return (not node.is_dir, node.name.lower(), node.name)


def _sort_recursive(node: TreeNode) -> None:
    node.children.sort(key=child_sort_key)
    for child in node.children:
        if child.is_dir:
            _sort_recursive(child)


def _aggregate(node: TreeNode) -> None:
    """Fill directory ``file_count``/``added``/``removed`` from their files."""
    if not node.is_dir:
        return
    node.file_count = 0
    node.added = 0
    node.removed = 0
    for child in node.children:
        _aggregate(child)
        node.file_count += child.file_count if child.is_dir else 1
        node.added += child.added
        node.removed += child.removed


def build_tree(entries: Iterable[DiffEntry]) -> tuple[TreeNode, dict[str, TreeNode]]:
    """Build the tree and a path index from ``entries``.

    Intermediate directories are created on demand and reused. The first
    entry for a path wins; an entry whose path collides with an existing node
    of the other kind (a file where a directory is needed, or vice versa) is
    skipped.
    """
    root = TreeNode(name="", path="", is_dir=True)
    index: dict[str, TreeNode] = {}

    for entry in entries:
        parts = [part for part in entry.path.split("/") if part]
        if not parts:
            continue
        parent = root
        prefix: list[str] = []
        for part in parts[:-1]:
            prefix.append(part)
            dir_path = "/".join(prefix)
            existing = index.get(dir_path)
            if existing is None:
                existing = TreeNode(name=part, path=dir_path, is_dir=True)
                index[dir_path] = existing
                parent.children.append(existing)
            elif not existing.is_dir:
                parent = None
                break
            parent = existing
        if parent is None:
            continue

        file_path = "/".join(parts)
        if file_path in index:
            continue
        leaf = TreeNode(
            name=parts[-1],
            path=file_path,
            is_dir=False,
            status=entry.status,
            added=entry.added or 0,
            removed=entry.removed or 0,
        )
        index[file_path] = leaf
        parent.children.append(leaf)

    _sort_recursive(root)
    _aggregate(root)
    return root, index
