"""Flattening of the tree into visible rows, with optional path filtering."""

from __future__ import annotations

from .types import TreeNode, TreeRow


def matching_paths(root: TreeNode, query: str) -> set[str]:
    """Return paths of nodes to keep for ``query``.

    A node is kept when its path contains the query (case-insensitive) or when
    any descendant does.
    """
    needle = query.lower()
    keep: set[str] = set()

    def visit(node: TreeNode) -> bool:
        hit = needle in node.path.lower()
        for child in node.children:
            if visit(child):
                hit = True
        if hit:
            keep.add(node.path)
        return hit

    for child in root.children:
        visit(child)
    return keep


def all_files_reviewed(node: TreeNode) -> bool:
    """Derived directory review state: every file beneath ``node`` is reviewed."""
    if not node.is_dir:
        return node.reviewed
    return bool(node.children) and all(all_files_reviewed(child) for child in node.children)


def flatten_rows(root: TreeNode, query: str = "") -> list[TreeRow]:
    """Depth-first visible rows of ``root``'s descendants.

    Without a query, collapsed directories hide their children. With a query,
    only matching nodes and their ancestors are listed and those ancestors are
    shown open regardless of fold state.
    """
    keep = matching_paths(root, query) if query else None
    rows: list[TreeRow] = []

    def walk(node: TreeNode, depth: int, guides: tuple[bool, ...]) -> None:
        children = node.children if keep is None else [c for c in node.children if c.path in keep]
        for position, child in enumerate(children):
            is_last = position == len(children) - 1
            open_dir = child.is_dir and (child.expanded or keep is not None)
            rows.append(
                TreeRow(
                    path=child.path,
                    name=child.name,
                    depth=depth,
                    is_dir=child.is_dir,
                    status=child.status,
                    expanded=open_dir,
                    reviewed=all_files_reviewed(child),
                    added=child.added,
                    removed=child.removed,
                    file_count=child.file_count,
                    is_last=is_last,
                    guides=guides,
                )
            )
            if open_dir:
                walk(child, depth + 1, guides + (is_last,))

    walk(root, 0, ())
    return rows
