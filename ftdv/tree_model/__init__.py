"""Diff file tree: construction, folding, review flags, and row projection.

Exposes ``FileTree`` plus the entry and row datatypes shared with the git
collaborator and the renderer.
"""

from __future__ import annotations

from .build import build_tree, child_sort_key
from .filtering import all_files_reviewed, flatten_rows, matching_paths
from .tree import FileTree
from .types import DiffEntry, DiffStatus, TreeNode, TreeRow

__all__ = [
    "DiffEntry",
    "DiffStatus",
    "FileTree",
    "TreeNode",
    "TreeRow",
    "all_files_reviewed",
    "build_tree",
    "child_sort_key",
    "flatten_rows",
    "matching_paths",
]
