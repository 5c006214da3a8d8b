"""Git collaborator: repository discovery, ref checks, and change listings.

Resolves what the user asked to compare, lists changed paths with their
status and line counts, and builds the ``git diff`` command lines and
before/after contents the diff tools consume.
"""

from __future__ import annotations

import filecmp
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .tree_model.types import DiffEntry, DiffStatus

GIT_TIMEOUT_SECONDS = 10.0


class GitError(Exception):
    """Raised when the repository or requested refs cannot be resolved."""


@dataclass(frozen=True)
class WorkingTree:
    """Unstaged changes: index vs working tree."""


@dataclass(frozen=True)
class Staged:
    """Staged changes: ``base`` (default ``HEAD``) vs index."""

    base: str | None = None


@dataclass(frozen=True)
class RefVsWorkingTree:
    ref: str


@dataclass(frozen=True)
class RefRange:
    old: str
    new: str


@dataclass(frozen=True)
class PathPair:
    """Direct comparison of two files or two directories."""

    left: Path
    right: Path

    @property
    def is_directory(self) -> bool:
        return self.left.is_dir()


CompareTarget = Union[WorkingTree, Staged, RefVsWorkingTree, RefRange, PathPair]


def resolve_compare_target(targets: list[str], cached: bool = False) -> CompareTarget:
    """Map CLI positional targets onto a comparison.

    Two targets that both exist on disk are compared as paths; otherwise
    they are treated as refs. Raises ``ValueError`` for more than two.
    """
    if len(targets) > 2:
        raise ValueError("too many arguments: expected at most two refs or paths")
    if cached:
        if len(targets) > 1:
            raise ValueError("--cached accepts at most one ref")
        return Staged(targets[0] if targets else None)
    if not targets:
        return WorkingTree()
    if len(targets) == 1:
        return RefVsWorkingTree(targets[0])
    left, right = targets
    if Path(left).exists() and Path(right).exists():
        return PathPair(Path(left).resolve(), Path(right).resolve())
    return RefRange(left, right)


def describe_target(target: CompareTarget) -> str:
    if isinstance(target, WorkingTree):
        return "working tree"
    if isinstance(target, Staged):
        return f"staged vs {target.base}" if target.base else "staged"
    if isinstance(target, RefVsWorkingTree):
        return f"{target.ref} vs working tree"
    if isinstance(target, RefRange):
        return f"{target.old}..{target.new}"
    return f"{target.left} vs {target.right}"


def run_git(
    root: Path | None,
    args: list[str],
    timeout_seconds: float = GIT_TIMEOUT_SECONDS,
) -> subprocess.CompletedProcess[bytes]:
    """Run git with ``args`` (in ``root`` when given) and capture its output."""
    argv = ["git", *args] if root is None else ["git", "-C", str(root), *args]
    try:
        return subprocess.run(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=False,
            timeout=timeout_seconds,
        )
    except FileNotFoundError as exc:
        raise GitError("git executable not found on PATH") from exc
    except subprocess.TimeoutExpired as exc:
        raise GitError(f"git {' '.join(args)} timed out after {timeout_seconds:g}s") from exc


def repo_root(cwd: Path) -> Path:
    """Return the top-level directory of the repository containing ``cwd``."""
    proc = run_git(cwd, ["rev-parse", "--show-toplevel"])
    if proc.returncode != 0:
        raise GitError("not a git repository (or any of the parent directories)")
    return Path(proc.stdout.decode("utf-8", errors="replace").strip()).resolve()


def ref_exists(root: Path, ref: str) -> bool:
    proc = run_git(root, ["rev-parse", "--verify", "--quiet", "--end-of-options", f"{ref}^{{commit}}"])
    return proc.returncode == 0


def verify_refs(root: Path, refs: list[str]) -> None:
    """Raise ``GitError`` naming every ref git cannot resolve to a commit."""
    missing = [ref for ref in refs if not ref_exists(root, ref)]
    if not missing:
        return
    names = ", ".join(repr(ref) for ref in missing)
    noun = "revision" if len(missing) == 1 else "revisions"
    raise GitError(f"unknown {noun}: {names}")


def validate_target(target: CompareTarget, cwd: Path) -> Path | None:
    """Check that ``target`` can be compared from ``cwd``.

    Returns the repository root for git comparisons and ``None`` for path
    pairs. Raises ``GitError`` for a missing repository or unresolved refs.
    """
    if isinstance(target, PathPair):
        if target.left.is_dir() != target.right.is_dir():
            raise GitError(f"cannot compare a file with a directory: {target.left} vs {target.right}")
        return None
    root = repo_root(cwd)
    if isinstance(target, Staged) and target.base:
        verify_refs(root, [target.base])
    elif isinstance(target, RefVsWorkingTree):
        verify_refs(root, [target.ref])
    elif isinstance(target, RefRange):
        verify_refs(root, [target.old, target.new])
    return root


def review_identity(target: CompareTarget, root: Path | None) -> str:
    """Key under which reviewed paths for this comparison are persisted."""
    if isinstance(target, PathPair):
        return f"{target.left}::{target.right}"
    if root is None:
        raise ValueError("git comparisons need a repository root")
    return str(root)


def _range_args(target: CompareTarget) -> list[str]:
    if isinstance(target, Staged):
        return ["--cached", *([target.base] if target.base else [])]
    if isinstance(target, RefVsWorkingTree):
        return [target.ref]
    if isinstance(target, RefRange):
        return [target.old, target.new]
    return []


_STATUS_BY_LETTER = {
    "A": DiffStatus.ADDED,
    "C": DiffStatus.ADDED,
    "D": DiffStatus.REMOVED,
}


def _parse_name_status(output: bytes) -> list[tuple[str, DiffStatus]]:
    tokens = output.decode("utf-8", errors="replace").split("\0")
    records: list[tuple[str, DiffStatus]] = []
    index = 0
    while index + 1 < len(tokens):
        letter = tokens[index][:1]
        path = tokens[index + 1]
        index += 2
        if not letter or not path:
            continue
        records.append((path, _STATUS_BY_LETTER.get(letter, DiffStatus.MODIFIED)))
    return records


def _parse_numstat(output: bytes) -> dict[str, tuple[int | None, int | None]]:
    counts: dict[str, tuple[int | None, int | None]] = {}
    for record in output.decode("utf-8", errors="replace").split("\0"):
        parts = record.split("\t", 2)
        if len(parts) != 3 or not parts[2]:
            continue
        added, removed, path = parts
        counts[path] = (
            int(added) if added.isdigit() else None,
            int(removed) if removed.isdigit() else None,
        )
    return counts


def list_changes(target: CompareTarget, root: Path | None) -> list[DiffEntry]:
    """Return changed paths for ``target`` in git's output order."""
    if isinstance(target, PathPair):
        return _list_path_pair_changes(target)
    assert root is not None

    range_args = _range_args(target)
    status_proc = run_git(root, ["diff", "--name-status", "-z", "--no-renames", *range_args])
    if status_proc.returncode != 0:
        raise GitError(status_proc.stderr.decode("utf-8", errors="replace").strip() or "git diff failed")
    numstat_proc = run_git(root, ["diff", "--numstat", "-z", "--no-renames", *range_args])
    counts = _parse_numstat(numstat_proc.stdout) if numstat_proc.returncode == 0 else {}

    entries: list[DiffEntry] = []
    for path, status in _parse_name_status(status_proc.stdout):
        added, removed = counts.get(path, (None, None))
        entries.append(DiffEntry(path, status, added, removed))

    if isinstance(target, WorkingTree):
        untracked_proc = run_git(root, ["ls-files", "--others", "--exclude-standard", "-z"])
        if untracked_proc.returncode == 0:
            for path in untracked_proc.stdout.decode("utf-8", errors="replace").split("\0"):
                if path:
                    entries.append(DiffEntry(path, DiffStatus.UNTRACKED))
    return entries


def _relative_files(directory: Path) -> set[str]:
    files: set[str] = set()
    for current, dirnames, filenames in os.walk(directory):
        dirnames.sort()
        base = Path(current)
        for name in filenames:
            files.add((base / name).relative_to(directory).as_posix())
    return files


def _same_content(left: Path, right: Path) -> bool:
    try:
        return filecmp.cmp(left, right, shallow=False)
    except OSError as exc:
        raise GitError(f"cannot compare {left} with {right}: {exc}") from exc


def _list_path_pair_changes(target: PathPair) -> list[DiffEntry]:
    if not target.is_directory:
        same = _same_content(target.left, target.right)
        return [DiffEntry(target.right.name, DiffStatus.UNCHANGED if same else DiffStatus.MODIFIED)]

    left_files = _relative_files(target.left)
    right_files = _relative_files(target.right)
    entries: list[DiffEntry] = []
    for path in sorted(left_files | right_files):
        if path not in right_files:
            entries.append(DiffEntry(path, DiffStatus.REMOVED))
        elif path not in left_files:
            entries.append(DiffEntry(path, DiffStatus.ADDED))
        elif not _same_content(target.left / path, target.right / path):
            entries.append(DiffEntry(path, DiffStatus.MODIFIED))
    return entries


def path_pair_sides(target: PathPair, path: str) -> tuple[Path, Path]:
    """Return the (left, right) filesystem paths compared for ``path``."""
    if not target.is_directory:
        return target.left, target.right
    return target.left / path, target.right / path


def git_diff_argv(
    target: CompareTarget,
    root: Path | None,
    path: str,
    status: DiffStatus,
    color_arg: str | None,
) -> list[str]:
    """Build the ``git diff`` command producing the unified diff for ``path``.

    ``color_arg`` of ``None`` requests plain output. Path pairs and untracked
    files go through ``--no-index`` with the null device standing in for a
    missing side.
    """
    color = "--no-color" if color_arg is None else f"--color={color_arg}"
    if isinstance(target, PathPair):
        left, right = path_pair_sides(target, path)
        left_arg = str(left) if left.exists() else os.devnull
        right_arg = str(right) if right.exists() else os.devnull
        return ["git", "diff", "--no-index", color, "--", left_arg, right_arg]
    assert root is not None
    if status is DiffStatus.UNTRACKED:
        return ["git", "-C", str(root), "diff", "--no-index", color, "--", os.devnull, path]
    return ["git", "-C", str(root), "diff", color, *_range_args(target), "--", path]


def _blob_spec(target: CompareTarget, path: str, side: str) -> str | None:
    """Return the ``<rev>:<path>`` spec for ``side``; ``None`` means working tree."""
    if isinstance(target, WorkingTree):
        return f":{path}" if side == "before" else None
    if isinstance(target, Staged):
        return f"{target.base or 'HEAD'}:{path}" if side == "before" else f":{path}"
    if isinstance(target, RefVsWorkingTree):
        return f"{target.ref}:{path}" if side == "before" else None
    if isinstance(target, RefRange):
        return f"{target.old if side == 'before' else target.new}:{path}"
    raise TypeError(f"no blob spec for {target!r}")


def _read_file(source: Path) -> bytes:
    """Return file contents, or empty bytes when ``source`` is not a file."""
    if not source.is_file():
        return b""
    try:
        return source.read_bytes()
    except OSError as exc:
        raise GitError(f"cannot read {source}: {exc}") from exc


def read_side(
    target: CompareTarget,
    root: Path | None,
    path: str,
    side: str,
    timeout_seconds: float = GIT_TIMEOUT_SECONDS,
) -> bytes:
    """Return the ``"before"`` or ``"after"`` content of ``path``.

    A side where the file does not exist (added, removed, untracked) is empty;
    an unreadable file raises ``GitError``.
    """
    if isinstance(target, PathPair):
        left, right = path_pair_sides(target, path)
        return _read_file(left if side == "before" else right)
    assert root is not None
    spec = _blob_spec(target, path, side)
    if spec is None:
        return _read_file(root / path)
    proc = run_git(root, ["cat-file", "blob", spec], timeout_seconds)
    if proc.returncode != 0:
        return b""
    return proc.stdout
