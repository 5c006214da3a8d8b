"""Diff tool invocation planning.

Maps a ``DiffRequest`` and the configured ``ToolConfig`` onto one of a closed
set of plans. Plans only describe what to run; ``fetcher.fetch`` runs them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Union

from .config import BuiltinTool, ExternalDiffTool, PagerTool, SystemPagerTool, ToolConfig
from .git import GIT_TIMEOUT_SECONDS, CompareTarget, git_diff_argv, read_side, run_git
from .templates import expand_for_width
from .tree_model import DiffStatus

TERMINAL_TYPE = "xterm-256color"
TERMINAL_LINES = 50


@dataclass(frozen=True)
class DiffRequest:
    """The comparison and path whose diff should be shown."""

    target: CompareTarget
    root: Path | None
    path: str
    is_directory: bool = False
    status: DiffStatus = DiffStatus.MODIFIED


@dataclass(frozen=True)
class ExternalDiffPlan:
    """Run ``command`` with the before/after contents written to two temp files."""

    command: str
    basename: str
    before: bytes
    after: bytes
    env: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PipelinePlan:
    """Run ``source_argv`` and feed its stdout to the sink.

    ``sink_command`` is split into argv, or run through the shell when
    ``sink_shell`` is set. ``None`` means the source output is used as is.
    """

    source_argv: tuple[str, ...]
    sink_command: str | None
    sink_shell: bool = False
    env: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class BuiltinPlan:
    """Capture plain ``git diff`` output; highlight it with Pygments when ``style`` is set."""

    source_argv: tuple[str, ...]
    style: str | None = None


InvocationPlan = Union[ExternalDiffPlan, PipelinePlan, BuiltinPlan]


def tool_environment(width: int) -> dict[str, str]:
    env = dict(os.environ)
    env["TERM"] = TERMINAL_TYPE
    env["COLUMNS"] = str(max(1, width))
    env["LINES"] = str(TERMINAL_LINES)
    return env


def system_pager_command(root: Path | None) -> str:
    """Return git's configured pager (``core.pager``/``GIT_PAGER``/``PAGER``) or ``""``."""
    proc = run_git(root, ["var", "GIT_PAGER"])
    if proc.returncode != 0:
        return ""
    return proc.stdout.decode("utf-8", errors="replace").strip()


def plan_invocation(
    request: DiffRequest,
    tool: ToolConfig,
    width: int,
    *,
    style: str | None = None,
    timeout_seconds: float | None = None,
) -> InvocationPlan:
    """Choose how to produce the diff for ``request`` in a pane ``width`` columns wide.

    Directories have no diff of their own and are rejected with ``ValueError``.
    """
    if request.is_directory:
        raise ValueError(f"directories have no diff: {request.path}")
    git_timeout = timeout_seconds or GIT_TIMEOUT_SECONDS

    match tool:
        case ExternalDiffTool(command=command):
            return ExternalDiffPlan(
                command=expand_for_width(command, width),
                basename=PurePosixPath(request.path).name or "file",
                before=read_side(request.target, request.root, request.path, "before", git_timeout),
                after=read_side(request.target, request.root, request.path, "after", git_timeout),
                env=tool_environment(width),
            )
        case PagerTool(command=command, color_arg=color_arg):
            source = git_diff_argv(request.target, request.root, request.path, request.status, color_arg)
            return PipelinePlan(
                source_argv=tuple(source),
                sink_command=expand_for_width(command, width),
                env=tool_environment(width),
            )
        case SystemPagerTool(color_arg=color_arg):
            source = git_diff_argv(request.target, request.root, request.path, request.status, color_arg)
            pager = system_pager_command(request.root)
            return PipelinePlan(
                source_argv=tuple(source),
                sink_command=pager or None,
                sink_shell=True,
                env=tool_environment(width),
            )
        case BuiltinTool():
            source = git_diff_argv(request.target, request.root, request.path, request.status, None)
            return BuiltinPlan(source_argv=tuple(source), style=style)
    raise TypeError(f"unsupported tool config: {tool!r}")
