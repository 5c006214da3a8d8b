"""Bounded execution of invocation plans.

``fetch`` runs a plan's processes with a shared deadline and returns their
combined output. Missing binaries, unusable commands, and timeouts raise
``ProcessError``; the caller shows the message in the diff pane.
"""

from __future__ import annotations

import shlex
import subprocess
import tempfile
import time
from dataclasses import dataclass, replace
from pathlib import Path

from .config import DEFAULT_TIMEOUT_SECONDS
from .highlight import highlight_diff
from .invocation import BuiltinPlan, ExternalDiffPlan, InvocationPlan, PipelinePlan

# diff(1) and ``git diff --no-index`` exit 1 when the inputs differ.
SUCCESS_CODES = (0, 1)


class ProcessError(Exception):
    """Raised when a diff tool cannot be run or does not finish in time."""


@dataclass(frozen=True)
class FetchResult:
    """Tool output; ``plain`` output is shown as single-style text, never ANSI-parsed."""

    output: bytes
    returncode: int = 0
    plain: bool = False


def split_command(command: str) -> list[str]:
    try:
        argv = shlex.split(command)
    except ValueError as exc:
        raise ProcessError(f"cannot parse command {command!r}: {exc}") from exc
    if not argv or not argv[0]:
        raise ProcessError("diff tool command is empty")
    return argv


def _remaining(deadline: float) -> float:
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise ProcessError("diff tool timed out")
    return remaining


def _run(
    argv: list[str] | str,
    *,
    deadline: float,
    timeout_seconds: float,
    input_bytes: bytes | None = None,
    env: dict[str, str] | None = None,
    shell: bool = False,
    cwd: Path | None = None,
) -> subprocess.CompletedProcess[bytes]:
    name = argv if isinstance(argv, str) else argv[0]
    try:
        return subprocess.run(
            argv,
            input=input_bytes,
            stdin=subprocess.DEVNULL if input_bytes is None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=env or None,
            shell=shell,
            cwd=cwd,
            check=False,
            timeout=_remaining(deadline),
        )
    except FileNotFoundError as exc:
        raise ProcessError(f"command not found: {name}") from exc
    except PermissionError as exc:
        raise ProcessError(f"command not executable: {name}") from exc
    except subprocess.TimeoutExpired as exc:
        raise ProcessError(f"{name} timed out after {timeout_seconds:g}s") from exc


def _result(proc: subprocess.CompletedProcess[bytes], name: str) -> FetchResult:
    """Combine stdout and stderr; fail only when a failing tool printed nothing."""
    if proc.returncode not in SUCCESS_CODES and not proc.stdout:
        detail = proc.stderr.decode("utf-8", errors="replace").strip()
        message = f"{name} exited with status {proc.returncode}"
        raise ProcessError(f"{message}: {detail}" if detail else message)
    return FetchResult(proc.stdout + proc.stderr, proc.returncode)


def _fetch_external(plan: ExternalDiffPlan, deadline: float, timeout_seconds: float) -> FetchResult:
    argv = split_command(plan.command)
    with tempfile.TemporaryDirectory(prefix="ftdv-") as tmp:
        before = Path(tmp) / "a" / plan.basename
        after = Path(tmp) / "b" / plan.basename
        try:
            before.parent.mkdir()
            after.parent.mkdir()
            before.write_bytes(plan.before)
            after.write_bytes(plan.after)
        except OSError as exc:
            raise ProcessError(f"cannot write temporary files for {argv[0]}: {exc}") from exc
        proc = _run(
            [*argv, str(before), str(after)],
            deadline=deadline,
            timeout_seconds=timeout_seconds,
            env=plan.env,
        )
    return _result(proc, argv[0])


def _fetch_pipeline(plan: PipelinePlan, deadline: float, timeout_seconds: float) -> FetchResult:
    source = _run(list(plan.source_argv), deadline=deadline, timeout_seconds=timeout_seconds, env=plan.env)
    if plan.sink_command is None or (source.returncode not in SUCCESS_CODES and not source.stdout):
        return _result(source, plan.source_argv[0])

    if plan.sink_shell:
        sink_argv: list[str] | str = plan.sink_command
        name = plan.sink_command.split()[0] if plan.sink_command.split() else plan.sink_command
    else:
        sink_argv = split_command(plan.sink_command)
        name = sink_argv[0]
    sink = _run(
        sink_argv,
        deadline=deadline,
        timeout_seconds=timeout_seconds,
        input_bytes=source.stdout,
        env=plan.env,
        shell=plan.sink_shell,
    )
    return _result(sink, name)


def _fetch_builtin(plan: BuiltinPlan, deadline: float, timeout_seconds: float) -> FetchResult:
    proc = _run(list(plan.source_argv), deadline=deadline, timeout_seconds=timeout_seconds)
    result = _result(proc, plan.source_argv[0])
    if plan.style is None:
        return replace(result, plain=True)
    text = highlight_diff(proc.stdout.decode("utf-8", errors="replace"), plan.style)
    return FetchResult(text.encode("utf-8") + proc.stderr, result.returncode)


def fetch(plan: InvocationPlan, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> FetchResult:
    """Run ``plan`` and return its output, all processes sharing one deadline."""
    deadline = time.monotonic() + timeout_seconds
    match plan:
        case ExternalDiffPlan():
            return _fetch_external(plan, deadline, timeout_seconds)
        case PipelinePlan():
            return _fetch_pipeline(plan, deadline, timeout_seconds)
        case BuiltinPlan():
            return _fetch_builtin(plan, deadline, timeout_seconds)
    raise TypeError(f"unsupported invocation plan: {plan!r}")
