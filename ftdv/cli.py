"""Command-line front door for ftdv.

Parses options, resolves what to compare, and validates it against git
before the terminal is touched. Startup failures exit with status 1; the
interactive session starts only when there is something to show.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .app import AppContext, DiffViewerApp
from .completions import SHELLS, completion_script
from .config import ConfigError, load_config
from .git import GitError, list_changes, resolve_compare_target, review_identity, validate_target
from .highlight import available_styles
from .persistence import ReviewStore
from .runtime import run_session
from .theme import available_theme_names
from .tree_model import FileTree

logger = logging.getLogger("ftdv")


def _positive_float(value: str) -> float:
    """argparse type for positive numbers of seconds."""
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be > 0")
    return parsed


def _style_name(value: str) -> str:
    if value not in available_styles():
        raise argparse.ArgumentTypeError(f"unknown Pygments style: {value!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ftdv",
        description="Browse a git diff as a file tree with your favourite diff tool.",
        epilog="Use 'ftdv completions {bash,zsh,fish}' to print a shell completion script.",
    )
    parser.add_argument(
        "targets",
        nargs="*",
        metavar="REF_OR_PATH",
        help="Nothing: working tree. One ref: ref vs working tree. Two refs or two paths: compare them.",
    )
    parser.add_argument("-c", "--cached", action="store_true", help="Show staged changes (git diff --cached).")
    parser.add_argument("-w", "--worktree", action="store_true", help="Show working tree changes (default).")
    parser.add_argument("--config", type=Path, metavar="FILE", help="Configuration file path.")
    parser.add_argument(
        "--timeout",
        type=_positive_float,
        default=None,
        metavar="SECONDS",
        help="Time limit for one diff tool run (default: config or 10).",
    )
    parser.add_argument(
        "--style",
        type=_style_name,
        default=None,
        help="Pygments style used to highlight the built-in diff view.",
    )
    parser.add_argument(
        "--theme",
        default=None,
        help=f"UI theme name ({', '.join(available_theme_names())}).",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable UI colors.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug details to stderr.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_completions_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ftdv completions", description="Print a shell completion script.")
    parser.add_argument("shell", choices=SHELLS)
    return parser


def configure_logging(verbose: bool) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("ftdv: %(levelname)s: %(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def _is_interactive() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def _fail(message: str) -> SystemExit:
    sys.stderr.write(f"ftdv: error: {message}\n")
    return SystemExit(1)


def main(argv: list[str] | None = None, *, cwd: Path | None = None) -> None:
    """Parse CLI arguments and launch the diff viewer.

    ``argv`` and ``cwd`` exist for tests. Exits with status 0 after a normal
    quit or when there are no differences, 1 on startup errors, and 2 on
    usage errors.
    """
    args_list = sys.argv[1:] if argv is None else list(argv)
    if args_list[:1] == ["completions"]:
        completion_args = build_completions_parser().parse_args(args_list[1:])
        sys.stdout.write(completion_script(completion_args.shell))
        return

    parser = build_parser()
    args = parser.parse_args(args_list)
    if args.cached and args.worktree:
        parser.error("--cached and --worktree are mutually exclusive")
    if args.worktree and args.targets:
        parser.error("--worktree does not take refs or paths")
    try:
        target = resolve_compare_target(args.targets, cached=args.cached)
    except ValueError as exc:
        parser.error(str(exc))

    configure_logging(args.verbose)
    try:
        config = load_config(args.config, no_color=args.no_color, theme_name=args.theme)
    except ConfigError as exc:
        raise _fail(str(exc)) from exc

    working_dir = cwd if cwd is not None else Path.cwd()
    try:
        root = validate_target(target, working_dir)
        tree = FileTree.from_entries(list_changes(target, root))
    except GitError as exc:
        raise _fail(str(exc)) from exc

    if tree.is_empty():
        sys.stdout.write("No differences found.\n")
        return

    if not _is_interactive():
        raise _fail("ftdv needs an interactive terminal")

    store = ReviewStore()
    identity = review_identity(target, root)
    reviewed, persistence_warning = store.load(identity)
    tree.apply_reviewed(reviewed)

    context = AppContext(
        target=target,
        root=root,
        tool=config.tool,
        theme=config.theme,
        store=store,
        identity=identity,
        timeout_seconds=args.timeout if args.timeout is not None else config.timeout_seconds,
        style=args.style,
    )
    app = DiffViewerApp(context, tree)
    startup_warnings = [*config.warnings, *([persistence_warning] if persistence_warning else [])]
    if startup_warnings:
        app.state.status_message = f"Warning: {startup_warnings[0]}"
    logger.debug("comparing %s with %s", target, config.tool)
    run_session(app)


if __name__ == "__main__":
    main()
