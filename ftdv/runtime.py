"""Main interactive event loop.

Polls the terminal for keys with a bounded timeout, feeds them to the app
state machine, and redraws when the state is dirty or the terminal resized.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import sys
from collections.abc import Callable

from .app import DiffViewerApp
from .input import read_key
from .render import render_frame
from .terminal import TerminalController

POLL_INTERVAL_MS = 120


def run_main_loop(
    app: DiffViewerApp,
    *,
    read: Callable[[int, int | None], str] = read_key,
    render: Callable[[DiffViewerApp], None] = render_frame,
    get_terminal_size: Callable[[tuple[int, int]], os.terminal_size] = shutil.get_terminal_size,
    stdin_fd: int | None = None,
) -> None:
    """Run until the app asks to quit."""
    fd = sys.stdin.fileno() if stdin_fd is None else stdin_fd
    while True:
        term = get_terminal_size((80, 24))
        app.resize(term.columns, term.lines)
        if app.state.dirty:
            render(app)
            app.state.dirty = False
        key = read(fd, POLL_INTERVAL_MS)
        if not key:
            continue
        if app.handle_key(key):
            return


@contextlib.contextmanager
def _muted_logging():
    """Silence ftdv log output while the alternate screen owns the terminal."""
    handlers = logging.getLogger("ftdv").handlers
    previous = [handler.level for handler in handlers]
    for handler in handlers:
        handler.setLevel(logging.CRITICAL + 1)
    try:
        yield
    finally:
        for handler, level in zip(handlers, previous):
            handler.setLevel(level)


def run_session(app: DiffViewerApp) -> None:
    """Enter raw mode, load the first diff, and run the loop."""
    stdin_fd = sys.stdin.fileno()
    stdout_fd = sys.stdout.fileno()
    terminal = TerminalController(stdin_fd, stdout_fd)
    with _muted_logging(), terminal.raw_mode():
        term = shutil.get_terminal_size((80, 24))
        app.resize(term.columns, term.lines)
        app.refresh()
        run_main_loop(app, stdin_fd=stdin_fd)
