"""Pygments highlighting for plain ``git diff`` output."""

from __future__ import annotations

from pygments import highlight
from pygments.formatters import Terminal256Formatter
from pygments.lexers import DiffLexer
from pygments.styles import get_all_styles, get_style_by_name
from pygments.util import ClassNotFound

DEFAULT_STYLE_NAME = "monokai"

_FORMATTERS: dict[str, Terminal256Formatter] = {}


def available_styles() -> list[str]:
    return sorted(get_all_styles())


def normalize_style(style: str) -> str:
    """Return ``style`` if Pygments knows it, otherwise the default style."""
    try:
        get_style_by_name(style)
    except ClassNotFound:
        return DEFAULT_STYLE_NAME
    return style


def _formatter_for_style(style: str) -> Terminal256Formatter:
    formatter = _FORMATTERS.get(style)
    if formatter is None:
        formatter = Terminal256Formatter(style=style)
        _FORMATTERS[style] = formatter
    return formatter


def highlight_diff(text: str, style: str = DEFAULT_STYLE_NAME) -> str:
    """Colorize unified diff ``text`` with ANSI escapes."""
    if not text:
        return text
    rendered = highlight(text, DiffLexer(), _formatter_for_style(normalize_style(style)))
    if not text.endswith("\n") and rendered.endswith("\n"):
        rendered = rendered[:-1]
    return rendered
