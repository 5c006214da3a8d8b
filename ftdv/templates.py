"""Width-dependent template variables for configured diff commands.

Commands such as ``delta -w={{diffAreaWidth}}`` are expanded right before each
invocation so tools lay out their output for the current terminal size.
"""

from __future__ import annotations

import re

TEMPLATE_TOKEN_RE = re.compile(r"\{\{\s*\.?([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def template_values(width: int) -> dict[str, int]:
    """Return the substitution table for a terminal ``width`` in columns.

    ``diffAreaWidth`` is the 80% share given to the diff pane and
    ``columnWidth`` follows lazygit's ``width / 2 - 6`` convention.
    """
    width = max(1, int(width))
    diff_area_width = width * 4 // 5
    return {
        "width": width,
        "columnWidth": max(0, width // 2 - 6),
        "diffAreaWidth": diff_area_width,
        "diffColumnWidth": diff_area_width // 2,
    }


def expand_template(template: str, values: dict[str, int]) -> str:
    """Replace known ``{{name}}`` tokens; unknown tokens are kept verbatim."""

    def substitute(match: re.Match[str]) -> str:
        value = values.get(match.group(1))
        if value is None:
            return match.group(0)
        return str(value)

    return TEMPLATE_TOKEN_RE.sub(substitute, template)


def expand_for_width(template: str, width: int) -> str:
    """Expand ``template`` using values derived from terminal ``width``."""
    return expand_template(template, template_values(width))
