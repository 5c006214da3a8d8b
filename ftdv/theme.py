"""Theme palettes and color-name parsing.

Themes map semantic UI slots (tree, status, chrome, text) to colors.
Config overrides are parsed per slot; bad values keep the palette default.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace

from .ansi import DEFAULT_STYLE, Color, Style, indexed, rgb

NAMED_COLORS: dict[str, int] = {
    "black": 0,
    "red": 1,
    "green": 2,
    "yellow": 3,
    "blue": 4,
    "magenta": 5,
    "cyan": 6,
    "gray": 7,
    "grey": 7,
    "dark_gray": 8,
    "dark_grey": 8,
    "light_red": 9,
    "light_green": 10,
    "light_yellow": 11,
    "light_blue": 12,
    "light_magenta": 13,
    "light_cyan": 14,
    "white": 15,
}


def parse_color(value: object) -> Color | None:
    """Parse a config color value.

    Accepts named colors, ``light_*``/gray variants, ``#RRGGBB`` and
    ``color0``-``color255``. ``reset`` means terminal default (``None``).
    Raises ``ValueError`` for anything else.
    """
    if not isinstance(value, str):
        raise ValueError(f"color must be a string, got {type(value).__name__}")
    name = value.strip().lower()
    if name == "reset":
        return None
    if name in NAMED_COLORS:
        return indexed(NAMED_COLORS[name])
    if name.startswith("color") and name[5:].isdigit():
        number = int(name[5:])
        if number <= 255:
            return indexed(number)
    if name.startswith("#") and len(name) == 7:
        try:
            return rgb(int(name[1:3], 16), int(name[3:5], 16), int(name[5:7], 16))
        except ValueError:
            pass
    raise ValueError(f"unknown color: {value}")


@dataclass(frozen=True)
class Theme:
    """Semantic palette used by the renderer."""

    name: str
    tree_line: Color | None
    tree_selected_bg: Color | None
    tree_selected_fg: Color | None
    tree_directory: Color | None
    tree_file: Color | None
    status_added: Color | None
    status_removed: Color | None
    status_modified: Color | None
    border: Color | None
    border_focused: Color | None
    title: Color | None
    status_bar_bg: Color | None
    status_bar_fg: Color | None
    text_primary: Color | None
    text_secondary: Color | None
    text_dim: Color | None
    background: Color | None
    plain: bool = False

    def fg(self, slot: str, **attrs: bool) -> Style:
        """Return a style with the slot color as foreground."""
        if self.plain:
            return Style(**attrs)
        return Style(fg=getattr(self, slot), **attrs)

    def selected(self) -> Style:
        if self.plain:
            return Style(bold=True, underline=True)
        return Style(fg=self.tree_selected_fg, bg=self.tree_selected_bg, bold=True)

    def status_bar(self) -> Style:
        if self.plain:
            return DEFAULT_STYLE
        return Style(fg=self.status_bar_fg, bg=self.status_bar_bg)


DARK_THEME = Theme(
    name="dark",
    tree_line=indexed(8),
    tree_selected_bg=rgb(50, 50, 70),
    tree_selected_fg=indexed(3),
    tree_directory=indexed(4),
    tree_file=indexed(15),
    status_added=indexed(2),
    status_removed=indexed(1),
    status_modified=indexed(3),
    border=indexed(8),
    border_focused=indexed(6),
    title=indexed(6),
    status_bar_bg=indexed(8),
    status_bar_fg=indexed(15),
    text_primary=indexed(15),
    text_secondary=indexed(7),
    text_dim=indexed(8),
    background=indexed(0),
)

LIGHT_THEME = replace(
    DARK_THEME,
    name="light",
    tree_line=indexed(7),
    tree_selected_bg=rgb(230, 230, 250),
    tree_selected_fg=indexed(0),
    tree_file=indexed(0),
    border=indexed(7),
    border_focused=indexed(4),
    title=indexed(4),
    status_bar_bg=indexed(7),
    status_bar_fg=indexed(0),
    text_primary=indexed(0),
    text_secondary=indexed(8),
    text_dim=indexed(7),
    background=indexed(15),
)

PLAIN_THEME = replace(DARK_THEME, name="plain", plain=True)

_THEMES: dict[str, Theme] = {
    DARK_THEME.name: DARK_THEME,
    LIGHT_THEME.name: LIGHT_THEME,
}

COLOR_SLOTS: tuple[str, ...] = tuple(
    field.name for field in fields(Theme) if field.name not in {"name", "plain"}
)


def available_theme_names() -> tuple[str, ...]:
    """Return selectable theme names."""
    return tuple(sorted(_THEMES.keys()))


def resolve_theme(
    name: object,
    colors: object = None,
    *,
    no_color: bool = False,
) -> tuple[Theme, list[str]]:
    """Build the active theme from config ``theme.name`` and ``theme.colors``.

    Returns ``(theme, warnings)``. Each rejected name, slot or color yields
    one warning and leaves the palette default in place.
    """
    warnings: list[str] = []
    base = DARK_THEME
    if name is not None:
        candidate = str(name).strip().lower()
        if candidate in _THEMES:
            base = _THEMES[candidate]
        else:
            warnings.append(f"unknown theme name {name!r}; using {DARK_THEME.name!r}")

    overrides: dict[str, Color | None] = {}
    if colors is not None and not isinstance(colors, dict):
        warnings.append("theme.colors must be a mapping; ignoring it")
        colors = None
    for slot, raw_value in (colors or {}).items():
        if slot not in COLOR_SLOTS:
            warnings.append(f"unknown theme color slot {slot!r}; ignoring it")
            continue
        try:
            overrides[slot] = parse_color(raw_value)
        except ValueError as exc:
            warnings.append(f"theme.colors.{slot}: {exc}; using default")

    if no_color:
        return PLAIN_THEME, warnings
    return replace(base, **overrides), warnings
