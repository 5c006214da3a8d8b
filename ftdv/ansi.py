"""ANSI escape parsing into styled lines, plus display-width helpers.

``parse_ansi`` turns arbitrary tool output into ``StyledLine`` values and never
raises: incomplete or malformed escape sequences are kept as literal text.
The remaining helpers measure, slice, and re-emit styled lines for the screen.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, replace

ESC = "\x1b"
TAB_STOP = 8
MAX_SEQUENCE_LENGTH = 64

# Colors are ("index", n) for the 256-color palette or ("rgb", r, g, b).
Color = tuple

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f]")


def indexed(n: int) -> Color:
    return ("index", n)


def rgb(r: int, g: int, b: int) -> Color:
    return ("rgb", r, g, b)


@dataclass(frozen=True)
class Style:
    """Render attributes for one span; ``None`` colors mean terminal default."""

    fg: Color | None = None
    bg: Color | None = None
    bold: bool = False
    dim: bool = False
    italic: bool = False
    underline: bool = False

    @property
    def is_default(self) -> bool:
        return self == DEFAULT_STYLE


DEFAULT_STYLE = Style()


@dataclass(frozen=True)
class StyledSpan:
    text: str
    style: Style = DEFAULT_STYLE


@dataclass(frozen=True)
class StyledLine:
    spans: tuple[StyledSpan, ...] = ()

    @property
    def text(self) -> str:
        return "".join(span.text for span in self.spans)

    @classmethod
    def plain(cls, text: str, style: Style = DEFAULT_STYLE) -> StyledLine:
        """Build a single-span line (empty text gives an empty line)."""
        if not text:
            return cls()
        return cls((StyledSpan(text, style),))


def plain_lines(text: str, style: Style = DEFAULT_STYLE) -> list[StyledLine]:
    """Split ``text`` into single-style lines without interpreting escapes."""
    if not text:
        return []
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
    return [StyledLine.plain(part.removesuffix("\r"), style) for part in parts]


class _LineBuilder:
    """Accumulates spans for the current line and completed lines."""

    def __init__(self) -> None:
        self.lines: list[StyledLine] = []
        self.spans: list[StyledSpan] = []
        self.text: list[str] = []
        self.style = DEFAULT_STYLE

    def write(self, text: str) -> None:
        self.text.append(text)

    def set_style(self, style: Style) -> None:
        if style == self.style:
            return
        self._flush_text()
        self.style = style

    def end_line(self) -> None:
        self._flush_text()
        self.lines.append(StyledLine(tuple(self.spans)))
        self.spans = []

    def finish(self, saw_any: bool) -> list[StyledLine]:
        self._flush_text()
        if self.spans:
            self.lines.append(StyledLine(tuple(self.spans)))
            self.spans = []
        elif saw_any and not self.lines:
            self.lines.append(StyledLine())
        return self.lines

    def _flush_text(self) -> None:
        if not self.text:
            return
        text = "".join(self.text)
        self.text = []
        if not text:
            return
        if self.spans and self.spans[-1].style == self.style:
            previous = self.spans.pop()
            text = previous.text + text
        self.spans.append(StyledSpan(text, self.style))


def _parse_sgr_params(raw: str) -> list[int] | None:
    if raw == "":
        return [0]
    params: list[int] = []
    for part in raw.split(";"):
        if part == "":
            params.append(0)
            continue
        if not part.isdigit() or not part.isascii():
            return None
        params.append(int(part))
    return params


def _extended_color(params: list[int], index: int) -> tuple[Color, int] | None:
    """Decode ``5;n`` / ``2;r;g;b`` after a 38/48 code; return (color, next index)."""
    if index >= len(params):
        return None
    mode = params[index]
    if mode == 5:
        if index + 1 >= len(params) or params[index + 1] > 255:
            return None
        return indexed(params[index + 1]), index + 2
    if mode == 2:
        if index + 3 >= len(params):
            return None
        r, g, b = params[index + 1 : index + 4]
        if max(r, g, b) > 255:
            return None
        return rgb(r, g, b), index + 4
    return None


def apply_sgr(style: Style, params: list[int]) -> Style | None:
    """Return ``style`` updated by SGR ``params`` or ``None`` when malformed."""
    index = 0
    while index < len(params):
        code = params[index]
        index += 1
        if code == 0:
            style = DEFAULT_STYLE
        elif code == 1:
            style = replace(style, bold=True)
        elif code == 2:
            style = replace(style, dim=True)
        elif code == 3:
            style = replace(style, italic=True)
        elif code == 4:
            style = replace(style, underline=True)
        elif code == 22:
            style = replace(style, bold=False, dim=False)
        elif code == 23:
            style = replace(style, italic=False)
        elif code == 24:
            style = replace(style, underline=False)
        elif 30 <= code <= 37:
            style = replace(style, fg=indexed(code - 30))
        elif 90 <= code <= 97:
            style = replace(style, fg=indexed(code - 90 + 8))
        elif 40 <= code <= 47:
            style = replace(style, bg=indexed(code - 40))
        elif 100 <= code <= 107:
            style = replace(style, bg=indexed(code - 100 + 8))
        elif code == 39:
            style = replace(style, fg=None)
        elif code == 49:
            style = replace(style, bg=None)
        elif code in (38, 48):
            decoded = _extended_color(params, index)
            if decoded is None:
                return None
            color, index = decoded
            style = replace(style, fg=color) if code == 38 else replace(style, bg=color)
        # Other codes (blink, reverse, fonts, ...) do not affect rendering here.
    return style


_GROUND = 0
_ESCAPE_SEEN = 1
_PARAMETERS = 2


def parse_ansi(data: bytes | str) -> list[StyledLine]:
    """Convert raw tool output into styled lines.

    Runs a three-state machine (ground, escape seen, parameter collection).
    Only ``m`` (SGR) sequences change style; every sequence that is
    incomplete, malformed, or ends in another final byte is emitted verbatim
    and parsing continues in the ground state.
    """
    if isinstance(data, bytes):
        text = data.decode("utf-8", errors="replace")
    else:
        text = data

    builder = _LineBuilder()
    state = _GROUND
    pending: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if state == _GROUND:
            if ch == ESC:
                pending = [ch]
                state = _ESCAPE_SEEN
            elif ch == "\n":
                builder.end_line()
            elif ch == "\r" and i + 1 < n and text[i + 1] == "\n":
                pass
            else:
                builder.write(ch)
            i += 1
            continue

        if state == _ESCAPE_SEEN:
            if ch == "[":
                pending.append(ch)
                state = _PARAMETERS
                i += 1
                continue
            # Not a CSI introducer: keep the lone ESC and reprocess ``ch``.
            builder.write("".join(pending))
            pending = []
            state = _GROUND
            continue

        # _PARAMETERS
        code = ord(ch)
        if 0x20 <= code <= 0x3F and len(pending) < MAX_SEQUENCE_LENGTH:
            pending.append(ch)
            i += 1
            continue
        if 0x40 <= code <= 0x7E:
            raw = "".join(pending[2:])
            params = _parse_sgr_params(raw) if ch == "m" else None
            updated = apply_sgr(builder.style, params) if params is not None else None
            if updated is None:
                builder.write("".join(pending) + ch)
            else:
                builder.set_style(updated)
            pending = []
            state = _GROUND
            i += 1
            continue
        builder.write("".join(pending))
        pending = []
        state = _GROUND

    if pending:
        builder.write("".join(pending))
    return builder.finish(saw_any=n > 0)


def char_display_width(ch: str, col: int) -> int:
    """Return terminal column width for one character at visual column ``col``.

    Tabs expand to the next 8-column stop, combining marks consume no columns,
    and East Asian wide/fullwidth characters consume two.
    """
    if ch == "\t":
        return TAB_STOP - (col % TAB_STOP)
    if unicodedata.combining(ch):
        return 0
    if unicodedata.east_asian_width(ch) in {"W", "F"}:
        return 2
    return 1


def display_width(text: str) -> int:
    col = 0
    for ch in text:
        col += char_display_width(ch, col)
    return col


def sanitize_terminal_text(text: str) -> str:
    """Escape control bytes so literal escape text cannot drive the terminal."""
    if _CONTROL_RE.search(text) is None:
        return text
    return _CONTROL_RE.sub(lambda match: f"\\x{ord(match.group(0)):02x}", text)


def _color_sgr(color: Color, background: bool) -> str:
    if color[0] == "rgb":
        return f"{48 if background else 38};2;{color[1]};{color[2]};{color[3]}"
    n = color[1]
    if n < 8:
        return str((40 if background else 30) + n)
    if n < 16:
        return str((100 if background else 90) + n - 8)
    return f"{48 if background else 38};5;{n}"


def style_to_sgr(style: Style) -> str:
    """Return the escape sequence that selects ``style`` from a reset state."""
    params: list[str] = []
    if style.bold:
        params.append("1")
    if style.dim:
        params.append("2")
    if style.italic:
        params.append("3")
    if style.underline:
        params.append("4")
    if style.fg is not None:
        params.append(_color_sgr(style.fg, background=False))
    if style.bg is not None:
        params.append(_color_sgr(style.bg, background=True))
    if not params:
        return ""
    return f"\033[{';'.join(params)}m"


def slice_styled_line(line: StyledLine, start_cols: int, max_cols: int) -> list[StyledSpan]:
    """Return the spans visible in a horizontal viewport of ``line``.

    Tabs are expanded with column-accurate stops before slicing and control
    characters are made printable.
    """
    if max_cols <= 0:
        return []
    start_cols = max(0, start_cols)
    out: list[StyledSpan] = []
    col = 0
    shown = 0
    for span in line.spans:
        chunk: list[str] = []
        for ch in sanitize_terminal_text(span.text):
            w = char_display_width(ch, col)
            if col + w <= start_cols:
                col += w
                continue
            if ch == "\t":
                pad = min(w, col + w - start_cols, max_cols - shown)
                chunk.append(" " * pad)
                shown += pad
                col += w
            else:
                if shown + w > max_cols:
                    break
                if col < start_cols:
                    # Wide glyph straddles the viewport edge.
                    chunk.append(" ")
                    shown += 1
                else:
                    chunk.append(ch)
                    shown += w
                col += w
            if shown >= max_cols:
                break
        if chunk:
            out.append(StyledSpan("".join(chunk), span.style))
        if shown >= max_cols:
            break
    return out


def spans_to_ansi(spans: list[StyledSpan] | tuple[StyledSpan, ...]) -> str:
    """Serialize spans to terminal text, resetting after each styled span."""
    out: list[str] = []
    for span in spans:
        sgr = style_to_sgr(span.style)
        if sgr:
            out.append(f"{sgr}{span.text}\033[0m")
        else:
            out.append(span.text)
    return "".join(out)


def max_line_width(lines: list[StyledLine]) -> int:
    return max((display_width(line.text) for line in lines), default=0)
