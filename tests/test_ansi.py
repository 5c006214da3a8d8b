"""Tests for ANSI parsing into styled lines and the screen helpers.

Covers SGR color/attribute handling, literal fallback for malformed or
unknown sequences, and width-aware slicing used by the diff pane.
"""

from __future__ import annotations

import unittest

from ftdv.ansi import (
    DEFAULT_STYLE,
    Style,
    StyledLine,
    StyledSpan,
    display_width,
    indexed,
    parse_ansi,
    plain_lines,
    rgb,
    sanitize_terminal_text,
    slice_styled_line,
    spans_to_ansi,
    style_to_sgr,
)


def _texts(lines: list[StyledLine]) -> list[str]:
    return [line.text for line in lines]


class ParseAnsiPlainTextTests(unittest.TestCase):
    def test_text_without_escapes_round_trips_with_default_style(self) -> None:
        raw = "diff --git a/x b/x\n-old line\n+new\tline\n"
        lines = parse_ansi(raw.encode("utf-8"))

        self.assertEqual(_texts(lines), raw.splitlines())
        for line in lines:
            for span in line.spans:
                self.assertEqual(span.style, DEFAULT_STYLE)

    def test_empty_input_yields_no_lines(self) -> None:
        self.assertEqual(parse_ansi(b""), [])

    def test_single_newline_yields_one_empty_line(self) -> None:
        lines = parse_ansi("\n")
        self.assertEqual(len(lines), 1)
        self.assertEqual(lines[0].text, "")

    def test_crlf_counts_as_one_break(self) -> None:
        self.assertEqual(_texts(parse_ansi("a\r\nb\r\n")), ["a", "b"])

    def test_invalid_utf8_is_replaced_not_raised(self) -> None:
        lines = parse_ansi(b"\xff\xfeok")
        self.assertEqual(len(lines), 1)
        self.assertTrue(lines[0].text.endswith("ok"))

    def test_plain_lines_does_not_interpret_escapes(self) -> None:
        lines = plain_lines("a\x1b[31mb\nc\n")
        self.assertEqual(_texts(lines), ["a\x1b[31mb", "c"])


class ParseAnsiSgrTests(unittest.TestCase):
    def test_basic_foreground_and_reset(self) -> None:
        lines = parse_ansi("\x1b[31mred\x1b[0m plain")

        self.assertEqual(
            lines[0].spans,
            (
                StyledSpan("red", Style(fg=indexed(1))),
                StyledSpan(" plain", DEFAULT_STYLE),
            ),
        )

    def test_bright_and_background_colors(self) -> None:
        lines = parse_ansi("\x1b[92;104mX")
        self.assertEqual(lines[0].spans[0].style, Style(fg=indexed(10), bg=indexed(12)))

    def test_256_and_truecolor_sequences(self) -> None:
        lines = parse_ansi("\x1b[38;5;208mX\x1b[48;2;1;2;3mY")

        self.assertEqual(lines[0].spans[0], StyledSpan("X", Style(fg=indexed(208))))
        self.assertEqual(lines[0].spans[1], StyledSpan("Y", Style(fg=indexed(208), bg=rgb(1, 2, 3))))

    def test_attribute_on_and_off_codes(self) -> None:
        lines = parse_ansi("\x1b[1;3;4mA\x1b[22;23;24mB")

        self.assertEqual(lines[0].spans[0].style, Style(bold=True, italic=True, underline=True))
        self.assertEqual(lines[0].spans[1].style, DEFAULT_STYLE)

    def test_empty_parameter_means_reset(self) -> None:
        lines = parse_ansi("\x1b[31mA\x1b[mB")
        self.assertEqual(lines[0].spans[1], StyledSpan("B", DEFAULT_STYLE))

    def test_default_color_codes_clear_only_their_channel(self) -> None:
        lines = parse_ansi("\x1b[31;42mA\x1b[39mB\x1b[49mC")

        self.assertEqual(lines[0].spans[1].style, Style(bg=indexed(2)))
        self.assertEqual(lines[0].spans[2].style, DEFAULT_STYLE)

    def test_style_carries_across_line_breaks(self) -> None:
        lines = parse_ansi("\x1b[32m+a\n+b\x1b[0m\n")

        self.assertEqual(lines[1].spans[0], StyledSpan("+b", Style(fg=indexed(2))))

    def test_unknown_sgr_codes_are_ignored(self) -> None:
        lines = parse_ansi("\x1b[5;7mblink")
        self.assertEqual(lines[0].spans, (StyledSpan("blink", DEFAULT_STYLE),))


class ParseAnsiMalformedTests(unittest.TestCase):
    def test_incomplete_extended_color_is_literal(self) -> None:
        lines = parse_ansi("\x1b[38;5mX")
        self.assertEqual(lines[0].text, "\x1b[38;5mX")

    def test_truncated_sequence_at_end_is_literal(self) -> None:
        lines = parse_ansi("abc\x1b[31")
        self.assertEqual(lines[0].text, "abc\x1b[31")

    def test_non_sgr_csi_is_literal(self) -> None:
        lines = parse_ansi("\x1b[2Kabc")
        self.assertEqual(lines[0].text, "\x1b[2Kabc")

    def test_escape_without_bracket_is_literal(self) -> None:
        lines = parse_ansi("\x1bXok")
        self.assertEqual(lines[0].text, "\x1bXok")

    def test_non_numeric_parameter_is_literal(self) -> None:
        lines = parse_ansi("\x1b[3?mZ")
        self.assertEqual(lines[0].text, "\x1b[3?mZ")

    def test_malformed_inputs_never_raise_and_yield_lines(self) -> None:
        samples = [
            b"\x1b",
            b"\x1b[",
            b"\x1b[38;2;1;2m",
            b"\x1b[" + b"1;" * 80 + b"m",
            b"\x1b[999999999999m",
            b"\x1b[\x1b[31mx",
            b"\r",
            b"\x00\x01\x02",
        ]
        for sample in samples:
            with self.subTest(sample=sample):
                lines = parse_ansi(sample)
                self.assertGreaterEqual(len(lines), 1)


class ScreenHelperTests(unittest.TestCase):
    def test_slice_styled_line_skips_and_limits_columns(self) -> None:
        spans = slice_styled_line(StyledLine.plain("abcdef"), 2, 3)
        self.assertEqual(spans, [StyledSpan("cde")])

    def test_slice_keeps_wide_glyphs_whole(self) -> None:
        spans = slice_styled_line(StyledLine.plain("中文"), 0, 3)
        self.assertEqual("".join(span.text for span in spans), "中")

    def test_slice_expands_tabs(self) -> None:
        spans = slice_styled_line(StyledLine.plain("\tx"), 0, 10)
        self.assertEqual("".join(span.text for span in spans), " " * 8 + "x")

    def test_slice_escapes_control_characters(self) -> None:
        spans = slice_styled_line(StyledLine.plain("a\x1b[2Kb"), 0, 40)
        self.assertEqual("".join(span.text for span in spans), "a\\x1b[2Kb")

    def test_sanitize_terminal_text_keeps_tab_and_newline(self) -> None:
        self.assertEqual(sanitize_terminal_text("a\tb\nc\x07"), "a\tb\nc\\x07")

    def test_display_width_counts_wide_characters(self) -> None:
        self.assertEqual(display_width("ab中"), 4)

    def test_style_to_sgr_and_spans_to_ansi(self) -> None:
        self.assertEqual(style_to_sgr(Style(bold=True, fg=indexed(9))), "\x1b[1;91m")
        self.assertEqual(style_to_sgr(Style(bg=rgb(1, 2, 3))), "\x1b[48;2;1;2;3m")
        self.assertEqual(style_to_sgr(Style(fg=indexed(208))), "\x1b[38;5;208m")
        self.assertEqual(
            spans_to_ansi([StyledSpan("r", Style(fg=indexed(1))), StyledSpan("x")]),
            "\x1b[31mr\x1b[0mx",
        )


if __name__ == "__main__":
    unittest.main()
