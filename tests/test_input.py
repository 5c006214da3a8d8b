"""Key decoding tests driven through a pipe."""

from __future__ import annotations

import os
import unittest

from ftdv import input as key_input
from ftdv.input import read_key


class ReadKeyTests(unittest.TestCase):
    def setUp(self) -> None:
        self.read_fd, self.write_fd = os.pipe()
        self.addCleanup(os.close, self.read_fd)
        self.addCleanup(os.close, self.write_fd)
        key_input._PENDING_BYTES.clear()
        self.addCleanup(key_input._PENDING_BYTES.clear)

    def _keys(self, data: bytes, count: int = 1) -> list[str]:
        os.write(self.write_fd, data)
        return [read_key(self.read_fd, timeout_ms=50) for _ in range(count)]

    def test_nothing_pending_times_out_empty(self) -> None:
        self.assertEqual(read_key(self.read_fd, timeout_ms=0), "")

    def test_control_keys(self) -> None:
        self.assertEqual(
            self._keys(b"\t\x7f\x08\r\n\x03", 6),
            ["TAB", "BACKSPACE", "BACKSPACE", "ENTER_CR", "ENTER_LF", "CTRL_C"],
        )

    def test_printable_and_utf8_characters(self) -> None:
        self.assertEqual(self._keys("q/é漢".encode("utf-8"), 4), ["q", "/", "é", "漢"])

    def test_arrow_and_navigation_sequences(self) -> None:
        data = b"\x1b[A\x1b[B\x1b[C\x1b[D\x1b[H\x1b[F\x1bOA\x1bOH"
        self.assertEqual(
            self._keys(data, 8),
            ["UP", "DOWN", "RIGHT", "LEFT", "HOME", "END", "UP", "HOME"],
        )

    def test_tilde_sequences(self) -> None:
        data = b"\x1b[5~\x1b[6~\x1b[3~\x1b[1~\x1b[4~\x1b[7~\x1b[8~"
        self.assertEqual(
            self._keys(data, 7),
            ["PAGE_UP", "PAGE_DOWN", "DELETE", "HOME", "END", "HOME", "END"],
        )

    def test_modified_arrow_keeps_direction(self) -> None:
        self.assertEqual(self._keys(b"\x1b[1;5C"), ["RIGHT"])

    def test_lone_escape(self) -> None:
        self.assertEqual(self._keys(b"\x1b"), ["ESC"])

    def test_escape_followed_by_key_keeps_the_key(self) -> None:
        self.assertEqual(self._keys(b"\x1bq", 2), ["ESC", "q"])

    def test_unknown_sequence_is_escape(self) -> None:
        self.assertEqual(self._keys(b"\x1b[99~"), ["ESC"])


if __name__ == "__main__":
    unittest.main()
