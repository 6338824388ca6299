"""Targeted tests for text sanitization and diff highlighting.

Ensures control bytes are escaped while standard whitespace is preserved.
"""

import unittest

from jjview.render.ansi import strip_ansi
from jjview.render.highlight import highlight_diff, sanitize_terminal_text

DIFF = """diff --git a/app.py b/app.py
--- a/app.py
+++ b/app.py
@@ -1,2 +1,2 @@
-print("old")
+print("new")
 x = 1
"""


class HighlightSanitizationTests(unittest.TestCase):
    def test_sanitize_terminal_text_escapes_control_bytes_but_keeps_common_whitespace(self) -> None:
        source = "a\tb\nc\rd\x07e\x1bf"
        sanitized = sanitize_terminal_text(source)

        self.assertEqual(sanitized, "a\tb\nc\rd\\x07e\\x1bf")
        self.assertNotIn("\x07", sanitized)
        self.assertNotIn("\x1b", sanitized)

    def test_plain_text_is_returned_unchanged(self) -> None:
        text = "nothing special here"
        self.assertIs(sanitize_terminal_text(text), text)


class HighlightDiffTests(unittest.TestCase):
    def test_color_off_returns_sanitized_lines(self) -> None:
        lines = highlight_diff(DIFF + "+bell\x07\n", color=False)

        self.assertEqual(lines[0], "diff --git a/app.py b/app.py")
        self.assertEqual(lines[-1], "+bell\\x07")

    def test_colored_output_keeps_the_text(self) -> None:
        lines = highlight_diff(DIFF)

        self.assertTrue(any("\x1b[" in line for line in lines))
        self.assertEqual([strip_ansi(line) for line in lines], DIFF.rstrip("\n").splitlines())

    def test_unknown_style_falls_back(self) -> None:
        self.assertTrue(highlight_diff(DIFF, style="no-such-style"))

    def test_empty_diff(self) -> None:
        self.assertEqual(highlight_diff(""), [])


if __name__ == "__main__":
    unittest.main()
