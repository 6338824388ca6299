"""Regression tests for ANSI-aware width, clipping and padding.

These primitives decide where click zones land, so widths must ignore
escape sequences and count wide characters twice.
"""

import unittest

from jjview.render import ansi as ansi_mod


class DisplayWidthTests(unittest.TestCase):
    def test_escape_sequences_have_no_width(self) -> None:
        self.assertEqual(ansi_mod.display_width("\x1b[31mab\x1b[0m"), 2)

    def test_wide_and_combining_characters(self) -> None:
        self.assertEqual(ansi_mod.display_width("日本"), 4)
        self.assertEqual(ansi_mod.display_width("é"), 1)

    def test_tabs_expand_to_the_next_stop(self) -> None:
        self.assertEqual(ansi_mod.display_width("ab\tc"), 9)


class ClipAndPadTests(unittest.TestCase):
    def test_clip_plain_text(self) -> None:
        self.assertEqual(ansi_mod.clip_ansi_line("abcdef", 3), "abc")
        self.assertEqual(ansi_mod.clip_ansi_line("abc", 0), "")

    def test_clip_styled_text_resets_at_the_end(self) -> None:
        clipped = ansi_mod.clip_ansi_line("\x1b[1mabcdef\x1b[0m", 2)

        self.assertEqual(clipped, "\x1b[1mab" + ansi_mod.RESET)

    def test_wide_character_that_does_not_fit_is_dropped(self) -> None:
        self.assertEqual(ansi_mod.clip_ansi_line("a日", 2), "a")

    def test_pad_fills_to_width(self) -> None:
        self.assertEqual(ansi_mod.pad_ansi_line("ab", 4), "ab  ")
        self.assertEqual(ansi_mod.pad_ansi_line("abcdef", 4), "abcd")

    def test_paint_respects_color_flag(self) -> None:
        self.assertEqual(ansi_mod.paint("x", ansi_mod.RED, color=False), "x")
        self.assertEqual(ansi_mod.paint("x", ansi_mod.RED), "\x1b[31mx\x1b[0m")
        self.assertEqual(ansi_mod.paint("", ansi_mod.RED), "")


if __name__ == "__main__":
    unittest.main()
