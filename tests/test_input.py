"""Regression tests for raw-key decoding and key-combo dispatch.

Covers ESC timing, CSI and SGR mouse sequences, and control-key token mapping.
"""

import os
import time
import unittest

from jjview.input import keys as keys_mod
from jjview.input.bindings import BINDINGS, CONTEXT_ERROR, CONTEXT_GRAPH, bindings_for, key_label
from jjview.input.key_registry import KeyComboBinding, KeyComboRegistry


class ReadKeyTests(unittest.TestCase):
    def setUp(self) -> None:
        keys_mod._PENDING_BYTES.clear()
        self.read_fd, self.write_fd = os.pipe()

    def tearDown(self) -> None:
        keys_mod._PENDING_BYTES.clear()
        os.close(self.read_fd)
        os.close(self.write_fd)

    def _keys(self, data: bytes, count: int = 1) -> list[str]:
        os.write(self.write_fd, data)
        return [keys_mod.read_key(self.read_fd, timeout_ms=20) for _ in range(count)]

    def test_single_escape_returns_esc_without_second_keypress(self) -> None:
        started = time.monotonic()
        (key,) = self._keys(b"\x1b")
        elapsed = time.monotonic() - started

        self.assertEqual(key, "ESC")
        self.assertLess(elapsed, 0.2)

    def test_timeout_without_input_returns_empty(self) -> None:
        self.assertEqual(keys_mod.read_key(self.read_fd, timeout_ms=5), "")

    def test_escape_followed_by_text_keeps_the_text(self) -> None:
        self.assertEqual(self._keys(b"\x1bq", 2), ["ESC", "q"])

    def test_control_keys(self) -> None:
        self.assertEqual(
            self._keys(b"\x13\x12\t\x7f\r\n", 6),
            ["CTRL_S", "CTRL_R", "TAB", "BACKSPACE", "ENTER_CR", "ENTER_LF"],
        )

    def test_csi_sequences(self) -> None:
        self.assertEqual(
            self._keys(b"\x1b[A\x1b[B\x1b[Z\x1b[5~\x1b[3~", 5),
            ["UP", "DOWN", "SHIFT_TAB", "PAGE_UP", "DELETE"],
        )

    def test_utf8_text_is_one_token(self) -> None:
        self.assertEqual(self._keys("é".encode("utf-8")), ["é"])

    def test_sgr_mouse_events(self) -> None:
        self.assertEqual(
            self._keys(b"\x1b[<0;12;5M\x1b[<0;12;5m\x1b[<64;3;4M\x1b[<65;3;4M\x1b[<2;1;1M", 5),
            [
                "MOUSE_LEFT_DOWN:12:5",
                "MOUSE_LEFT_UP:12:5",
                "MOUSE_WHEEL_UP:3:4",
                "MOUSE_WHEEL_DOWN:3:4",
                "MOUSE",
            ],
        )

    def test_parse_mouse_col_row(self) -> None:
        self.assertEqual(keys_mod.parse_mouse_col_row("MOUSE_LEFT_DOWN:12:5"), (12, 5))
        self.assertEqual(keys_mod.parse_mouse_col_row("MOUSE"), (None, None))
        self.assertEqual(keys_mod.parse_mouse_col_row("MOUSE_LEFT_DOWN:x:5"), (None, None))


class KeyComboRegistryTests(unittest.TestCase):
    def test_dispatch_invokes_bound_handler(self) -> None:
        calls: list[str] = []
        registry = KeyComboRegistry("graph").register_bindings(
            KeyComboBinding(("j", "DOWN"), lambda: calls.append("down")),
            KeyComboBinding(("k",), lambda: calls.append("up")),
        )

        self.assertTrue(registry.dispatch("DOWN"))
        self.assertTrue(registry.dispatch("k"))
        self.assertFalse(registry.dispatch("z"))
        self.assertEqual(calls, ["down", "up"])
        self.assertIn("j", registry)

    def test_from_bindings_requires_every_command(self) -> None:
        with self.assertRaises(KeyError):
            KeyComboRegistry.from_bindings(CONTEXT_GRAPH, BINDINGS, {})

    def test_from_bindings_only_takes_its_context(self) -> None:
        commands = {binding.command: (lambda: None) for binding in BINDINGS}
        registry = KeyComboRegistry.from_bindings(CONTEXT_ERROR, BINDINGS, commands)

        self.assertIn("i", registry)
        self.assertNotIn("j", registry)


class BindingTableTests(unittest.TestCase):
    def test_keys_are_unique_within_a_context(self) -> None:
        contexts = {binding.context for binding in BINDINGS}
        for context in contexts:
            keys = [key for binding in bindings_for(context) for key in binding.keys]
            with self.subTest(context=context):
                self.assertEqual(len(keys), len(set(keys)))

    def test_key_labels(self) -> None:
        self.assertEqual(key_label("CTRL_S"), "Ctrl+S")
        self.assertEqual(key_label("ENTER"), "Enter")
        self.assertEqual(key_label("x"), "x")


if __name__ == "__main__":
    unittest.main()
