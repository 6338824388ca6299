"""Tests for terminal mode control sequences and frame output.

Verifies raw-mode lifecycle safety and the escape payloads the runtime
loop relies on.
"""

from __future__ import annotations

import termios
import unittest
from unittest import mock

from jjview.runtime.terminal import TerminalController


class TerminalBehaviorTests(unittest.TestCase):
    def _controller(self) -> TerminalController:
        with mock.patch("jjview.runtime.terminal.termios.tcgetattr", return_value=[0]):
            return TerminalController(stdin_fd=0, stdout_fd=1)

    def test_enable_and_disable_tui_mode_use_alternate_screen_sequences(self) -> None:
        saved_state = [1, 2, 3]

        with mock.patch("jjview.runtime.terminal.termios.tcgetattr", return_value=saved_state), mock.patch(
            "jjview.runtime.terminal.tty.setraw"
        ) as setraw_mock, mock.patch("jjview.runtime.terminal.os.write") as write_mock, mock.patch(
            "jjview.runtime.terminal.termios.tcsetattr"
        ) as setattr_mock:
            controller = TerminalController(stdin_fd=0, stdout_fd=1)
            controller.enable_tui_mode()
            controller.disable_tui_mode()

        setraw_mock.assert_called_once_with(0, termios.TCSAFLUSH)
        self.assertEqual(
            write_mock.call_args_list[0].args,
            (1, b"\x1b[?1049h\x1b[?25l\x1b[?1000h\x1b[?1002h\x1b[?1006h"),
        )
        self.assertEqual(
            write_mock.call_args_list[1].args,
            (1, b"\x1b[?1000l\x1b[?1002l\x1b[?1006l\x1b[?25h\x1b[?1049l"),
        )
        setattr_mock.assert_called_once_with(0, termios.TCSAFLUSH, saved_state)

    def test_raw_mode_restores_terminal_after_exception(self) -> None:
        controller = self._controller()

        with mock.patch.object(controller, "enable_tui_mode") as enable_mock, mock.patch.object(
            controller, "disable_tui_mode"
        ) as disable_mock:
            with self.assertRaises(RuntimeError):
                with controller.raw_mode():
                    raise RuntimeError("boom")

        enable_mock.assert_called_once()
        disable_mock.assert_called_once()

    def test_set_mouse_reporting_toggles_and_is_idempotent(self) -> None:
        controller = self._controller()
        with mock.patch("jjview.runtime.terminal.os.write") as write_mock:
            controller.set_mouse_reporting(False)
            controller.set_mouse_reporting(True)
            controller.set_mouse_reporting(True)
            controller.set_mouse_reporting(False)

        self.assertEqual(
            write_mock.call_args_list,
            [
                mock.call(1, b"\x1b[?1000h\x1b[?1002h\x1b[?1006h"),
                mock.call(1, b"\x1b[?1000l\x1b[?1002l\x1b[?1006l"),
            ],
        )

    def test_write_frame_homes_clears_and_joins_rows(self) -> None:
        controller = self._controller()
        with mock.patch("jjview.runtime.terminal.os.write") as write_mock:
            controller.write_frame(["one", "twö"])

        write_mock.assert_called_once_with(1, "\033[H\033[Jone\r\ntwö".encode("utf-8"))


if __name__ == "__main__":
    unittest.main()
