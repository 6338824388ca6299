"""CLI argument and default-path behavior tests.

Verifies how ``jjview.cli.main`` chooses the repository path and whether it
renders once or starts the interactive client.
"""

from __future__ import annotations

import io
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from jjview import cli


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch("jjview.cli.setup_logging", return_value=None)
        self.setup_logging = patcher.start()
        self.addCleanup(patcher.stop)

    def test_main_defaults_to_current_working_directory_when_no_path_arg(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            previous_cwd = Path.cwd()
            try:
                os.chdir(root)
                with mock.patch("jjview.cli.run_app") as run_app:
                    cli.main([])
            finally:
                os.chdir(previous_cwd)

        run_app.assert_called_once()
        (path,) = run_app.call_args.args
        self.assertEqual(path.resolve(), root)
        self.assertEqual(run_app.call_args.kwargs, {"no_color": False})

    def test_main_uses_explicit_path_argument_over_default(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch("jjview.cli.run_app") as run_app:
                cli.main([tmp, "--no-color"], default_path=Path("/unused"))

        self.assertEqual(run_app.call_args.args[0], Path(tmp))
        self.assertTrue(run_app.call_args.kwargs["no_color"])

    def test_missing_path_exits(self) -> None:
        with mock.patch("jjview.cli.run_app") as run_app, self.assertRaises(SystemExit) as ctx:
            cli.main(["/definitely/not/here"])

        self.assertIn("Path not found", str(ctx.exception))
        run_app.assert_not_called()

    def test_file_path_exits(self) -> None:
        with tempfile.NamedTemporaryFile() as handle, self.assertRaises(SystemExit) as ctx:
            cli.main([handle.name])

        self.assertIn("Not a directory", str(ctx.exception))

    def test_render_prints_one_frame(self) -> None:
        with tempfile.TemporaryDirectory() as tmp, mock.patch(
            "jjview.cli.render_once", return_value="frame"
        ) as render_once, mock.patch("jjview.cli.default_render_size", return_value=(100, 30)), mock.patch(
            "sys.stdout", new_callable=io.StringIO
        ) as stdout:
            cli.main([tmp, "--render", "--max-cols", "60"])

        render_once.assert_called_once_with(Path(tmp), width=60, height=30, color=True)
        self.assertEqual(stdout.getvalue(), "frame\n")

    def test_log_level_options_reach_logging_setup(self) -> None:
        with tempfile.TemporaryDirectory() as tmp, mock.patch("jjview.cli.run_app"):
            cli.main([tmp, "--log-level", "info", "--debug"])

        self.setup_logging.assert_called_once_with("INFO", debug=True)

    def test_max_cols_must_be_positive(self) -> None:
        with mock.patch("sys.stderr", new_callable=io.StringIO), self.assertRaises(SystemExit):
            cli.build_parser().parse_args(["--max-cols", "0"])


if __name__ == "__main__":
    unittest.main()
