"""Command-line front door for jjview.

Parses CLI options, sets up file logging, resolves the repository path.
Then either prints one rendered frame or starts the interactive client.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .log import LOG_LEVELS, setup_logging
from .runtime import run_app
from .runtime.app import default_render_size, render_once

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jjview",
        description="Terminal client for jj repositories with pull requests and tickets.",
    )
    parser.add_argument("path", nargs="?", default=None, help="Repository path. Defaults to current directory.")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Log file verbosity (default: $JJVIEW_LOG_LEVEL or WARNING).",
    )
    parser.add_argument("--debug", action="store_true", help="Shorthand for --log-level DEBUG.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--no-color", action="store_true", help="Disable color output.")
    parser.add_argument("--render", action="store_true", help="Print the commit graph once and exit.")
    parser.add_argument(
        "--max-cols",
        type=_positive_int,
        default=None,
        help="Column width for --render output (default: terminal width).",
    )
    return parser


def main(argv: list[str] | None = None, default_path: Path | None = None) -> None:
    """Parse CLI arguments and launch jjview on a repository.

    ``default_path`` is primarily for tests; when omitted the current
    working directory is used.
    """
    args = build_parser().parse_args(argv)
    log_path = setup_logging(args.log_level, debug=args.debug)
    logger.info("jjview %s, log file %s", __version__, log_path)

    path = Path(args.path) if args.path is not None else (default_path or Path.cwd())
    if not path.exists():
        raise SystemExit(f"Path not found: {path}")
    if not path.is_dir():
        raise SystemExit(f"Not a directory: {path}")

    if args.render:
        width, height = default_render_size()
        if args.max_cols is not None:
            width = args.max_cols
        sys.stdout.write(render_once(path, width=width, height=height, color=not args.no_color))
        sys.stdout.write("\n")
        return

    run_app(path, no_color=args.no_color)


__all__ = ["build_parser", "main"]
