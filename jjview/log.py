"""File logging for the TUI.

The terminal belongs to the renderer, so log records go to
``user_log_dir("jjview")/jjview.log`` instead of stderr.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

from platformdirs import user_log_dir

LOG_LEVEL_ENV = "JJVIEW_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def default_log_path() -> Path:
    return Path(user_log_dir("jjview")) / "jjview.log"


def resolve_log_level(level: str | None = None, *, debug: bool = False) -> int:
    """Numeric level from ``--debug``, ``level``, ``JJVIEW_LOG_LEVEL`` then the default."""
    if debug:
        return logging.DEBUG
    name = (level or os.environ.get(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).strip().upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.WARNING


def setup_logging(
    level: str | None = None,
    *,
    debug: bool = False,
    path: Path | None = None,
) -> Path | None:
    """Attach a rotating file handler to the ``jjview`` logger.

    Returns the log file path, or ``None`` when the log directory cannot be
    created; logging is then left unconfigured rather than aborting startup.
    """
    target = path if path is not None else default_log_path()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(target, maxBytes=2_000_000, backupCount=2, encoding="utf-8")
    except OSError:
        return None
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger("jjview")
    for existing in list(root.handlers):
        if isinstance(existing, RotatingFileHandler):
            root.removeHandler(existing)
            existing.close()
    root.addHandler(handler)
    root.setLevel(resolve_log_level(level, debug=debug))
    root.propagate = False
    return target


__all__ = [
    "DEFAULT_LOG_LEVEL",
    "LOG_LEVELS",
    "LOG_LEVEL_ENV",
    "default_log_path",
    "resolve_log_level",
    "setup_logging",
]
