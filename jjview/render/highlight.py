"""Diff highlighting for the detail pane.

Control bytes are neutralized before highlighting so a diff can never move
the cursor or ring the bell.
"""

from __future__ import annotations

import functools
import re

from pygments import highlight
from pygments.formatters import TerminalFormatter
from pygments.lexers import DiffLexer
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

DEFAULT_STYLE = "monokai"

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")


def sanitize_terminal_text(source: str) -> str:
    """Escape terminal control bytes to avoid side effects (bell, cursor moves, etc.)."""
    if _CONTROL_RE.search(source) is None:
        return source
    return _CONTROL_RE.sub(lambda match: f"\\x{ord(match.group(0)):02x}", source)


@functools.lru_cache(maxsize=8)
def _formatter(style: str) -> TerminalFormatter:
    try:
        get_style_by_name(style)
    except ClassNotFound:
        style = DEFAULT_STYLE
    return TerminalFormatter(style=style)


def highlight_diff(text: str, *, style: str = DEFAULT_STYLE, color: bool = True) -> list[str]:
    """Return the display lines of a git-format diff, colored unless ``color`` is off."""
    if not text:
        return []
    clean = sanitize_terminal_text(text)
    if not color:
        return clean.splitlines()
    rendered = highlight(clean, DiffLexer(), _formatter(style))
    return rendered.rstrip("\n").splitlines()


__all__ = ["DEFAULT_STYLE", "highlight_diff", "sanitize_terminal_text"]
