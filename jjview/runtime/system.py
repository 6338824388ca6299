"""Desktop integration: clipboard and browser."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
import webbrowser
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


def clipboard_commands() -> list[list[str]]:
    if sys.platform == "darwin":
        return [["pbcopy"]]
    if os.name == "nt":
        return [["clip"]]
    return [
        ["wl-copy"],
        ["xclip", "-selection", "clipboard"],
        ["xsel", "--clipboard", "--input"],
    ]


def copy_text_to_clipboard(text: str) -> bool:
    """Best-effort clipboard copy across macOS, Windows, and common Linux tools."""
    if not text:
        return False
    for command in clipboard_commands():
        if shutil.which(command[0]) is None:
            continue
        try:
            proc = subprocess.run(command, input=text, text=True, check=False, timeout=5)
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("clipboard command %s failed: %s", command[0], exc)
            continue
        if proc.returncode == 0:
            return True
    return False


def open_url(url: str) -> bool:
    if not url:
        return False
    try:
        return webbrowser.open(url)
    except webbrowser.Error as exc:
        logger.warning("could not open %s: %s", url, exc)
        return False


@dataclass(frozen=True)
class SystemActions:
    """Side effects the engine triggers directly from the loop thread."""

    copy_to_clipboard: Callable[[str], bool] = copy_text_to_clipboard
    open_url: Callable[[str], bool] = open_url


__all__ = ["SystemActions", "clipboard_commands", "copy_text_to_clipboard", "open_url"]
