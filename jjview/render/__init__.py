"""Frame composition for the terminal UI."""

from __future__ import annotations

from .screen import Frame, RenderOptions, render_frame

__all__ = ["Frame", "RenderOptions", "render_frame"]
