"""Terminal session, event loop, and application wiring.

Entry points are imported lazily so that ``jjview.engine`` can depend on
``runtime.system`` without pulling in the whole bootstrap.
"""

from __future__ import annotations


def run_app(*args, **kwargs):
    """Lazily import the application entrypoint."""
    from .app import run_app as _run_app

    return _run_app(*args, **kwargs)


def run_main_loop(*args, **kwargs):
    """Lazily import the loop runner to avoid package-import cycles."""
    from .loop import run_main_loop as _run_main_loop

    return _run_main_loop(*args, **kwargs)


__all__ = ["run_app", "run_main_loop"]
