"""Main interactive event loop for the terminal UI.

Single-threaded: worker results arrive on a ``queue.Queue`` and are handled
here, between key reads, so the engine never sees concurrent calls.
"""

from __future__ import annotations

import logging
import queue
import shutil
from dataclasses import dataclass

from ..engine.controller import Engine
from ..input.keys import read_key
from ..messages import KeyPressed, Message
from ..render import RenderOptions, render_frame
from .terminal import TerminalController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuntimeLoopTiming:
    """Timing constants controlling interactive loop behavior."""

    key_timeout_ms: int = 120
    max_messages_per_iteration: int = 256


def drain_messages(engine: Engine, messages: queue.Queue[Message], limit: int) -> int:
    """Handle up to ``limit`` queued messages without blocking."""
    handled = 0
    while handled < limit:
        try:
            message = messages.get_nowait()
        except queue.Empty:
            break
        engine.handle(message)
        handled += 1
    return handled


def normalize_enter(key: str, skip_next_lf: bool) -> tuple[str | None, bool]:
    """Collapse CR, LF and CRLF into one ``ENTER``; returns ``(key, skip_next_lf)``.

    ``None`` means the key is the LF half of a CRLF pair and must be ignored.
    """
    if skip_next_lf and key == "ENTER_LF":
        return None, False
    if key == "ENTER_CR":
        return "ENTER", True
    if key == "ENTER_LF":
        return "ENTER", False
    return key, False


def render_if_dirty(
    engine: Engine,
    terminal: TerminalController,
    columns: int,
    lines: int,
    *,
    color: bool = True,
    force: bool = False,
) -> bool:
    state = engine.state
    if not (state.dirty or force):
        return False
    frame = render_frame(
        state,
        RenderOptions(
            width=columns,
            height=lines,
            color=color,
            busy=engine.busy,
            rebase_source_index=engine.machine.rebase_source_index(),
        ),
    )
    engine.zones = frame.zones
    terminal.write_frame(frame.lines)
    engine.state.dirty = False
    return True


def run_main_loop(
    engine: Engine,
    terminal: TerminalController,
    stdin_fd: int,
    messages: queue.Queue[Message],
    timing: RuntimeLoopTiming | None = None,
    *,
    color: bool = True,
) -> None:
    """Run the interactive loop until the engine requests quit.

    Each iteration drains worker results, fires due timers, repaints when
    the state changed, then waits briefly for one key.
    """
    timing = timing if timing is not None else RuntimeLoopTiming()
    skip_next_lf = False
    last_size: tuple[int, int] | None = None

    with terminal.raw_mode():
        while not engine.state.quit_requested:
            drain_messages(engine, messages, timing.max_messages_per_iteration)
            for message in engine.scheduler.poll():
                engine.handle(message)

            term = shutil.get_terminal_size((80, 24))
            size = (term.columns, term.lines)
            resized = size != last_size
            last_size = size
            engine.page_size = max(1, term.lines // 3)
            render_if_dirty(engine, terminal, term.columns, term.lines, color=color, force=resized)
            if engine.state.quit_requested:
                break

            try:
                key = read_key(stdin_fd, timeout_ms=timing.key_timeout_ms)
            except KeyboardInterrupt:
                continue
            if key == "":
                continue
            normalized, skip_next_lf = normalize_enter(key, skip_next_lf)
            if normalized is None:
                continue
            engine.handle(KeyPressed(normalized))
    logger.info("event loop finished")


__all__ = ["RuntimeLoopTiming", "drain_messages", "normalize_enter", "render_if_dirty", "run_main_loop"]
