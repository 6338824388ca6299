"""Deadline-based timers polled by the event loop.

Timers never own threads; ``poll`` returns the tick messages whose deadline
has passed, and every fired timer is rescheduled before returning.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from ..messages import LoginPollDue, Message, PullRequestTick, Tick
from .state import AppState

logger = logging.getLogger(__name__)

GRAPH_REFRESH_SECONDS = 2.0


def silent_refresh_allowed(state: AppState) -> bool:
    """Whether a scheduler tick may start a Silent reconciliation now."""
    if state.error is not None or state.modal_active or state.not_managed:
        return False
    return not state.loading


class AutoRefreshScheduler:
    def __init__(
        self,
        *,
        graph_interval: float = GRAPH_REFRESH_SECONDS,
        pr_interval: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self.graph_interval = graph_interval
        now = clock()
        self._next_tick = now + graph_interval
        self.pr_interval = 0.0
        self._next_pr_tick: float | None = None
        self._next_login_poll: float | None = None
        self.set_pr_interval(pr_interval)

    def set_pr_interval(self, seconds: float) -> None:
        """Change the PR-list period; ``0`` disables the timer."""
        self.pr_interval = max(0.0, float(seconds))
        self._next_pr_tick = self._clock() + self.pr_interval if self.pr_interval > 0 else None

    def schedule_login_poll(self, seconds: float) -> None:
        self._next_login_poll = self._clock() + max(0.0, seconds)

    def cancel_login_poll(self) -> None:
        self._next_login_poll = None

    @property
    def login_poll_pending(self) -> bool:
        return self._next_login_poll is not None

    def poll(self) -> list[Message]:
        now = self._clock()
        fired: list[Message] = []
        if now >= self._next_tick:
            fired.append(Tick())
            self._next_tick = now + self.graph_interval
        if self._next_pr_tick is not None and now >= self._next_pr_tick:
            fired.append(PullRequestTick())
            self._next_pr_tick = now + self.pr_interval
        if self._next_login_poll is not None and now >= self._next_login_poll:
            # One-shot: the next poll is scheduled from the poll result.
            fired.append(LoginPollDue())
            self._next_login_poll = None
        return fired


__all__ = ["AutoRefreshScheduler", "GRAPH_REFRESH_SECONDS", "silent_refresh_allowed"]
