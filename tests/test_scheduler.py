from __future__ import annotations

import unittest

from jjview.engine.scheduler import AutoRefreshScheduler, silent_refresh_allowed
from jjview.engine.state import AppState, Mode
from jjview.errors import ExternalToolFailure
from jjview.messages import LoginPollDue, PullRequestTick, Tick


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class SchedulerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()

    def test_graph_tick_fires_on_deadline_and_reschedules(self) -> None:
        scheduler = AutoRefreshScheduler(graph_interval=2.0, clock=self.clock)

        self.assertEqual(scheduler.poll(), [])
        self.clock.now += 2.0
        self.assertEqual(scheduler.poll(), [Tick()])
        self.assertEqual(scheduler.poll(), [])
        self.clock.now += 2.0
        self.assertEqual(scheduler.poll(), [Tick()])

    def test_pr_timer_is_off_when_interval_is_zero(self) -> None:
        scheduler = AutoRefreshScheduler(graph_interval=1000.0, clock=self.clock)
        self.clock.now += 500.0
        self.assertEqual(scheduler.poll(), [])

        scheduler.set_pr_interval(120)
        self.clock.now += 120.0
        self.assertEqual(scheduler.poll(), [PullRequestTick()])

    def test_login_poll_is_one_shot_and_cancellable(self) -> None:
        scheduler = AutoRefreshScheduler(graph_interval=1000.0, clock=self.clock)
        scheduler.schedule_login_poll(5)
        self.assertTrue(scheduler.login_poll_pending)

        self.clock.now += 5.0
        self.assertEqual(scheduler.poll(), [LoginPollDue()])
        self.assertFalse(scheduler.login_poll_pending)

        scheduler.schedule_login_poll(5)
        scheduler.cancel_login_poll()
        self.clock.now += 10.0
        self.assertEqual(scheduler.poll(), [])


class SilentRefreshGateTests(unittest.TestCase):
    def test_gate(self) -> None:
        self.assertTrue(silent_refresh_allowed(AppState()))
        self.assertFalse(silent_refresh_allowed(AppState(error=ExternalToolFailure("x"))))
        self.assertFalse(silent_refresh_allowed(AppState(mode=Mode.SETTINGS)))
        self.assertFalse(silent_refresh_allowed(AppState(loading=True)))
        self.assertFalse(silent_refresh_allowed(AppState(not_managed=True)))
        self.assertTrue(silent_refresh_allowed(AppState(mode=Mode.REBASE_DESTINATION)))


if __name__ == "__main__":
    unittest.main()
