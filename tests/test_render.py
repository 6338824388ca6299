"""Frame composition: layout, click zones and action bars."""

from __future__ import annotations

import unittest

from jjview.engine.derive import derive_branch_assignments
from jjview.engine.state import AppState, Mode, View
from jjview.errors import ExternalToolFailure, NotManagedRepository
from jjview.models import ChangedFile, Commit, PullRequest, RepositorySnapshot
from jjview.render.graph import build_graph_rows, commit_actions, header_row_of, scroll_start
from jjview.render.screen import INIT_BUTTON, RenderOptions, render_frame


def _snapshot() -> RepositorySnapshot:
    return RepositorySnapshot.from_commits(
        [
            Commit(
                id="aaa111",
                change_id="kkaa",
                parents=("bbb222",),
                is_working=True,
                summary="add parser",
                graph_prefix="@",
                graph_lines=("│",),
            ),
            Commit(id="bbb222", change_id="kkbb", branches=("main",), immutable=True, summary="init", graph_prefix="◆"),
        ]
    )


def _render(state: AppState, width: int = 80, height: int = 20):
    return render_frame(state, RenderOptions(width=width, height=height, color=False))


def _column(line: str, text: str) -> int:
    return line.index(text)


class GraphViewRenderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.state = AppState(
            snapshot=_snapshot(),
            selected=0,
            status="Loaded 2 commits",
            changed_files=(ChangedFile("M", "src/parser.py"),),
        )

    def test_frame_has_exact_height_and_width(self) -> None:
        frame = _render(self.state)

        self.assertEqual(len(frame.lines), 20)
        self.assertTrue(all(len(line) == 80 for line in frame.lines))

    def test_tabs_are_clickable(self) -> None:
        frame = _render(self.state)
        col = _column(frame.lines[0], " PRs ")

        self.assertEqual(frame.zones.hit(col + 1, 0), "tab:prs")

    def test_commit_rows_carry_commit_zones_and_selection(self) -> None:
        frame = _render(self.state)

        self.assertTrue(frame.lines[1].startswith("> "))
        self.assertIn("kkaa", frame.lines[1])
        self.assertEqual(frame.zones.hit(5, 1), "commit:0")
        # connector row belongs to the commit above it
        self.assertEqual(frame.zones.hit(5, 2), "commit:0")
        self.assertEqual(frame.zones.hit(5, 3), "commit:1")

    def test_changed_files_are_listed_under_the_graph(self) -> None:
        self.assertIn("M src/parser.py", _render(self.state).text)

    def test_action_bar_lists_commit_actions_with_keys(self) -> None:
        frame = _render(self.state, width=160)
        bar = frame.lines[-2]

        self.assertIn("Edit (e)", bar)
        self.assertIn("Create PR [main] (c)", bar)
        self.assertEqual(frame.zones.hit(_column(bar, "Squash (s)"), len(frame.lines) - 2), "action:squash")

    def test_status_line_is_last(self) -> None:
        self.assertIn("Loaded 2 commits", _render(self.state).lines[-1])

    def test_tiny_terminal_keeps_status(self) -> None:
        frame = _render(self.state, height=3)

        self.assertEqual(len(frame.lines), 3)
        self.assertIn("Loaded 2 commits", frame.lines[-1])


class OtherViewRenderTests(unittest.TestCase):
    def test_pull_request_rows(self) -> None:
        state = AppState(
            view=View.PULL_REQUESTS,
            pull_requests=(PullRequest(42, "Add parser", "feature", url="https://github.com/o/r/pull/42"),),
        )

        frame = _render(state)

        self.assertIn("#42", frame.lines[1])
        self.assertIn("feature → main", frame.lines[1])
        self.assertEqual(frame.zones.hit(3, 1), "pr:0")
        self.assertIn("Merge (M)", frame.lines[-2])
        self.assertIn("Refresh (Ctrl+R)", frame.lines[-2])

    def test_help_lists_bindings(self) -> None:
        text = _render(AppState(view=View.HELP), height=60).text

        self.assertIn("Global", text)
        self.assertIn("Rebase commit and descendants", text)

    def test_empty_graph_message(self) -> None:
        self.assertIn("Loading commits", _render(AppState(loading=True)).text)


class OverlayRenderTests(unittest.TestCase):
    def test_not_managed_offers_init_button(self) -> None:
        state = AppState(error=NotManagedRepository("/tmp/x"), not_managed=True)

        frame = _render(state)
        row = next(index for index, line in enumerate(frame.lines) if INIT_BUTTON in line)

        self.assertEqual(frame.zones.hit(_column(frame.lines[row], INIT_BUTTON) + 1, row), "action:init_repo")
        self.assertEqual(frame.zones.hit(10, 0), "")
        self.assertIn("Retry (Ctrl+R)", frame.lines[-2])

    def test_tool_failure_shows_stderr(self) -> None:
        error = ExternalToolFailure("jj squash failed", command=("jj", "squash"), stderr="Error: nothing to squash")

        text = _render(AppState(error=error)).text

        self.assertIn("jj squash failed", text)
        self.assertIn("Error: nothing to squash", text)

    def test_rebase_mode_marks_source_and_destination(self) -> None:
        state = AppState(snapshot=_snapshot(), selected=1, mode=Mode.REBASE_DESTINATION)

        frame = render_frame(state, RenderOptions(width=100, height=20, color=False, rebase_source_index=0))

        self.assertIn("[rebase source]", frame.text)
        self.assertIn("[destination]", frame.text)
        self.assertIn("Rebase here (Enter)", frame.lines[-2])


class GraphHelperTests(unittest.TestCase):
    def test_header_rows_skip_connectors(self) -> None:
        rows = build_graph_rows(_snapshot(), color=False)

        self.assertEqual([row.header for row in rows], [True, False, True])
        self.assertEqual(header_row_of(rows, 1), 2)
        self.assertIsNone(header_row_of(rows, None))

    def test_scroll_start_centers_focus(self) -> None:
        self.assertEqual(scroll_start(100, 50, 10), 45)
        self.assertEqual(scroll_start(100, 2, 10), 0)
        self.assertEqual(scroll_start(100, 99, 10), 90)
        self.assertEqual(scroll_start(5, 4, 10), 0)

    def test_commit_actions(self) -> None:
        snapshot = _snapshot()
        working, root = snapshot.commits
        assignments = derive_branch_assignments(snapshot, {"main"})

        self.assertEqual(commit_actions(None), [("new", "New")])
        root_commands = [command for command, _ in commit_actions(root, assignments)]
        self.assertNotIn("edit", root_commands)
        self.assertIn("delete_bookmark", root_commands)
        self.assertIn(("update_pr", "Update PR [main]"), commit_actions(working, assignments))


if __name__ == "__main__":
    unittest.main()
