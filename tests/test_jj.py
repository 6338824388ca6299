"""``JJService`` command construction and failure mapping (subprocess mocked)."""

from __future__ import annotations

import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from jjview.errors import ExternalToolFailure, NotManagedRepository
from jjview.vcs.jj import FALLBACK_REVSET, PRIMARY_REVSET, JJService, find_repo_root, jj_available
from jjview.vcs.parse import COMMIT_MARKER


def _completed(stdout: str = "", stderr: str = "", returncode: int = 0) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=["jj"], returncode=returncode, stdout=stdout, stderr=stderr)


class JJServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        (self.root / ".jj").mkdir()
        self.service = JJService(self.root)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _args(self, run: mock.Mock) -> list[list[str]]:
        return [call.args[0][3:] for call in run.call_args_list]

    def test_run_disables_color_and_uses_repo_root(self) -> None:
        with mock.patch("jjview.vcs.jj.subprocess.run", return_value=_completed("ok")) as run:
            self.assertEqual(self.service.run("status"), "ok")

        command = run.call_args.args[0]
        self.assertEqual(command, ["jj", "--color", "never", "status"])
        self.assertEqual(run.call_args.kwargs["cwd"], str(self.root))

    def test_non_zero_exit_raises_with_extracted_message(self) -> None:
        failed = _completed(stderr="Error: Commit 1234 is immutable\nHint: nope\n", returncode=1)
        with mock.patch("jjview.vcs.jj.subprocess.run", return_value=failed):
            with self.assertRaises(ExternalToolFailure) as ctx:
                self.service.edit("1234")

        self.assertEqual(str(ctx.exception), "Commit 1234 is immutable")
        self.assertIn("Hint: nope", ctx.exception.stderr)

    def test_missing_binary_is_reported(self) -> None:
        with mock.patch("jjview.vcs.jj.subprocess.run", side_effect=FileNotFoundError("jj")):
            with self.assertRaises(ExternalToolFailure) as ctx:
                self.service.undo()

        self.assertIn("jj command not found", str(ctx.exception))

    def test_snapshot_falls_back_when_main_at_origin_is_unknown(self) -> None:
        record = "@  " + COMMIT_MARKER + "aaa|111|me|now|work|||true|false|false|false"
        responses = [_completed(stderr="Error: Revision `main@origin` doesn't exist", returncode=1), _completed(record)]
        with mock.patch("jjview.vcs.jj.subprocess.run", side_effect=responses) as run:
            snapshot = self.service.load_snapshot()

        revsets = [args[2] for args in self._args(run)]
        self.assertEqual(revsets, [PRIMARY_REVSET, FALLBACK_REVSET])
        self.assertEqual(snapshot.commits[0].change_id, "aaa")

    def test_snapshot_outside_repository_is_not_managed(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch("jjview.vcs.jj.subprocess.run") as run:
                with self.assertRaises(NotManagedRepository):
                    JJService(Path(tmp)).load_snapshot()

        run.assert_not_called()

    def test_rebase_moves_descendants_with_source_flag(self) -> None:
        with mock.patch("jjview.vcs.jj.subprocess.run", return_value=_completed()) as run:
            self.service.rebase("src", "dst")

        self.assertEqual(self._args(run), [["rebase", "-s", "src", "-d", "dst"]])

    def test_squash_combines_descriptions(self) -> None:
        responses = [_completed("child message\n"), _completed("parent message\n"), _completed()]
        with mock.patch("jjview.vcs.jj.subprocess.run", side_effect=responses) as run:
            self.service.squash("abc")

        self.assertEqual(self._args(run)[-1], ["squash", "-r", "abc", "-m", "parent message\n\nchild message"])

    def test_push_allows_new_bookmarks(self) -> None:
        with mock.patch("jjview.vcs.jj.subprocess.run", return_value=_completed()) as run:
            self.service.push_bookmark("feature")

        self.assertEqual(self._args(run), [["git", "push", "--bookmark", "feature", "--allow-new"]])

    def test_branch_from_main_reuses_non_empty_work(self) -> None:
        responses = [_completed("zzz\n"), _completed("false"), _completed()]
        with mock.patch("jjview.vcs.jj.subprocess.run", side_effect=responses) as run:
            self.service.create_branch_from_main("PROJ-1-fix")

        self.assertEqual(self._args(run)[-1], ["bookmark", "create", "PROJ-1-fix", "-r", "zzz"])

    def test_branch_from_main_starts_new_commit_otherwise(self) -> None:
        responses = [_completed("\n"), _completed(), _completed()]
        with mock.patch("jjview.vcs.jj.subprocess.run", side_effect=responses) as run:
            self.service.create_branch_from_main("PROJ-1-fix")

        self.assertEqual(
            self._args(run)[1:],
            [["new", "main@origin"], ["bookmark", "create", "PROJ-1-fix", "-r", "@"]],
        )

    def test_init_tolerates_missing_main_at_origin(self) -> None:
        responses = [_completed(), _completed(stderr="Error: No such remote bookmark", returncode=1)]
        with mock.patch("jjview.vcs.jj.subprocess.run", side_effect=responses) as run:
            self.service.init()

        self.assertEqual(self._args(run)[0], ["git", "init"])

    def test_remote_url_requires_a_remote(self) -> None:
        with mock.patch("jjview.vcs.jj.subprocess.run", return_value=_completed("")):
            with self.assertRaises(ExternalToolFailure):
                self.service.remote_url()


class FindRepoRootTests(unittest.TestCase):
    def test_walks_parents(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / ".jj").mkdir()
            nested = root / "a" / "b"
            nested.mkdir(parents=True)

            self.assertEqual(find_repo_root(nested), root)


@unittest.skipUnless(jj_available(), "jj binary not installed")
class RealJJTests(unittest.TestCase):
    def test_init_and_snapshot(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            service = JJService(Path(tmp))
            service.run("git", "init")
            snapshot = service.load_snapshot()

        self.assertTrue(any(commit.is_working for commit in snapshot.commits))


if __name__ == "__main__":
    unittest.main()
