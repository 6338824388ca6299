"""Parsing of templated ``jj`` output into snapshots."""

from __future__ import annotations

import unittest

from jjview.vcs.parse import (
    COMMIT_MARKER,
    NO_DESCRIPTION,
    normalize_bookmarks,
    parse_changed_files,
    parse_commit_record,
    parse_log_output,
    parse_remote_list,
)


def _record(
    change_id: str,
    commit_id: str,
    summary: str = "work",
    parents: str = "",
    bookmarks: str = "",
    working: str = "false",
    conflict: str = "false",
    immutable: str = "false",
    divergent: str = "false",
) -> str:
    fields = [
        change_id,
        commit_id,
        "dev@example.com",
        "2024-05-01 10:00:00",
        summary,
        parents,
        bookmarks,
        working,
        conflict,
        immutable,
        divergent,
    ]
    return COMMIT_MARKER + "|".join(fields)


class NormalizeBookmarksTests(unittest.TestCase):
    def test_strips_remote_suffix_and_conflict_star(self) -> None:
        self.assertEqual(normalize_bookmarks("main@origin,feature*,main"), ("main", "feature"))

    def test_empty_input_has_no_bookmarks(self) -> None:
        self.assertEqual(normalize_bookmarks(""), ())


class ParseCommitRecordTests(unittest.TestCase):
    def test_summary_may_contain_pipes(self) -> None:
        commit = parse_commit_record(_record("abc", "111", summary="a | b | c")[len(COMMIT_MARKER) :])

        assert commit is not None
        self.assertEqual(commit.summary, "a | b | c")
        self.assertEqual(commit.change_id, "abc")
        self.assertEqual(commit.id, "111")

    def test_flags_and_parents(self) -> None:
        raw = _record("abc", "111", parents="p1,p2", working="true", conflict="true", immutable="true", divergent="true")
        commit = parse_commit_record(raw[len(COMMIT_MARKER) :])

        assert commit is not None
        self.assertEqual(commit.parents, ("p1", "p2"))
        self.assertTrue(commit.is_working)
        self.assertTrue(commit.conflicted)
        self.assertTrue(commit.immutable)
        self.assertTrue(commit.divergent)

    def test_blank_summary_falls_back_to_placeholder(self) -> None:
        commit = parse_commit_record(_record("abc", "111", summary=" ")[len(COMMIT_MARKER) :])

        assert commit is not None
        self.assertEqual(commit.summary, NO_DESCRIPTION)

    def test_truncated_record_is_rejected(self) -> None:
        self.assertIsNone(parse_commit_record("abc|111|who"))


class ParseLogOutputTests(unittest.TestCase):
    def test_graph_art_and_connectors_are_kept(self) -> None:
        output = "\n".join(
            [
                "@  " + _record("aaa", "111", parents="222", working="true"),
                "│",
                "○  " + _record("bbb", "222", parents="333", bookmarks="feature"),
                "◆  " + _record("ccc", "333", immutable="true", bookmarks="main@origin"),
                "~",
            ]
        )

        snapshot = parse_log_output(output)

        self.assertEqual([c.change_id for c in snapshot.commits], ["aaa", "bbb", "ccc"])
        self.assertEqual(snapshot.commits[0].graph_prefix, "@")
        self.assertEqual(snapshot.commits[0].graph_lines, ("│",))
        self.assertEqual(snapshot.commits[2].graph_lines, ("~",))
        self.assertEqual(snapshot.commits[2].branches, ("main",))
        self.assertEqual(snapshot.children["222"], ("111",))
        self.assertTrue(snapshot.commits[0].is_working)

    def test_empty_output_gives_empty_snapshot(self) -> None:
        self.assertEqual(len(parse_log_output("")), 0)


class ParseSmallOutputsTests(unittest.TestCase):
    def test_changed_files(self) -> None:
        files = parse_changed_files("M src/app.py\nA docs/new file.md\n\n")

        self.assertEqual([(f.status, f.path) for f in files], [("M", "src/app.py"), ("A", "docs/new file.md")])

    def test_remote_list_prefers_origin(self) -> None:
        output = "upstream https://github.com/up/repo.git\norigin git@github.com:me/repo.git\n"

        self.assertEqual(parse_remote_list(output), "git@github.com:me/repo.git")

    def test_remote_list_falls_back_to_first_remote(self) -> None:
        self.assertEqual(parse_remote_list("fork https://example.com/x.git\n"), "https://example.com/x.git")
        self.assertEqual(parse_remote_list(""), "")


if __name__ == "__main__":
    unittest.main()
