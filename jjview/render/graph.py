"""Commit graph rows: jj's own graph art followed by a one-line summary."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ..engine.derive import ACTION_UPDATE_PR, BranchAssignments
from ..models import Commit, PullRequest, RepositorySnapshot
from .ansi import BLUE, BOLD, CYAN, DIM, GRAY, GREEN, MAGENTA, RED, YELLOW, paint

SELECTED_MARKER = "► "


@dataclass(frozen=True)
class GraphRow:
    text: str
    commit_index: int
    header: bool = True


def node_marker(commit: Commit) -> str:
    if commit.is_working:
        return "@"
    if commit.immutable:
        return "◆"
    return "○"


def commit_label(
    commit: Commit,
    *,
    pr_numbers: dict[str, int] | None = None,
    rebase_source: bool = False,
    rebase_destination: bool = False,
    color: bool = True,
) -> str:
    """Text after the graph art for one commit."""
    parts = [
        paint(commit.change_id, BOLD, MAGENTA, color=color),
        paint(commit.id, GRAY, color=color),
    ]
    if commit.branches:
        parts.append(paint(f"[{', '.join(commit.branches)}]", GREEN, color=color))
        numbers = [f"#{pr_numbers[name]}" for name in commit.branches if pr_numbers and name in pr_numbers]
        if numbers:
            parts.append(paint("PR " + " ".join(numbers), CYAN, color=color))
    if commit.conflicted:
        parts.append(paint("(conflict)", RED, color=color))
    if commit.divergent:
        parts.append(paint("(divergent)", RED, color=color))
    if rebase_source:
        parts.append(paint("[rebase source]", BOLD, YELLOW, color=color))
    elif rebase_destination:
        parts.append(paint("[destination]", BOLD, YELLOW, color=color))
    summary = commit.summary
    parts.append(paint(summary, DIM, color=color) if commit.immutable else summary)
    if commit.author:
        parts.append(paint(commit.author, BLUE, color=color))
    return " ".join(parts)


def build_graph_rows(
    snapshot: RepositorySnapshot,
    *,
    pull_requests: Iterable[PullRequest] = (),
    selected: int | None = None,
    rebase_source_index: int | None = None,
    color: bool = True,
) -> list[GraphRow]:
    """One header row per commit plus its connector rows, in snapshot order."""
    pr_numbers = {pr.head_branch: pr.number for pr in pull_requests if pr.is_open}
    rows: list[GraphRow] = []
    for index, commit in enumerate(snapshot.commits):
        label = commit_label(
            commit,
            pr_numbers=pr_numbers,
            rebase_source=index == rebase_source_index,
            rebase_destination=rebase_source_index is not None and index == selected,
            color=color,
        )
        marker = SELECTED_MARKER if index == selected else "  "
        prefix = commit.graph_prefix or node_marker(commit)
        rows.append(GraphRow(f"{marker}{prefix} {label}", index))
        for connector in commit.graph_lines:
            rows.append(GraphRow("  " + paint(connector, GRAY, color=color), index, header=False))
    return rows


def header_row_of(rows: list[GraphRow], commit_index: int | None) -> int | None:
    if commit_index is None:
        return None
    for row_index, row in enumerate(rows):
        if row.header and row.commit_index == commit_index:
            return row_index
    return None


def scroll_start(total: int, focus: int | None, visible: int) -> int:
    """First visible row so that ``focus`` sits near the middle of the window."""
    if visible <= 0 or total <= visible or focus is None:
        return 0
    start = focus - visible // 2
    return max(0, min(start, total - visible))


def commit_actions(commit: Commit | None, assignments: BranchAssignments | None = None) -> list[tuple[str, str]]:
    """``(command, label)`` pairs offered for the selected commit."""
    if commit is None:
        return [("new", "New")]
    actions: list[tuple[str, str]] = []
    if not commit.immutable:
        actions.extend(
            [
                ("edit", "Edit"),
                ("describe", "Describe"),
                ("squash", "Squash"),
                ("rebase", "Rebase"),
                ("abandon", "Abandon"),
                ("bookmark", "Bookmark"),
            ]
        )
    actions.append(("new", "New"))
    if commit.branches:
        actions.append(("delete_bookmark", "Del Bookmark"))
    action = assignments.action_for(commit) if assignments is not None else None
    if action is not None:
        base = "Update PR" if action.kind == ACTION_UPDATE_PR else "Create PR"
        label = f"{base} [{action.branch}]" if action.needs_move else base
        actions.append(("update_pr" if action.kind == ACTION_UPDATE_PR else "create_pr", label))
    actions.append(("toggle_diff", "Diff"))
    return actions


__all__ = [
    "GraphRow",
    "SELECTED_MARKER",
    "build_graph_rows",
    "commit_actions",
    "commit_label",
    "header_row_of",
    "node_marker",
    "scroll_start",
]
