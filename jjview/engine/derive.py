"""Per-commit pull-request workflow facts derived from the commit graph.

A commit can *update* a PR when it or an ancestor owns a bookmark with an
open PR, and can *create* one when it or an ancestor owns any other
bookmark. Both facts are pushed down to descendants by repeated passes
until nothing changes, so they stay correct however the DAG branches.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from ..models import Commit, PullRequest, RepositorySnapshot

ACTION_UPDATE_PR = "update"
ACTION_CREATE_PR = "create"


@dataclass(frozen=True)
class CommitAction:
    """PR action offered for one commit."""

    kind: str
    branch: str
    needs_move: bool


@dataclass(frozen=True)
class BranchAssignments:
    """Derived maps keyed by commit id and by non-divergent change id."""

    commit_to_pr_branch: Mapping[str, str]
    commit_to_bookmark: Mapping[str, str]

    def pr_branch_for(self, commit: Commit) -> str:
        return self.commit_to_pr_branch.get(commit.id) or self.commit_to_pr_branch.get(commit.change_id, "")

    def bookmark_for(self, commit: Commit) -> str:
        return self.commit_to_bookmark.get(commit.id) or self.commit_to_bookmark.get(commit.change_id, "")

    def action_for(self, commit: Commit) -> CommitAction | None:
        """Return the PR action for ``commit``; update always wins over create."""
        pr_branch = self.pr_branch_for(commit)
        if pr_branch:
            return CommitAction(ACTION_UPDATE_PR, pr_branch, pr_branch not in commit.branches)
        bookmark = self.bookmark_for(commit)
        if bookmark:
            return CommitAction(ACTION_CREATE_PR, bookmark, bookmark not in commit.branches)
        return None


def open_pr_branches(pull_requests: Iterable[PullRequest]) -> frozenset[str]:
    return frozenset(pr.head_branch for pr in pull_requests if pr.is_open)


def _propagate(
    commits: tuple[Commit, ...],
    parent_index: Mapping[str, int],
    assigned: dict[int, str],
    blocked: Mapping[int, str],
) -> None:
    """Copy parent assignments to unassigned children until a pass changes nothing."""
    changed = True
    while changed:
        changed = False
        for index, commit in enumerate(commits):
            if index in assigned or index in blocked:
                continue
            for parent_id in commit.parents:
                parent = parent_index.get(parent_id)
                if parent is not None and parent in assigned:
                    assigned[index] = assigned[parent]
                    changed = True
                    break


def derive_branch_assignments(
    snapshot: RepositorySnapshot,
    pr_branches: Iterable[str],
) -> BranchAssignments:
    """Compute ``commitToPRBranch`` and ``commitToBookmark`` for ``snapshot``.

    PR branches are propagated first over the whole graph, so any
    descendant of a PR commit is assigned the PR branch. Plain bookmarks
    then fill only commits that still have no PR branch.
    """
    open_branches = frozenset(pr_branches)
    commits = snapshot.commits
    parent_index: dict[str, int] = {}
    for index, commit in enumerate(commits):
        parent_index.setdefault(commit.id, index)
        parent_index.setdefault(commit.change_id, index)

    pr_assigned: dict[int, str] = {}
    for index, commit in enumerate(commits):
        for branch in commit.branches:
            if branch in open_branches:
                pr_assigned[index] = branch
                break
    _propagate(commits, parent_index, pr_assigned, {})

    bookmark_assigned: dict[int, str] = {}
    for index, commit in enumerate(commits):
        if index in pr_assigned:
            continue
        for branch in commit.branches:
            if branch not in open_branches:
                bookmark_assigned[index] = branch
                break
    _propagate(commits, parent_index, bookmark_assigned, pr_assigned)

    return BranchAssignments(
        commit_to_pr_branch=_keyed(commits, pr_assigned),
        commit_to_bookmark=_keyed(commits, bookmark_assigned),
    )


def _keyed(commits: tuple[Commit, ...], assigned: Mapping[int, str]) -> Mapping[str, str]:
    """Key assignments by commit id, and by change id unless the change is divergent."""
    change_counts = Counter(commit.change_id for commit in commits)
    out: dict[str, str] = {}
    for index, branch in assigned.items():
        commit = commits[index]
        out[commit.id] = branch
        if change_counts[commit.change_id] == 1:
            out[commit.change_id] = branch
    return MappingProxyType(out)


__all__ = [
    "ACTION_CREATE_PR",
    "ACTION_UPDATE_PR",
    "BranchAssignments",
    "CommitAction",
    "derive_branch_assignments",
    "open_pr_branches",
]
