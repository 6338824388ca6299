"""Value types shared by the fetcher, engine, providers and renderer.

Every type here is an immutable value; a snapshot owns its commits and is
replaced wholesale on each fetch.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True)
class Commit:
    """One node of the jj change history as currently known."""

    id: str
    change_id: str
    parents: tuple[str, ...] = ()
    branches: tuple[str, ...] = ()
    is_working: bool = False
    immutable: bool = False
    conflicted: bool = False
    divergent: bool = False
    summary: str = ""
    author: str = ""
    timestamp: str = ""
    graph_prefix: str = ""
    graph_lines: tuple[str, ...] = ()


def _build_children(commits: Iterable[Commit]) -> Mapping[str, tuple[str, ...]]:
    children: dict[str, list[str]] = {}
    for commit in commits:
        for parent_id in commit.parents:
            children.setdefault(parent_id, []).append(commit.id)
    return MappingProxyType({parent: tuple(kids) for parent, kids in children.items()})


@dataclass(frozen=True)
class RepositorySnapshot:
    """Ordered commits plus the derived ``parent -> children`` adjacency."""

    commits: tuple[Commit, ...] = ()
    children: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_commits(cls, commits: Iterable[Commit]) -> RepositorySnapshot:
        ordered = tuple(commits)
        return cls(commits=ordered, children=_build_children(ordered))

    def __len__(self) -> int:
        return len(self.commits)

    def commit_at(self, index: int | None) -> Commit | None:
        """Return the commit at ``index`` or ``None`` when out of range."""
        if index is None or index < 0 or index >= len(self.commits):
            return None
        return self.commits[index]

    def find_change(self, change_id: str, prefer_id: str = "") -> int | None:
        """Return the index of ``change_id``, preferring the revision ``prefer_id``.

        A divergent change has several commits with the same change id; the
        one whose content id still matches wins, otherwise the first one.
        """
        first: int | None = None
        for index, commit in enumerate(self.commits):
            if commit.change_id != change_id:
                continue
            if prefer_id and commit.id == prefer_id:
                return index
            if first is None:
                first = index
        return first


@dataclass(frozen=True)
class PullRequest:
    number: int
    title: str
    head_branch: str
    base_branch: str = "main"
    state: str = "open"
    url: str = ""
    body: str = ""

    @property
    def is_open(self) -> bool:
        return self.state == "open"


@dataclass(frozen=True)
class Ticket:
    """Provider-agnostic ticket; ``key`` is what the provider API expects."""

    key: str
    display_key: str
    summary: str
    status: str = ""
    priority: str = ""
    type: str = ""
    description: str = ""
    deck_id: str = ""


@dataclass(frozen=True)
class Transition:
    id: str
    name: str


@dataclass(frozen=True)
class ChangedFile:
    status: str
    path: str


__all__ = [
    "ChangedFile",
    "Commit",
    "PullRequest",
    "RepositorySnapshot",
    "Ticket",
    "Transition",
]
