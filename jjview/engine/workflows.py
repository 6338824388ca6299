"""Bookmark, pull-request and ticket workflow helpers.

Pure functions over a snapshot: they decide names, targets and transitions
before anything is dispatched.
"""

from __future__ import annotations

import re
from collections import deque
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from ..errors import ValidationFailure
from ..models import RepositorySnapshot, Ticket, Transition

_BOOKMARK_NAME_RE = re.compile(r"^[A-Za-z0-9_/-]+$")
_INVALID_BOOKMARK_CHARS_RE = re.compile(r"[^A-Za-z0-9_/-]")
_REPEATED_HYPHENS_RE = re.compile(r"-+")

DEFAULT_BASE_BRANCH = "main"


def validate_bookmark_name(name: str) -> str:
    """Return the trimmed name or raise ``ValidationFailure``."""
    trimmed = name.strip()
    if not trimmed:
        raise ValidationFailure("Bookmark name is required")
    if _BOOKMARK_NAME_RE.match(trimmed) is None:
        raise ValidationFailure("Invalid bookmark name. Use letters, numbers, -, _, or /")
    return trimmed


def bookmark_name_from_ticket(key: str, summary: str) -> str:
    """Build ``KEY-Summary-words`` from a ticket, dropping invalid characters."""
    clean_key = _INVALID_BOOKMARK_CHARS_RE.sub("", key).strip("-")
    title = _INVALID_BOOKMARK_CHARS_RE.sub("", summary.replace(" ", "-"))
    title = _REPEATED_HYPHENS_RE.sub("-", title).strip("-")
    if clean_key and title:
        return f"{clean_key}-{title}"
    return clean_key or title or "bookmark"


def existing_bookmarks(snapshot: RepositorySnapshot, index: int) -> list[str]:
    """Sorted bookmarks that could be moved onto the commit at ``index``."""
    commit = snapshot.commit_at(index)
    if commit is None:
        return []
    on_commit = set(commit.branches)
    names = {branch for other in snapshot.commits for branch in other.branches if branch not in on_commit}
    return sorted(names)


def _ancestor_search(
    snapshot: RepositorySnapshot,
    index: int,
    pick: Callable[[Sequence[str]], str],
) -> str:
    """Breadth-first walk from ``index`` through parents; first non-empty pick wins."""
    if snapshot.commit_at(index) is None:
        return ""
    lookup: dict[str, int] = {}
    for position, commit in enumerate(snapshot.commits):
        lookup.setdefault(commit.id, position)
        lookup.setdefault(commit.change_id, position)
    visited: set[int] = set()
    queue: deque[int] = deque([index])
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        commit = snapshot.commits[current]
        found = pick(commit.branches)
        if found:
            return found
        for parent_id in commit.parents:
            parent = lookup.get(parent_id)
            if parent is not None and parent not in visited:
                queue.append(parent)
    return ""


def find_bookmark_for_commit(snapshot: RepositorySnapshot, index: int) -> str:
    """Nearest bookmark on the commit or its ancestors."""
    return _ancestor_search(snapshot, index, lambda branches: branches[0] if branches else "")


@dataclass(frozen=True)
class PullRequestTarget:
    head: str
    base: str
    needs_move: bool


def pull_request_target(snapshot: RepositorySnapshot, index: int) -> PullRequestTarget | None:
    """Head branch for a new PR from the commit at ``index``.

    The commit's own first bookmark wins; otherwise the nearest ancestor
    bookmark is used and has to be moved onto the commit first.
    """
    commit = snapshot.commit_at(index)
    if commit is None:
        return None
    if commit.branches:
        return PullRequestTarget(head=commit.branches[0], base=DEFAULT_BASE_BRANCH, needs_move=False)
    ancestor = find_bookmark_for_commit(snapshot, index)
    if not ancestor:
        return None
    return PullRequestTarget(head=ancestor, base=DEFAULT_BASE_BRANCH, needs_move=True)


# Ticket transitions are matched by name because every provider names them
# differently.


def _is_in_progress(name: str) -> bool:
    return "progress" in name or ("start" in name and "not start" not in name and "not_start" not in name)


def _is_done(name: str) -> bool:
    return "done" in name or "complete" in name or "resolve" in name


def _is_blocked(name: str) -> bool:
    return "block" in name


def _is_not_started(name: str) -> bool:
    return "not" in name and "start" in name


TRANSITION_IN_PROGRESS = "in_progress"
TRANSITION_DONE = "done"
TRANSITION_BLOCKED = "blocked"
TRANSITION_NOT_STARTED = "not_started"

TRANSITION_MATCHERS: dict[str, Callable[[str], bool]] = {
    TRANSITION_IN_PROGRESS: _is_in_progress,
    TRANSITION_DONE: _is_done,
    TRANSITION_BLOCKED: _is_blocked,
    TRANSITION_NOT_STARTED: _is_not_started,
}

TRANSITION_LABELS: dict[str, str] = {
    TRANSITION_IN_PROGRESS: "In Progress",
    TRANSITION_DONE: "Done",
    TRANSITION_BLOCKED: "Blocked",
    TRANSITION_NOT_STARTED: "Not Started",
}


def find_transition(transitions: Iterable[Transition], kind: str) -> Transition | None:
    """First transition whose name matches the ``kind`` category."""
    matcher = TRANSITION_MATCHERS[kind]
    for transition in transitions:
        if matcher(transition.name.lower()):
            return transition
    return None


_DIGITS_RE = re.compile(r"(\d+)")


def _natural_key(text: str) -> tuple[object, ...]:
    # "PROJ-10" sorts after "PROJ-9".
    return tuple(int(part) if part.isdigit() else part for part in _DIGITS_RE.split(text))


def prepare_tickets(tickets: Iterable[Ticket], excluded_statuses: Iterable[str] = ()) -> tuple[Ticket, ...]:
    """Drop tickets in excluded statuses and order by display key, newest first."""
    excluded = {status.lower() for status in excluded_statuses}
    kept = [ticket for ticket in tickets if ticket.status.lower() not in excluded]
    return tuple(sorted(kept, key=lambda ticket: _natural_key(ticket.display_key), reverse=True))


__all__ = [
    "DEFAULT_BASE_BRANCH",
    "PullRequestTarget",
    "TRANSITION_BLOCKED",
    "TRANSITION_DONE",
    "TRANSITION_IN_PROGRESS",
    "TRANSITION_LABELS",
    "TRANSITION_NOT_STARTED",
    "bookmark_name_from_ticket",
    "existing_bookmarks",
    "find_bookmark_for_commit",
    "find_transition",
    "prepare_tickets",
    "pull_request_target",
    "validate_bookmark_name",
]
