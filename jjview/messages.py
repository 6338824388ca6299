"""Closed set of messages processed by the event loop.

Worker threads, timers and the terminal all communicate with the engine
exclusively through these frozen values. ``MESSAGE_TYPES`` is the complete
list; the engine registers exactly one handler per entry.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Union

from .models import ChangedFile, PullRequest, RepositorySnapshot, Ticket, Transition


class RefreshMode(enum.Enum):
    LOUD = "loud"
    SILENT = "silent"


class Operation(str, enum.Enum):
    """Every mutation the dispatcher can run."""

    DESCRIBE = "describe"
    EDIT = "edit"
    NEW = "new"
    SQUASH = "squash"
    ABANDON = "abandon"
    REBASE = "rebase"
    BOOKMARK_CREATE = "bookmark-create"
    BOOKMARK_MOVE = "bookmark-move"
    BOOKMARK_DELETE = "bookmark-delete"
    BRANCH_FROM_TICKET = "branch-from-ticket"
    PR_CREATE = "pr-create"
    PR_UPDATE = "pr-update"
    PR_MERGE = "pr-merge"
    PR_CLOSE = "pr-close"
    FETCH = "fetch"
    UNDO = "undo"
    TICKET_TRANSITION = "ticket-transition"
    INIT = "init"


class LoadKind(str, enum.Enum):
    """Read-only background loads; these never block mutations."""

    SNAPSHOT = "snapshot"
    CHANGED_FILES = "changed-files"
    DIFF = "diff"
    DESCRIPTION = "description"
    PULL_REQUESTS = "pull-requests"
    TICKETS = "tickets"
    TRANSITIONS = "transitions"
    LOGIN = "login"


def _empty_detail() -> Mapping[str, str]:
    return MappingProxyType({})


@dataclass(frozen=True)
class SnapshotLoaded:
    snapshot: RepositorySnapshot
    mode: RefreshMode


@dataclass(frozen=True)
class ChangedFilesLoaded:
    change_id: str
    commit_id: str
    files: tuple[ChangedFile, ...]


@dataclass(frozen=True)
class DiffLoaded:
    commit_id: str
    text: str


@dataclass(frozen=True)
class DescriptionLoaded:
    commit_id: str
    text: str


@dataclass(frozen=True)
class PullRequestsLoaded:
    pull_requests: tuple[PullRequest, ...]


@dataclass(frozen=True)
class TicketsLoaded:
    tickets: tuple[Ticket, ...]


@dataclass(frozen=True)
class TransitionsLoaded:
    ticket_key: str
    transitions: tuple[Transition, ...]


@dataclass(frozen=True)
class LoadFailed:
    kind: LoadKind
    error: BaseException
    mode: RefreshMode = RefreshMode.LOUD


@dataclass(frozen=True)
class CommandSucceeded:
    """Terminal success of one dispatched mutation."""

    dispatch_id: int
    operation: Operation
    status: str
    snapshot: RepositorySnapshot | None = None
    url: str = ""
    detail: Mapping[str, str] = field(default_factory=_empty_detail)


@dataclass(frozen=True)
class CommandFailed:
    """Terminal failure of one dispatched mutation."""

    dispatch_id: int
    operation: Operation
    error: BaseException


@dataclass(frozen=True)
class Tick:
    """Graph auto-refresh timer fired."""


@dataclass(frozen=True)
class PullRequestTick:
    """PR-list refresh timer fired."""


@dataclass(frozen=True)
class LoginPollDue:
    """Device-flow poll timer fired."""


@dataclass(frozen=True)
class LoginStarted:
    device_code: str
    user_code: str
    verification_uri: str
    interval: int


@dataclass(frozen=True)
class LoginPolled:
    """One device-flow poll result; empty ``token`` means still pending."""

    token: str = ""
    slow_down: bool = False


@dataclass(frozen=True)
class KeyPressed:
    """One decoded terminal token (keys and ``MOUSE_*`` events alike)."""

    key: str


Message = Union[
    SnapshotLoaded,
    ChangedFilesLoaded,
    DiffLoaded,
    DescriptionLoaded,
    PullRequestsLoaded,
    TicketsLoaded,
    TransitionsLoaded,
    LoadFailed,
    CommandSucceeded,
    CommandFailed,
    Tick,
    PullRequestTick,
    LoginPollDue,
    LoginStarted,
    LoginPolled,
    KeyPressed,
]

MESSAGE_TYPES: tuple[type, ...] = Message.__args__  # type: ignore[attr-defined]


__all__ = [
    "ChangedFilesLoaded",
    "CommandFailed",
    "CommandSucceeded",
    "DescriptionLoaded",
    "DiffLoaded",
    "KeyPressed",
    "LoadFailed",
    "LoadKind",
    "LoginPollDue",
    "LoginPolled",
    "LoginStarted",
    "MESSAGE_TYPES",
    "Message",
    "Operation",
    "PullRequestTick",
    "PullRequestsLoaded",
    "RefreshMode",
    "SnapshotLoaded",
    "Tick",
    "TicketsLoaded",
    "TransitionsLoaded",
]
