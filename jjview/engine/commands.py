"""Worker-side bodies of every mutation the engine can dispatch.

``run_mutation`` executes on a worker thread: it talks to jj and the HTTP
collaborators, then reloads the snapshot so the terminal message carries
the repository state that the mutation produced.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from ..errors import JJViewError, ValidationFailure
from ..messages import Operation
from ..models import RepositorySnapshot
from ..providers.base import PullRequestHost, TicketProvider
from ..vcs.fetcher import SnapshotFetcher
from ..vcs.jj import JJService
from .dispatcher import DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_DELAY_SECONDS, retry_eventual_consistency
from .workflows import TRANSITION_IN_PROGRESS, find_transition

logger = logging.getLogger(__name__)

PUSH_SETTLE_SECONDS = 3.0


@dataclass(frozen=True)
class Mutation:
    """Everything a worker needs to perform one user action."""

    operation: Operation
    revision: str = ""
    destination: str = ""
    name: str = ""
    text: str = ""
    title: str = ""
    base: str = ""
    move_bookmark: bool = False
    ticket_key: str = ""
    ticket_label: str = ""
    transition_id: str = ""
    auto_transition: bool = False
    number: int = 0


@dataclass(frozen=True)
class CommandOutcome:
    status: str
    snapshot: RepositorySnapshot | None = None
    url: str = ""
    detail: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))


@dataclass
class Services:
    """Collaborators reachable from worker threads."""

    jj: JJService
    fetcher: SnapshotFetcher
    host: PullRequestHost | None = None
    tickets: TicketProvider | None = None
    sleep: Callable[[float], None] = time.sleep
    settle_seconds: float = PUSH_SETTLE_SECONDS
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS


WORKING_STATUS: dict[Operation, str] = {
    Operation.DESCRIBE: "Saving description...",
    Operation.EDIT: "Checking out commit...",
    Operation.NEW: "Creating new commit...",
    Operation.SQUASH: "Squashing...",
    Operation.ABANDON: "Abandoning commit...",
    Operation.REBASE: "Rebasing...",
    Operation.BOOKMARK_CREATE: "Creating bookmark...",
    Operation.BOOKMARK_MOVE: "Moving bookmark...",
    Operation.BOOKMARK_DELETE: "Deleting bookmark...",
    Operation.BRANCH_FROM_TICKET: "Creating branch from ticket...",
    Operation.PR_CREATE: "Pushing and creating PR...",
    Operation.PR_UPDATE: "Pushing to update PR...",
    Operation.PR_MERGE: "Merging PR...",
    Operation.PR_CLOSE: "Closing PR...",
    Operation.FETCH: "Fetching from remote...",
    Operation.UNDO: "Undoing last operation...",
    Operation.TICKET_TRANSITION: "Updating ticket...",
    Operation.INIT: "Initializing repository...",
}


def _reload(services: Services) -> RepositorySnapshot | None:
    """Snapshot after a successful mutation; a failed reload does not fail the mutation."""
    try:
        return services.fetcher.fetch()
    except JJViewError as exc:
        logger.warning("reload after mutation failed: %s", exc)
        return None


def _host(services: Services) -> PullRequestHost:
    if services.host is None:
        raise ValidationFailure("GitHub is not connected")
    return services.host


def _tickets(services: Services) -> TicketProvider:
    if services.tickets is None:
        raise ValidationFailure("No ticket provider configured")
    return services.tickets


def _describe(m: Mutation, services: Services) -> CommandOutcome:
    services.jj.describe(m.revision, m.text)
    return CommandOutcome("Description updated", _reload(services))


def _edit(m: Mutation, services: Services) -> CommandOutcome:
    services.jj.edit(m.revision)
    return CommandOutcome(f"Now editing {m.revision}", _reload(services))


def _new(m: Mutation, services: Services) -> CommandOutcome:
    services.jj.new(m.revision)
    return CommandOutcome("Created new commit", _reload(services))


def _squash(m: Mutation, services: Services) -> CommandOutcome:
    services.jj.squash(m.revision)
    return CommandOutcome(f"Squashed {m.revision} into parent", _reload(services))


def _abandon(m: Mutation, services: Services) -> CommandOutcome:
    services.jj.abandon(m.revision)
    return CommandOutcome(f"Abandoned {m.revision}", _reload(services))


def _rebase(m: Mutation, services: Services) -> CommandOutcome:
    services.jj.rebase(m.revision, m.destination)
    return CommandOutcome(f"Rebased {m.revision} onto {m.destination}", _reload(services))


def _bookmark_create(m: Mutation, services: Services) -> CommandOutcome:
    services.jj.create_bookmark(m.name, m.revision)
    return CommandOutcome(f"Created bookmark {m.name}", _reload(services))


def _bookmark_move(m: Mutation, services: Services) -> CommandOutcome:
    services.jj.move_bookmark(m.name, m.revision)
    return CommandOutcome(f"Moved bookmark {m.name} to {m.revision}", _reload(services))


def _bookmark_delete(m: Mutation, services: Services) -> CommandOutcome:
    services.jj.delete_bookmark(m.name)
    return CommandOutcome(f"Deleted bookmark {m.name}", _reload(services))


def _branch_from_ticket(m: Mutation, services: Services) -> CommandOutcome:
    services.jj.create_branch_from_main(m.name)
    status = f"Created bookmark {m.name}"
    detail = {"ticket_key": m.ticket_key}
    if m.auto_transition and services.tickets is not None:
        # The bookmark exists at this point; a tracker hiccup only costs the status change.
        try:
            transition = find_transition(services.tickets.list_transitions(m.ticket_key), TRANSITION_IN_PROGRESS)
            if transition is not None:
                services.tickets.apply_transition(m.ticket_key, transition.id)
                status = f"{status}; {m.ticket_label} set to {transition.name}"
                detail["transitioned"] = transition.name
        except JJViewError as exc:
            logger.warning("could not move %s to in progress: %s", m.ticket_key, exc)
            status = f"{status} (ticket not updated: {exc})"
    return CommandOutcome(status, _reload(services), detail=MappingProxyType(detail))


def _pr_create(m: Mutation, services: Services) -> CommandOutcome:
    host = _host(services)
    if m.move_bookmark:
        services.jj.move_bookmark(m.name, m.revision)
    host.push(m.name)
    # The host needs a moment to index the pushed ref.
    services.sleep(services.settle_seconds)
    pr = retry_eventual_consistency(
        lambda: host.create(m.title, m.text, m.name, m.base),
        attempts=services.retry_attempts,
        delay=services.retry_delay,
        sleep=services.sleep,
    )
    return CommandOutcome(
        f"Created PR #{pr.number}: {pr.title}",
        _reload(services),
        url=pr.url,
        detail=MappingProxyType({"number": str(pr.number)}),
    )


def _pr_update(m: Mutation, services: Services) -> CommandOutcome:
    host = _host(services)
    if m.move_bookmark:
        services.jj.move_bookmark(m.name, m.revision)
    host.push(m.name)
    return CommandOutcome(f"Pushed {m.name} to update PR", _reload(services))


def _pr_merge(m: Mutation, services: Services) -> CommandOutcome:
    _host(services).merge(m.number)
    return CommandOutcome(f"Merged PR #{m.number}")


def _pr_close(m: Mutation, services: Services) -> CommandOutcome:
    _host(services).close(m.number)
    return CommandOutcome(f"Closed PR #{m.number}")


def _fetch(m: Mutation, services: Services) -> CommandOutcome:
    services.jj.fetch()
    return CommandOutcome("Fetched from remote", _reload(services))


def _undo(m: Mutation, services: Services) -> CommandOutcome:
    services.jj.undo()
    return CommandOutcome("Undid last operation", _reload(services))


def _ticket_transition(m: Mutation, services: Services) -> CommandOutcome:
    _tickets(services).apply_transition(m.ticket_key, m.transition_id)
    return CommandOutcome(
        f"{m.ticket_label} set to {m.text}",
        detail=MappingProxyType({"ticket_key": m.ticket_key}),
    )


def _init(m: Mutation, services: Services) -> CommandOutcome:
    services.jj.init()
    return CommandOutcome("Initialized jj repository", _reload(services))


_HANDLERS: dict[Operation, Callable[[Mutation, Services], CommandOutcome]] = {
    Operation.DESCRIBE: _describe,
    Operation.EDIT: _edit,
    Operation.NEW: _new,
    Operation.SQUASH: _squash,
    Operation.ABANDON: _abandon,
    Operation.REBASE: _rebase,
    Operation.BOOKMARK_CREATE: _bookmark_create,
    Operation.BOOKMARK_MOVE: _bookmark_move,
    Operation.BOOKMARK_DELETE: _bookmark_delete,
    Operation.BRANCH_FROM_TICKET: _branch_from_ticket,
    Operation.PR_CREATE: _pr_create,
    Operation.PR_UPDATE: _pr_update,
    Operation.PR_MERGE: _pr_merge,
    Operation.PR_CLOSE: _pr_close,
    Operation.FETCH: _fetch,
    Operation.UNDO: _undo,
    Operation.TICKET_TRANSITION: _ticket_transition,
    Operation.INIT: _init,
}


def run_mutation(mutation: Mutation, services: Services) -> CommandOutcome:
    return _HANDLERS[mutation.operation](mutation, services)


__all__ = [
    "CommandOutcome",
    "Mutation",
    "PUSH_SETTLE_SECONDS",
    "Services",
    "WORKING_STATUS",
    "run_mutation",
]
