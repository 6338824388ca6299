"""Live UI model mutated only by the event loop thread."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from ..input.bindings import (
    CONTEXT_BOOKMARK_FORM,
    CONTEXT_ERROR,
    CONTEXT_FORM,
    CONTEXT_GLOBAL,
    CONTEXT_GRAPH,
    CONTEXT_HELP,
    CONTEXT_LOGIN,
    CONTEXT_PULL_REQUESTS,
    CONTEXT_REBASE,
    CONTEXT_SETTINGS,
    CONTEXT_TICKETS,
    CONTEXT_TICKET_STATUS,
)
from ..models import ChangedFile, Commit, PullRequest, RepositorySnapshot, Ticket, Transition


class View(str, enum.Enum):
    GRAPH = "graph"
    PULL_REQUESTS = "pull-requests"
    TICKETS = "tickets"
    HELP = "help"


class Mode(str, enum.Enum):
    NORMAL = "normal"
    REBASE_DESTINATION = "rebase-destination"
    EDIT_DESCRIPTION = "edit-description"
    CREATE_PR = "create-pr"
    CREATE_BOOKMARK = "create-bookmark"
    SETTINGS = "settings"
    EXTERNAL_LOGIN = "external-login"


MODAL_MODES = frozenset(
    {
        Mode.EDIT_DESCRIPTION,
        Mode.CREATE_PR,
        Mode.CREATE_BOOKMARK,
        Mode.SETTINGS,
        Mode.EXTERNAL_LOGIN,
    }
)


MODE_CONTEXTS: dict[Mode, str] = {
    Mode.EDIT_DESCRIPTION: CONTEXT_FORM,
    Mode.CREATE_PR: CONTEXT_FORM,
    Mode.CREATE_BOOKMARK: CONTEXT_BOOKMARK_FORM,
    Mode.SETTINGS: CONTEXT_SETTINGS,
    Mode.EXTERNAL_LOGIN: CONTEXT_LOGIN,
}
VIEW_CONTEXTS: dict[View, str] = {
    View.GRAPH: CONTEXT_GRAPH,
    View.PULL_REQUESTS: CONTEXT_PULL_REQUESTS,
    View.TICKETS: CONTEXT_TICKETS,
    View.HELP: CONTEXT_HELP,
}


@dataclass
class AppState:
    """Everything the renderer needs; replaced field-wise by reconciliation."""

    snapshot: RepositorySnapshot = field(default_factory=RepositorySnapshot)
    selected: int | None = None
    tracked_change_id: str = ""
    tracked_commit_id: str = ""
    changed_files: tuple[ChangedFile, ...] = ()
    diff_text: str = ""
    show_diff: bool = False
    pull_requests: tuple[PullRequest, ...] = ()
    selected_pr: int = 0
    tickets: tuple[Ticket, ...] = ()
    selected_ticket: int = 0
    transitions: tuple[Transition, ...] = ()
    transition_mode: bool = False
    ticket_provider_name: str = ""
    error: BaseException | None = None
    not_managed: bool = False
    status: str = ""
    view: View = View.GRAPH
    mode: Mode = Mode.NORMAL
    form: object | None = None
    rebase_source_change_id: str = ""
    rebase_source_commit_id: str = ""
    working: bool = False
    loading: bool = False
    pr_loading: bool = False
    tickets_loading: bool = False
    dirty: bool = True
    quit_requested: bool = False

    def selected_commit(self) -> Commit | None:
        return self.snapshot.commit_at(self.selected)

    def selected_pull_request(self) -> PullRequest | None:
        if 0 <= self.selected_pr < len(self.pull_requests):
            return self.pull_requests[self.selected_pr]
        return None

    def selected_ticket_value(self) -> Ticket | None:
        if 0 <= self.selected_ticket < len(self.tickets):
            return self.tickets[self.selected_ticket]
        return None

    @property
    def modal_active(self) -> bool:
        return self.mode in MODAL_MODES

    def key_contexts(self) -> list[str]:
        """Binding contexts consulted for a key, most specific first."""
        if self.error is not None:
            return [CONTEXT_ERROR]
        if self.modal_active:
            return [MODE_CONTEXTS[self.mode]]
        if self.mode is Mode.REBASE_DESTINATION:
            return [CONTEXT_REBASE, CONTEXT_GLOBAL]
        contexts = []
        if self.view is View.TICKETS and self.transition_mode:
            contexts.append(CONTEXT_TICKET_STATUS)
        contexts.extend([VIEW_CONTEXTS[self.view], CONTEXT_GLOBAL])
        return contexts


__all__ = ["AppState", "MODAL_MODES", "MODE_CONTEXTS", "Mode", "VIEW_CONTEXTS", "View"]
