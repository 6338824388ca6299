"""Interaction modes, their entry guards, and the modal form buffers.

Forms remember the change id and commit id they were opened for rather than
a list index, so a background snapshot replacement cannot retarget them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, fields, replace

from ..config import Settings
from ..errors import ValidationFailure
from ..messages import Operation
from ..models import Commit, Ticket
from ..vcs.parse import NO_DESCRIPTION
from .commands import WORKING_STATUS, Mutation
from .derive import ACTION_UPDATE_PR, BranchAssignments
from .state import AppState, Mode
from .workflows import (
    bookmark_name_from_ticket,
    existing_bookmarks,
    pull_request_target,
    validate_bookmark_name,
)

logger = logging.getLogger(__name__)

NO_SELECTION_MESSAGE = "No commit selected"


def revision_of(commit: Commit) -> str:
    """Revision string for jj; divergent changes need the commit id."""
    return commit.id if commit.divergent else commit.change_id


@dataclass
class TextField:
    value: str = ""
    multiline: bool = False

    def handle_key(self, key: str) -> bool:
        """Apply one editing key; returns whether it was consumed."""
        if key == "BACKSPACE":
            self.value = self.value[:-1]
            return True
        if key == "CTRL_U":
            self.value = ""
            return True
        if key == "ENTER" and self.multiline:
            self.value += "\n"
            return True
        if len(key) == 1 and key.isprintable():
            self.value += key
            return True
        return False


@dataclass
class DescriptionForm:
    change_id: str
    commit_id: str
    revision: str
    text: TextField = field(default_factory=lambda: TextField(multiline=True))
    touched: bool = False


@dataclass
class PullRequestForm:
    change_id: str
    commit_id: str
    revision: str
    head: str
    base: str
    needs_move: bool
    title: TextField = field(default_factory=TextField)
    body: TextField = field(default_factory=lambda: TextField(multiline=True))
    focus: int = 0

    def fields(self) -> tuple[TextField, TextField]:
        return (self.title, self.body)


@dataclass
class BookmarkForm:
    change_id: str
    commit_id: str
    revision: str
    name: TextField = field(default_factory=TextField)
    existing: list[str] = field(default_factory=list)
    # -1 means "create new"; otherwise an index into ``existing``.
    selected_existing: int = -1
    ticket: Ticket | None = None


@dataclass
class SettingsField:
    key: str
    label: str
    value: TextField
    secret: bool = False
    kind: type = str


SETTINGS_FIELDS: tuple[tuple[str, str, bool], ...] = (
    ("github_token", "GitHub token", True),
    ("github_show_merged", "Show merged PRs", False),
    ("github_show_closed", "Show closed PRs", False),
    ("github_only_mine", "Only my PRs", False),
    ("github_pr_limit", "PR limit", False),
    ("github_refresh_interval", "PR refresh seconds (0 = off)", False),
    ("ticket_provider", "Ticket provider (jira, codecks, github_issues)", False),
    ("jira_url", "Jira URL", False),
    ("jira_user", "Jira user", False),
    ("jira_token", "Jira token", True),
    ("jira_excluded_statuses", "Jira excluded statuses", False),
    ("codecks_subdomain", "Codecks subdomain", False),
    ("codecks_token", "Codecks token", True),
    ("codecks_project", "Codecks project", False),
    ("codecks_excluded_statuses", "Codecks excluded statuses", False),
    ("ticket_auto_in_progress", "Move tickets to In Progress", False),
)


@dataclass
class SettingsForm:
    entries: list[SettingsField]
    focus: int = 0

    def focused(self) -> SettingsField:
        return self.entries[self.focus]


def settings_form_from(settings: Settings) -> SettingsForm:
    types = {f.name: type(f.default) for f in fields(Settings)}
    form_fields = []
    for key, label, secret in SETTINGS_FIELDS:
        value = getattr(settings, key)
        text = ("true" if value else "false") if isinstance(value, bool) else str(value)
        form_fields.append(SettingsField(key, label, TextField(text), secret=secret, kind=types[key]))
    return SettingsForm(entries=form_fields)


def settings_from_form(form: SettingsForm, base: Settings) -> Settings:
    """Parse the form back into ``Settings``; raises ``ValidationFailure``."""
    values: dict[str, object] = {}
    for item in form.entries:
        raw = item.value.value.strip()
        if item.kind is bool:
            values[item.key] = raw.lower() in ("true", "yes", "1", "on")
        elif item.kind is int:
            if not raw.isdigit():
                raise ValidationFailure(f"{item.label} must be a non-negative number")
            values[item.key] = int(raw)
        else:
            values[item.key] = raw
    return replace(base, **values)


@dataclass
class LoginForm:
    user_code: str = ""
    verification_uri: str = ""
    device_code: str = ""
    interval: int = 5
    message: str = "Requesting device code from GitHub..."


_CANCEL_MESSAGES = {
    Mode.REBASE_DESTINATION: "Rebase cancelled",
    Mode.EDIT_DESCRIPTION: "Description edit cancelled",
    Mode.CREATE_PR: "PR creation cancelled",
    Mode.CREATE_BOOKMARK: "Bookmark creation cancelled",
    Mode.SETTINGS: "Settings closed",
    Mode.EXTERNAL_LOGIN: "Login cancelled",
}


class InteractionStateMachine:
    """Mode transitions over the current ``AppState``.

    Entry methods return ``True`` when the mode changed. ``submit`` and the
    normal-mode actions return a ``Mutation`` for the engine to dispatch;
    the engine calls ``on_dispatched`` once the dispatcher accepted it and
    ``finish`` when the terminal message arrives.
    """

    def __init__(self, current: Callable[[], AppState]) -> None:
        self._current = current

    @property
    def state(self) -> AppState:
        return self._current()

    def _status(self, message: str) -> None:
        self.state.status = message
        self.state.dirty = True

    def _require_commit(self, action: str, *, mutable: bool = True) -> Commit | None:
        commit = self.state.selected_commit()
        if commit is None:
            self._status(NO_SELECTION_MESSAGE)
            return None
        if mutable and commit.immutable:
            self._status(f"Cannot {action}: commit is immutable")
            return None
        return commit

    def _enter(self, mode: Mode, form: object | None) -> None:
        state = self.state
        state.mode = mode
        state.form = form
        state.working = False
        state.dirty = True

    # Normal-mode actions

    def edit(self) -> Mutation | None:
        commit = self._require_commit("edit")
        if commit is None:
            return None
        return Mutation(Operation.EDIT, revision=revision_of(commit))

    def new(self) -> Mutation:
        commit = self.state.selected_commit()
        return Mutation(Operation.NEW, revision=revision_of(commit) if commit is not None else "")

    def squash(self) -> Mutation | None:
        commit = self._require_commit("squash")
        if commit is None:
            return None
        if not commit.parents:
            self._status("Cannot squash: commit has no parent")
            return None
        return Mutation(Operation.SQUASH, revision=revision_of(commit))

    def abandon(self) -> Mutation | None:
        commit = self._require_commit("abandon")
        if commit is None:
            return None
        return Mutation(Operation.ABANDON, revision=revision_of(commit))

    def delete_bookmark(self) -> Mutation | None:
        commit = self._require_commit("delete bookmark", mutable=False)
        if commit is None:
            return None
        if not commit.branches:
            self._status("No bookmark on this commit to delete")
            return None
        return Mutation(Operation.BOOKMARK_DELETE, name=commit.branches[0])

    def update_pr(self, assignments: BranchAssignments) -> Mutation | None:
        commit = self._require_commit("update PR", mutable=False)
        if commit is None:
            return None
        action = assignments.action_for(commit)
        if action is None or action.kind != ACTION_UPDATE_PR:
            self._status("No open PR found for this commit or its ancestors")
            return None
        return Mutation(
            Operation.PR_UPDATE,
            revision=revision_of(commit),
            name=action.branch,
            move_bookmark=action.needs_move,
        )

    # Rebase

    def begin_rebase(self) -> bool:
        commit = self._require_commit("rebase")
        if commit is None:
            return False
        state = self.state
        state.rebase_source_change_id = commit.change_id
        state.rebase_source_commit_id = commit.id
        self._enter(Mode.REBASE_DESTINATION, None)
        self._status(f"Select destination for {commit.change_id} (Enter to rebase, Esc to cancel)")
        return True

    def rebase_source_index(self) -> int | None:
        state = self.state
        if state.mode is not Mode.REBASE_DESTINATION:
            return None
        return state.snapshot.find_change(state.rebase_source_change_id, prefer_id=state.rebase_source_commit_id)

    def choose_rebase_destination(self) -> Mutation | None:
        state = self.state
        destination = state.selected_commit()
        if destination is None:
            self._status(NO_SELECTION_MESSAGE)
            return None
        source_index = self.rebase_source_index()
        if source_index is None:
            self._reset()
            self._status("Rebase source no longer exists")
            return None
        source = state.snapshot.commits[source_index]
        if destination.change_id == source.change_id:
            self._reset()
            self._status("Cannot rebase commit onto itself")
            return None
        return Mutation(Operation.REBASE, revision=revision_of(source), destination=revision_of(destination))

    # Modal entry

    def begin_edit_description(self) -> Commit | None:
        """Open the description form; returns the commit whose full text to load."""
        commit = self._require_commit("edit description")
        if commit is None:
            return None
        form = DescriptionForm(commit.change_id, commit.id, revision_of(commit))
        if commit.summary != NO_DESCRIPTION:
            form.text.value = commit.summary
        self._enter(Mode.EDIT_DESCRIPTION, form)
        self._status("Editing description (Ctrl+S to save, Esc to cancel)")
        return commit

    def description_loaded(self, commit_id: str, text: str) -> None:
        form = self.state.form
        if self.state.mode is Mode.EDIT_DESCRIPTION and isinstance(form, DescriptionForm):
            if form.commit_id == commit_id and not form.touched:
                form.text.value = text
                self.state.dirty = True

    def begin_create_bookmark(self) -> bool:
        commit = self._require_commit("create bookmark")
        if commit is None:
            return False
        state = self.state
        form = BookmarkForm(
            commit.change_id,
            commit.id,
            revision_of(commit),
            existing=existing_bookmarks(state.snapshot, state.selected),
        )
        self._enter(Mode.CREATE_BOOKMARK, form)
        self._status("New bookmark name (Tab to move an existing one)")
        return True

    def begin_bookmark_from_ticket(self, ticket: Ticket) -> bool:
        form = BookmarkForm("", "", "", ticket=ticket)
        form.name.value = bookmark_name_from_ticket(ticket.display_key, ticket.summary)
        self._enter(Mode.CREATE_BOOKMARK, form)
        self._status(f"Create branch for {ticket.display_key} (Enter to confirm)")
        return True

    def begin_create_pr(self, open_branches: Iterable[str]) -> bool:
        state = self.state
        commit = self._require_commit("create PR", mutable=False)
        if commit is None:
            return False
        target = pull_request_target(state.snapshot, state.selected)
        if target is None:
            self._status("No bookmark found for this commit or its ancestors. Create one with b first")
            return False
        if target.head in set(open_branches):
            self._status(f"A PR already exists for {target.head}; use u to update it")
            return False
        form = PullRequestForm(
            commit.change_id,
            commit.id,
            revision_of(commit),
            head=target.head,
            base=target.base,
            needs_move=target.needs_move,
        )
        form.title.value = target.head
        self._enter(Mode.CREATE_PR, form)
        self._status(f"Create PR {target.head} -> {target.base} (Ctrl+S to submit)")
        return True

    def begin_settings(self, settings: Settings) -> bool:
        self._enter(Mode.SETTINGS, settings_form_from(settings))
        self._status("Settings (Ctrl+S save, Ctrl+L save locally, Ctrl+G GitHub login)")
        return True

    def begin_login(self) -> bool:
        self._enter(Mode.EXTERNAL_LOGIN, LoginForm())
        self._status("Starting GitHub login...")
        return True

    def login_started(self, device_code: str, user_code: str, verification_uri: str, interval: int) -> bool:
        form = self.state.form
        if self.state.mode is not Mode.EXTERNAL_LOGIN or not isinstance(form, LoginForm):
            return False
        form.device_code = device_code
        form.user_code = user_code
        form.verification_uri = verification_uri
        form.interval = interval
        form.message = "Waiting for authorization..."
        self._status(f"Enter code {user_code} at {verification_uri}")
        return True

    # Form editing

    def type_key(self, key: str) -> bool:
        """Route an editing key into the focused text field."""
        form = self.state.form
        target: TextField | None = None
        if isinstance(form, DescriptionForm):
            target = form.text
            form.touched = True
        elif isinstance(form, PullRequestForm):
            target = form.fields()[form.focus]
        elif isinstance(form, BookmarkForm):
            if form.selected_existing >= 0:
                return False
            target = form.name
        elif isinstance(form, SettingsForm):
            item = form.focused()
            if item.kind is bool:
                if key == " ":
                    item.value.value = "false" if item.value.value == "true" else "true"
                    self.state.dirty = True
                    return True
                return False
            target = item.value
        if target is None or self.state.working:
            return False
        consumed = target.handle_key(key)
        if consumed:
            self.state.dirty = True
        return consumed

    def focus_next(self, step: int = 1) -> bool:
        form = self.state.form
        if isinstance(form, PullRequestForm):
            form.focus = (form.focus + step) % len(form.fields())
        elif isinstance(form, SettingsForm):
            form.focus = (form.focus + step) % len(form.entries)
        elif isinstance(form, BookmarkForm):
            # Tab toggles between the name input and the existing list.
            if form.selected_existing >= 0 or not form.existing:
                form.selected_existing = -1
            else:
                form.selected_existing = 0
        else:
            return False
        self.state.dirty = True
        return True

    def move_existing(self, delta: int) -> bool:
        form = self.state.form
        if not isinstance(form, BookmarkForm) or form.selected_existing < 0 or not form.existing:
            return False
        form.selected_existing = max(0, min(len(form.existing) - 1, form.selected_existing + delta))
        self.state.dirty = True
        return True

    # Submit / cancel / finish

    def submit(self, *, auto_in_progress: bool = False) -> Mutation | None:
        """Validate the active form; invalid input only updates the status."""
        state = self.state
        if state.working:
            self._status("Still working...")
            return None
        try:
            return self._build_submission(auto_in_progress)
        except ValidationFailure as exc:
            self._status(str(exc))
            return None

    def _build_submission(self, auto_in_progress: bool) -> Mutation | None:
        state = self.state
        form = state.form
        if state.mode is Mode.REBASE_DESTINATION:
            return self.choose_rebase_destination()
        if isinstance(form, DescriptionForm):
            return Mutation(Operation.DESCRIBE, revision=form.revision, text=form.text.value.strip())
        if isinstance(form, PullRequestForm):
            title = form.title.value.strip()
            if not title:
                raise ValidationFailure("Title is required")
            return Mutation(
                Operation.PR_CREATE,
                revision=form.revision,
                name=form.head,
                base=form.base,
                title=title,
                text=form.body.value.strip(),
                move_bookmark=form.needs_move,
            )
        if isinstance(form, BookmarkForm):
            if form.ticket is not None:
                return Mutation(
                    Operation.BRANCH_FROM_TICKET,
                    name=validate_bookmark_name(form.name.value),
                    ticket_key=form.ticket.key,
                    ticket_label=form.ticket.display_key,
                    auto_transition=auto_in_progress,
                )
            if 0 <= form.selected_existing < len(form.existing):
                return Mutation(
                    Operation.BOOKMARK_MOVE,
                    name=form.existing[form.selected_existing],
                    revision=form.revision,
                )
            return Mutation(
                Operation.BOOKMARK_CREATE,
                name=validate_bookmark_name(form.name.value),
                revision=form.revision,
            )
        return None

    def on_dispatched(self, mutation: Mutation) -> None:
        """The dispatcher accepted ``mutation``; modal forms wait for the result."""
        state = self.state
        if state.mode is Mode.REBASE_DESTINATION:
            self._reset()
        elif state.modal_active:
            state.working = True
        self._status(WORKING_STATUS.get(mutation.operation, "Working..."))

    def finish(self) -> bool:
        """Close a form that was waiting for its result; returns whether one was."""
        state = self.state
        if not state.working:
            return False
        self._reset()
        return True

    def cancel(self) -> bool:
        state = self.state
        if state.mode is Mode.NORMAL:
            return False
        message = _CANCEL_MESSAGES.get(state.mode, "Cancelled")
        self._reset()
        self._status(message)
        return True

    def _reset(self) -> None:
        state = self.state
        state.mode = Mode.NORMAL
        state.form = None
        state.working = False
        state.rebase_source_change_id = ""
        state.rebase_source_commit_id = ""
        state.dirty = True


__all__ = [
    "BookmarkForm",
    "DescriptionForm",
    "InteractionStateMachine",
    "LoginForm",
    "NO_SELECTION_MESSAGE",
    "PullRequestForm",
    "SETTINGS_FIELDS",
    "SettingsField",
    "SettingsForm",
    "TextField",
    "revision_of",
    "settings_form_from",
    "settings_from_form",
]
