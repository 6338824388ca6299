"""The event-loop side of the application.

``Engine.handle`` is the only entry point that changes ``AppState``. Every
message type has exactly one handler; keys are routed through
``KeyComboRegistry`` instances built from ``BINDINGS`` so the help view and
the dispatch table can never disagree.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from pathlib import Path

from ..config import Settings, save_settings
from ..errors import NotManagedRepository, ValidationFailure, describe_error
from ..input.bindings import BINDINGS, CONTEXT_BOOKMARK_FORM, CONTEXT_PULL_REQUESTS, CONTEXT_TICKETS
from ..input.key_registry import KeyComboRegistry
from ..input.keys import parse_mouse_col_row
from ..input.mouse import ZoneMap, resolve_zone
from ..messages import (
    MESSAGE_TYPES,
    ChangedFilesLoaded,
    CommandFailed,
    CommandSucceeded,
    DescriptionLoaded,
    DiffLoaded,
    KeyPressed,
    LoadFailed,
    LoadKind,
    LoginPollDue,
    LoginPolled,
    LoginStarted,
    Message,
    Operation,
    PullRequestsLoaded,
    PullRequestTick,
    RefreshMode,
    SnapshotLoaded,
    Tick,
    TicketsLoaded,
    TransitionsLoaded,
)
from ..models import Commit, RepositorySnapshot
from ..providers.github import SLOW_DOWN_SECONDS, DeviceCode, TokenPoll, poll_for_token, start_device_flow
from ..runtime.system import SystemActions
from .commands import Mutation, Services, run_mutation
from .derive import derive_branch_assignments, open_pr_branches
from .dispatcher import BUSY_MESSAGE, AsyncCommandDispatcher
from .modes import (
    BookmarkForm,
    InteractionStateMachine,
    LoginForm,
    PullRequestForm,
    SettingsForm,
    revision_of,
    settings_from_form,
)
from .reconcile import reconcile
from .scheduler import AutoRefreshScheduler, silent_refresh_allowed
from .state import AppState, Mode, View
from .workflows import (
    TRANSITION_BLOCKED,
    TRANSITION_DONE,
    TRANSITION_IN_PROGRESS,
    TRANSITION_LABELS,
    TRANSITION_NOT_STARTED,
    find_transition,
    prepare_tickets,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
GITHUB_MISSING_MESSAGE = "GitHub is not connected (press , to configure)"
TICKETS_MISSING_MESSAGE = "No ticket provider configured (press , to configure)"

_JJ_OPERATIONS = frozenset(
    {
        Operation.DESCRIBE,
        Operation.EDIT,
        Operation.NEW,
        Operation.SQUASH,
        Operation.ABANDON,
        Operation.REBASE,
        Operation.BOOKMARK_CREATE,
        Operation.BOOKMARK_MOVE,
        Operation.BOOKMARK_DELETE,
        Operation.BRANCH_FROM_TICKET,
        Operation.PR_CREATE,
        Operation.PR_UPDATE,
        Operation.FETCH,
        Operation.UNDO,
        Operation.INIT,
    }
)
_PR_OPERATIONS = frozenset({Operation.PR_CREATE, Operation.PR_UPDATE, Operation.PR_MERGE, Operation.PR_CLOSE})
_TICKET_OPERATIONS = frozenset({Operation.BRANCH_FROM_TICKET, Operation.TICKET_TRANSITION})


@dataclass(frozen=True)
class LoginFlow:
    """GitHub device-flow calls, run on worker threads."""

    start: Callable[[], DeviceCode] = start_device_flow
    poll: Callable[[str], TokenPoll] = poll_for_token


class Engine:
    """Owns ``AppState`` and turns messages into state changes and new work."""

    def __init__(
        self,
        services: Services,
        dispatcher: AsyncCommandDispatcher,
        scheduler: AutoRefreshScheduler,
        settings: Settings,
        *,
        repo_root: Path,
        build_services: Callable[[Settings], Services] | None = None,
        system: SystemActions | None = None,
        login: LoginFlow | None = None,
        state: AppState | None = None,
    ) -> None:
        self.state = state if state is not None else AppState()
        self.dispatcher = dispatcher
        self.scheduler = scheduler
        self.settings = settings
        self.repo_root = Path(repo_root)
        self.system = system if system is not None else SystemActions()
        self.login = login if login is not None else LoginFlow()
        self.page_size = DEFAULT_PAGE_SIZE
        self.zones = ZoneMap()
        self._announce_tickets = True
        self._loud_snapshot_requested = False
        self._build_services = build_services
        self.machine = InteractionStateMachine(lambda: self.state)
        self.services = services
        self._install_services(services)

        self._handlers: dict[type, Callable[[Message], None]] = {
            SnapshotLoaded: self._on_snapshot_loaded,
            ChangedFilesLoaded: self._on_changed_files_loaded,
            DiffLoaded: self._on_diff_loaded,
            DescriptionLoaded: self._on_description_loaded,
            PullRequestsLoaded: self._on_pull_requests_loaded,
            TicketsLoaded: self._on_tickets_loaded,
            TransitionsLoaded: self._on_transitions_loaded,
            LoadFailed: self._on_load_failed,
            CommandSucceeded: self._on_command_succeeded,
            CommandFailed: self._on_command_failed,
            Tick: self._on_tick,
            PullRequestTick: self._on_pull_request_tick,
            LoginPollDue: self._on_login_poll_due,
            LoginStarted: self._on_login_started,
            LoginPolled: self._on_login_polled,
            KeyPressed: self._on_key_pressed,
        }
        missing = [message_type.__name__ for message_type in MESSAGE_TYPES if message_type not in self._handlers]
        if missing:
            raise TypeError(f"no handler for {', '.join(missing)}")

        self.commands: dict[str, Callable[[], object]] = {
            "quit": self.quit,
            "refresh": self.refresh,
            "undo": lambda: self._dispatch(Mutation(Operation.UNDO)),
            "fetch": lambda: self._dispatch(Mutation(Operation.FETCH)),
            "view_graph": lambda: self.switch_view(View.GRAPH),
            "view_prs": lambda: self.switch_view(View.PULL_REQUESTS),
            "view_tickets": lambda: self.switch_view(View.TICKETS),
            "view_help": lambda: self.switch_view(View.HELP),
            "settings": lambda: self.machine.begin_settings(self.settings),
            "move_down": lambda: self.move_commit(1),
            "move_up": lambda: self.move_commit(-1),
            "page_down": lambda: self.move_commit(self.page_size),
            "page_up": lambda: self.move_commit(-self.page_size),
            "edit": lambda: self._dispatch(self.machine.edit()),
            "describe": self.begin_describe,
            "new": lambda: self._dispatch(self.machine.new()),
            "squash": lambda: self._dispatch(self.machine.squash()),
            "abandon": lambda: self._dispatch(self.machine.abandon()),
            "rebase": self.machine.begin_rebase,
            "bookmark": self.machine.begin_create_bookmark,
            "delete_bookmark": lambda: self._dispatch(self.machine.delete_bookmark()),
            "create_pr": self.begin_create_pr,
            "update_pr": self.update_pr,
            "toggle_diff": self.toggle_diff,
            "open_pr": self.open_pull_request,
            "merge_pr": lambda: self._pull_request_action(Operation.PR_MERGE, "merge"),
            "close_pr": lambda: self._pull_request_action(Operation.PR_CLOSE, "close"),
            "ticket_branch": self.begin_ticket_branch,
            "open_ticket": self.open_ticket,
            "toggle_status_mode": self.toggle_status_mode,
            "transition_in_progress": lambda: self.transition_ticket(TRANSITION_IN_PROGRESS),
            "transition_done": lambda: self.transition_ticket(TRANSITION_DONE),
            "transition_blocked": lambda: self.transition_ticket(TRANSITION_BLOCKED),
            "transition_not_started": lambda: self.transition_ticket(TRANSITION_NOT_STARTED),
            "submit": self.submit,
            "cancel": self.cancel,
            "next_field": lambda: self.machine.focus_next(1),
            "prev_field": lambda: self.machine.focus_next(-1),
            "save_settings_local": lambda: self.save_settings_form(local=True),
            "login": self.begin_login,
            "open_login_url": self.open_login_url,
            "copy_login_code": self.copy_login_code,
            "retry": self.retry,
            "dismiss_error": self.dismiss_error,
            "copy_error": self.copy_error,
            "init_repo": self.init_repository,
        }
        self.indexed_commands: dict[str, Callable[[int], object]] = {
            "select_commit": self.select_commit,
            "select_pr": self.select_pull_request,
            "select_ticket": self.select_ticket,
            "select_field": self.select_field,
            "select_bookmark": self.select_existing_bookmark,
        }
        overrides: dict[str, Mapping[str, Callable[[], object]]] = {
            CONTEXT_PULL_REQUESTS: {
                "move_down": lambda: self.move_pull_request(1),
                "move_up": lambda: self.move_pull_request(-1),
            },
            CONTEXT_TICKETS: {
                "move_down": lambda: self.move_ticket(1),
                "move_up": lambda: self.move_ticket(-1),
            },
            CONTEXT_BOOKMARK_FORM: {
                "move_down": lambda: self.machine.move_existing(1),
                "move_up": lambda: self.machine.move_existing(-1),
            },
        }
        contexts = {binding.context for binding in BINDINGS}
        self.registries: dict[str, KeyComboRegistry] = {
            context: KeyComboRegistry.from_bindings(context, BINDINGS, {**self.commands, **overrides.get(context, {})})
            for context in contexts
        }

    # Wiring

    def _install_services(self, services: Services) -> None:
        self.services = services
        tickets = services.tickets
        self.state.ticket_provider_name = tickets.name if tickets is not None else ""
        self.scheduler.set_pr_interval(self.settings.github_refresh_interval if services.host is not None else 0)

    def start(self) -> None:
        """Kick off the first Loud load."""
        self.request_snapshot(RefreshMode.LOUD)

    @property
    def busy(self) -> bool:
        return self.dispatcher.busy or self.state.working

    def handle(self, message: Message) -> None:
        self._handlers[type(message)](message)

    def _set_status(self, text: str) -> None:
        self.state.status = text
        self.state.dirty = True

    def _set_error(self, error: BaseException) -> None:
        self.state.error = error
        self.state.status = describe_error(error)
        self.state.dirty = True

    # Background loads

    def request_snapshot(self, mode: RefreshMode) -> bool:
        """Start a snapshot load; a Loud request made while one is pending upgrades it."""
        if self.state.loading:
            if mode is RefreshMode.LOUD:
                self._loud_snapshot_requested = True
            return False
        self.state.loading = True
        fetcher = self.services.fetcher
        self.dispatcher.load(
            LoadKind.SNAPSHOT,
            lambda: SnapshotLoaded(fetcher.fetch(), mode),
            mode=mode,
        )
        return True

    def load_commit_details(self, commit: Commit) -> None:
        jj = self.services.jj
        revision = revision_of(commit)
        self.dispatcher.load(
            LoadKind.CHANGED_FILES,
            lambda: ChangedFilesLoaded(commit.change_id, commit.id, tuple(jj.changed_files(revision))),
        )
        if self.state.show_diff:
            self.load_diff(commit)

    def load_diff(self, commit: Commit) -> None:
        jj = self.services.jj
        revision = revision_of(commit)
        self.dispatcher.load(LoadKind.DIFF, lambda: DiffLoaded(commit.id, jj.diff_text(revision)))

    def load_pull_requests(self, mode: RefreshMode = RefreshMode.LOUD) -> bool:
        host = self.services.host
        if host is None or self.state.pr_loading:
            return False
        self.state.pr_loading = True
        self.state.dirty = True
        self.dispatcher.load(
            LoadKind.PULL_REQUESTS,
            lambda: PullRequestsLoaded(tuple(host.list_pull_requests())),
            mode=mode,
        )
        return True

    def load_tickets(self, *, announce: bool = True) -> bool:
        """Reload tickets; ``announce`` reports the count in the status line."""
        provider = self.services.tickets
        if provider is None or self.state.tickets_loading:
            return False
        self._announce_tickets = announce
        excluded = self.settings.excluded_statuses(self.settings.resolved_ticket_provider())
        self.state.tickets_loading = True
        self.state.dirty = True
        self.dispatcher.load(
            LoadKind.TICKETS,
            lambda: TicketsLoaded(prepare_tickets(provider.list_assigned(), excluded)),
        )
        return True

    def load_transitions(self, ticket_key: str) -> None:
        provider = self.services.tickets
        if provider is None:
            return
        self.dispatcher.load(
            LoadKind.TRANSITIONS,
            lambda: TransitionsLoaded(ticket_key, tuple(provider.list_transitions(ticket_key))),
        )

    # Message handlers

    def _apply_snapshot(self, snapshot: RepositorySnapshot, mode: RefreshMode) -> bool:
        result = reconcile(self.state, snapshot, mode)
        if not result.applied:
            return False
        self.state = result.state
        if result.fetch_changed_files is not None:
            self.load_commit_details(result.fetch_changed_files)
        return True

    def _on_snapshot_loaded(self, message: SnapshotLoaded) -> None:
        self.state.loading = False
        mode = RefreshMode.LOUD if self._loud_snapshot_requested else message.mode
        self._loud_snapshot_requested = False
        self._apply_snapshot(message.snapshot, mode)

    def _on_changed_files_loaded(self, message: ChangedFilesLoaded) -> None:
        if message.commit_id != self.state.tracked_commit_id:
            logger.debug("dropping changed files for %s (no longer selected)", message.commit_id)
            return
        self.state.changed_files = message.files
        self.state.dirty = True

    def _on_diff_loaded(self, message: DiffLoaded) -> None:
        if message.commit_id != self.state.tracked_commit_id:
            return
        self.state.diff_text = message.text
        self.state.dirty = True

    def _on_description_loaded(self, message: DescriptionLoaded) -> None:
        self.machine.description_loaded(message.commit_id, message.text)

    def _on_pull_requests_loaded(self, message: PullRequestsLoaded) -> None:
        state = self.state
        state.pr_loading = False
        state.pull_requests = message.pull_requests
        state.selected_pr = max(0, min(state.selected_pr, len(state.pull_requests) - 1))
        state.dirty = True

    def _on_tickets_loaded(self, message: TicketsLoaded) -> None:
        state = self.state
        state.tickets_loading = False
        state.tickets = message.tickets
        state.selected_ticket = max(0, min(state.selected_ticket, len(state.tickets) - 1))
        state.dirty = True
        if state.view is View.TICKETS and self._announce_tickets:
            self._set_status(f"Loaded {len(state.tickets)} tickets")

    def _on_transitions_loaded(self, message: TransitionsLoaded) -> None:
        ticket = self.state.selected_ticket_value()
        if ticket is None or ticket.key != message.ticket_key:
            return
        self.state.transitions = message.transitions
        self.state.dirty = True

    def _on_load_failed(self, message: LoadFailed) -> None:
        state = self.state
        kind = message.kind
        if kind is LoadKind.SNAPSHOT:
            state.loading = False
            self._loud_snapshot_requested = False
            if isinstance(message.error, NotManagedRepository):
                state.not_managed = True
            self._set_error(message.error)
        elif kind in (LoadKind.CHANGED_FILES, LoadKind.DIFF, LoadKind.DESCRIPTION):
            self._set_status(describe_error(message.error))
        elif kind is LoadKind.PULL_REQUESTS:
            state.pr_loading = False
            if message.mode is RefreshMode.SILENT:
                self._set_status(f"PR refresh failed: {describe_error(message.error)}")
            else:
                self._set_error(message.error)
        elif kind is LoadKind.TICKETS:
            state.tickets_loading = False
            self._set_error(message.error)
        elif kind is LoadKind.TRANSITIONS:
            state.transition_mode = False
            self._set_error(message.error)
        elif kind is LoadKind.LOGIN:
            self.scheduler.cancel_login_poll()
            if state.mode is Mode.EXTERNAL_LOGIN:
                self.machine.cancel()
            self._set_error(message.error)

    def _on_command_succeeded(self, message: CommandSucceeded) -> None:
        self.dispatcher.acknowledge(message.dispatch_id)
        self.machine.finish()
        operation = message.operation
        if operation is Operation.INIT:
            self.state.not_managed = False
            self.state.error = None
        if message.snapshot is not None:
            self._apply_snapshot(message.snapshot, RefreshMode.LOUD)
        elif operation in _JJ_OPERATIONS:
            # The worker could not reload; fetch again without hiding the result.
            self.request_snapshot(RefreshMode.SILENT)
        if operation in _PR_OPERATIONS:
            self.load_pull_requests()
        if operation in _TICKET_OPERATIONS:
            self.state.transition_mode = False
            self.state.transitions = ()
            self.load_tickets(announce=False)
        if operation is Operation.PR_CREATE and message.url:
            self.system.open_url(message.url)
        logger.info("%s: %s", operation.value, message.status)
        self._set_status(message.status)

    def _on_command_failed(self, message: CommandFailed) -> None:
        self.dispatcher.acknowledge(message.dispatch_id)
        self.machine.finish()
        if isinstance(message.error, ValidationFailure):
            self._set_status(str(message.error))
            return
        self._set_error(message.error)

    def _on_tick(self, message: Tick) -> None:
        if silent_refresh_allowed(self.state):
            self.request_snapshot(RefreshMode.SILENT)
        else:
            logger.debug("auto refresh skipped")

    def _on_pull_request_tick(self, message: PullRequestTick) -> None:
        if self.state.view is View.PULL_REQUESTS and self.state.error is None:
            self.load_pull_requests(RefreshMode.SILENT)

    def _login_form(self) -> LoginForm | None:
        form = self.state.form
        if self.state.mode is Mode.EXTERNAL_LOGIN and isinstance(form, LoginForm):
            return form
        return None

    def _on_login_poll_due(self, message: LoginPollDue) -> None:
        form = self._login_form()
        if form is None or not form.device_code:
            return
        poll = self.login.poll
        device_code = form.device_code

        def work() -> LoginPolled:
            result = poll(device_code)
            return LoginPolled(token=result.token, slow_down=result.slow_down)

        self.dispatcher.load(LoadKind.LOGIN, work)

    def _on_login_started(self, message: LoginStarted) -> None:
        if not self.machine.login_started(
            message.device_code, message.user_code, message.verification_uri, message.interval
        ):
            return
        self.system.open_url(message.verification_uri)
        self.scheduler.schedule_login_poll(message.interval)

    def _on_login_polled(self, message: LoginPolled) -> None:
        form = self._login_form()
        if form is None:
            return
        if message.token:
            self.scheduler.cancel_login_poll()
            self.machine.cancel()
            self._apply_settings(replace(self.settings, github_token=message.token), local=False)
            self._set_status("Logged in to GitHub")
            return
        if message.slow_down:
            form.interval += SLOW_DOWN_SECONDS
        self.scheduler.schedule_login_poll(form.interval)

    def _on_key_pressed(self, message: KeyPressed) -> None:
        self.handle_key(message.key)

    # Key routing

    def handle_key(self, key: str) -> bool:
        if key.startswith("MOUSE"):
            return self.handle_mouse(key)
        for context in self.state.key_contexts():
            if self.registries[context].dispatch(key):
                return True
        if self.state.modal_active and self.state.error is None:
            return self.machine.type_key(key)
        return False

    def handle_mouse(self, key: str) -> bool:
        if key.startswith("MOUSE_WHEEL_"):
            if self.state.error is not None or self.state.modal_active:
                return False
            step = 1 if key.startswith("MOUSE_WHEEL_DOWN") else -1
            return self.handle_key("DOWN" if step > 0 else "UP")
        if not key.startswith("MOUSE_LEFT_DOWN"):
            return False
        col, row = parse_mouse_col_row(key)
        if col is None or row is None:
            return False
        return self.click(self.zones.hit(col - 1, row - 1))

    def click(self, zone_name: str) -> bool:
        target = resolve_zone(zone_name) if zone_name else None
        if target is None:
            return False
        if target.index is not None:
            handler = self.indexed_commands.get(target.command)
            if handler is None:
                return False
            handler(target.index)
            return True
        command = self.commands.get(target.command)
        if command is None:
            logger.debug("zone %s names unknown command %s", zone_name, target.command)
            return False
        command()
        return True

    # Commands

    def quit(self) -> None:
        self.state.quit_requested = True

    def refresh(self) -> None:
        self.request_snapshot(RefreshMode.LOUD)
        if self.state.view is View.PULL_REQUESTS:
            self.load_pull_requests()
        elif self.state.view is View.TICKETS:
            self.load_tickets()

    def switch_view(self, view: View) -> None:
        state = self.state
        state.view = view
        state.transition_mode = False
        state.dirty = True
        if view is View.PULL_REQUESTS:
            if self.services.host is None:
                self._set_status(GITHUB_MISSING_MESSAGE)
            else:
                self.load_pull_requests()
        elif view is View.TICKETS:
            if self.services.tickets is None:
                self._set_status(TICKETS_MISSING_MESSAGE)
            else:
                self.load_tickets()

    def select_commit(self, index: int) -> bool:
        state = self.state
        commit = state.snapshot.commit_at(index)
        if commit is None:
            return False
        if index == state.selected:
            return False
        state.selected = index
        state.tracked_change_id = commit.change_id
        state.tracked_commit_id = commit.id
        state.changed_files = ()
        state.diff_text = ""
        state.dirty = True
        self.load_commit_details(commit)
        return True

    def move_commit(self, delta: int) -> bool:
        state = self.state
        count = len(state.snapshot)
        if not count:
            return False
        current = state.selected if state.selected is not None else 0
        return self.select_commit(max(0, min(count - 1, current + delta)))

    def select_pull_request(self, index: int) -> bool:
        state = self.state
        if not 0 <= index < len(state.pull_requests):
            return False
        state.view = View.PULL_REQUESTS
        state.selected_pr = index
        state.dirty = True
        return True

    def move_pull_request(self, delta: int) -> bool:
        if not self.state.pull_requests:
            return False
        last = len(self.state.pull_requests) - 1
        return self.select_pull_request(max(0, min(last, self.state.selected_pr + delta)))

    def select_ticket(self, index: int) -> bool:
        state = self.state
        if not 0 <= index < len(state.tickets):
            return False
        if index != state.selected_ticket:
            state.transition_mode = False
            state.transitions = ()
        state.view = View.TICKETS
        state.selected_ticket = index
        state.dirty = True
        return True

    def move_ticket(self, delta: int) -> bool:
        if not self.state.tickets:
            return False
        last = len(self.state.tickets) - 1
        return self.select_ticket(max(0, min(last, self.state.selected_ticket + delta)))

    def select_field(self, index: int) -> bool:
        form = self.state.form
        if isinstance(form, SettingsForm) and 0 <= index < len(form.entries):
            form.focus = index
        elif isinstance(form, PullRequestForm) and 0 <= index < len(form.fields()):
            form.focus = index
        else:
            return False
        self.state.dirty = True
        return True

    def select_existing_bookmark(self, index: int) -> bool:
        form = self.state.form
        if not isinstance(form, BookmarkForm) or not 0 <= index < len(form.existing):
            return False
        form.selected_existing = index
        self.state.dirty = True
        return True

    def _dispatch(self, mutation: Mutation | None) -> bool:
        if mutation is None:
            return False
        services = self.services
        dispatch_id = self.dispatcher.dispatch(mutation.operation, lambda: run_mutation(mutation, services))
        if dispatch_id is None:
            self._set_status(BUSY_MESSAGE)
            return False
        self.machine.on_dispatched(mutation)
        return True

    def begin_describe(self) -> None:
        commit = self.machine.begin_edit_description()
        if commit is None:
            return
        jj = self.services.jj
        revision = revision_of(commit)
        self.dispatcher.load(
            LoadKind.DESCRIPTION,
            lambda: DescriptionLoaded(commit.id, jj.description(revision)),
        )

    def begin_create_pr(self) -> bool:
        if self.services.host is None:
            self._set_status(GITHUB_MISSING_MESSAGE)
            return False
        return self.machine.begin_create_pr(open_pr_branches(self.state.pull_requests))

    def update_pr(self) -> bool:
        if self.services.host is None:
            self._set_status(GITHUB_MISSING_MESSAGE)
            return False
        assignments = derive_branch_assignments(self.state.snapshot, open_pr_branches(self.state.pull_requests))
        return self._dispatch(self.machine.update_pr(assignments))

    def toggle_diff(self) -> None:
        state = self.state
        state.show_diff = not state.show_diff
        state.dirty = True
        commit = state.selected_commit()
        if state.show_diff and commit is not None and not state.diff_text:
            self.load_diff(commit)

    def open_pull_request(self) -> bool:
        pr = self.state.selected_pull_request()
        if pr is None or not pr.url:
            return False
        return self.system.open_url(pr.url)

    def _pull_request_action(self, operation: Operation, verb: str) -> bool:
        pr = self.state.selected_pull_request()
        if pr is None:
            self._set_status("No pull request selected")
            return False
        if not pr.is_open:
            self._set_status(f"Cannot {verb} PR #{pr.number}: it is {pr.state}")
            return False
        return self._dispatch(Mutation(operation, number=pr.number, name=pr.head_branch))

    def begin_ticket_branch(self) -> bool:
        ticket = self.state.selected_ticket_value()
        if ticket is None:
            self._set_status("No ticket selected")
            return False
        return self.machine.begin_bookmark_from_ticket(ticket)

    def open_ticket(self) -> bool:
        ticket = self.state.selected_ticket_value()
        provider = self.services.tickets
        if ticket is None or provider is None:
            return False
        return self.system.open_url(provider.url(ticket))

    def toggle_status_mode(self) -> None:
        state = self.state
        ticket = state.selected_ticket_value()
        if state.transition_mode or ticket is None:
            state.transition_mode = False
            state.transitions = ()
            state.dirty = True
            return
        state.transition_mode = True
        state.transitions = ()
        self._set_status("Status: i In Progress, D Done, B Blocked, N Not Started (Esc to leave)")
        self.load_transitions(ticket.key)

    def transition_ticket(self, kind: str) -> bool:
        ticket = self.state.selected_ticket_value()
        if ticket is None:
            return False
        transition = find_transition(self.state.transitions, kind)
        if transition is None:
            self._set_status(f"No '{TRANSITION_LABELS[kind]}' transition available for {ticket.display_key}")
            return False
        return self._dispatch(
            Mutation(
                Operation.TICKET_TRANSITION,
                ticket_key=ticket.key,
                ticket_label=ticket.display_key,
                transition_id=transition.id,
                text=transition.name,
            )
        )

    def submit(self) -> bool:
        if self.state.mode is Mode.SETTINGS:
            return self.save_settings_form(local=False)
        return self._dispatch(self.machine.submit(auto_in_progress=self.settings.ticket_auto_in_progress))

    def cancel(self) -> bool:
        if self.state.mode is Mode.EXTERNAL_LOGIN:
            self.scheduler.cancel_login_poll()
        return self.machine.cancel()

    def save_settings_form(self, *, local: bool) -> bool:
        form = self.state.form
        if not isinstance(form, SettingsForm):
            return False
        try:
            settings = settings_from_form(form, self.settings)
        except ValidationFailure as exc:
            self._set_status(str(exc))
            return False
        path = self._apply_settings(settings, local=local)
        if path is None:
            return False
        self.machine.cancel()
        self._set_status(f"Settings saved to {path}")
        return True

    def _apply_settings(self, settings: Settings, *, local: bool) -> Path | None:
        try:
            path = save_settings(settings, self.repo_root, local=local, base=self.settings)
        except OSError as exc:
            self._set_status(f"Could not save settings: {exc}")
            return None
        self.settings = settings
        if self._build_services is not None:
            self._install_services(self._build_services(settings))
        if self.services.host is not None:
            self.load_pull_requests()
        return path

    def begin_login(self) -> None:
        self.machine.begin_login()
        start = self.login.start

        def work() -> LoginStarted:
            code = start()
            return LoginStarted(code.device_code, code.user_code, code.verification_uri, code.interval)

        self.dispatcher.load(LoadKind.LOGIN, work)

    def open_login_url(self) -> bool:
        form = self._login_form()
        if form is None or not form.verification_uri:
            return False
        return self.system.open_url(form.verification_uri)

    def copy_login_code(self) -> bool:
        form = self._login_form()
        if form is None or not form.user_code:
            return False
        copied = self.system.copy_to_clipboard(form.user_code)
        self._set_status("Code copied to clipboard" if copied else "Could not copy: no clipboard tool found")
        return copied

    def retry(self) -> None:
        self.state.error = None
        self.state.dirty = True
        self.request_snapshot(RefreshMode.LOUD)

    def dismiss_error(self) -> None:
        self.state.error = None
        self._set_status("")

    def copy_error(self) -> bool:
        error = self.state.error
        if error is None:
            return False
        copied = self.system.copy_to_clipboard(describe_error(error))
        self._set_status("Error copied to clipboard" if copied else "Could not copy: no clipboard tool found")
        return copied

    def init_repository(self) -> bool:
        if not self.state.not_managed:
            return False
        if not self._dispatch(Mutation(Operation.INIT)):
            return False
        self.state.error = None
        return True


__all__ = ["DEFAULT_PAGE_SIZE", "Engine", "GITHUB_MISSING_MESSAGE", "LoginFlow", "TICKETS_MISSING_MESSAGE"]
