"""Compose one full-screen frame from ``AppState``.

Rendering is a pure function of state and terminal size. Every clickable
span is recorded in the returned ``ZoneMap`` under the same command names
the key bindings use, so a click and a key press take the same path.
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass, field

from ..errors import ExternalToolFailure, describe_error
from ..engine.derive import derive_branch_assignments, open_pr_branches
from ..engine.modes import BookmarkForm, DescriptionForm, LoginForm, PullRequestForm, SettingsForm
from ..engine.state import AppState, View
from ..input.bindings import (
    BINDINGS,
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
    ZONE_ACTION_PREFIX,
    ZONE_TAB_PREFIX,
    key_label,
)
from ..input.mouse import ZoneMap
from .ansi import BOLD, CYAN, DIM, GREEN, RED, REVERSE, YELLOW, display_width, pad_ansi_line, paint, strip_ansi
from .graph import build_graph_rows, commit_actions, header_row_of, scroll_start
from .highlight import DEFAULT_STYLE, highlight_diff, sanitize_terminal_text

CURSOR = "█"
SECRET_MASK = "•"
INIT_BUTTON = "[ Initialize Repository (i) ]"

TABS: tuple[tuple[str, str, View | None], ...] = (
    ("graph", "Graph", View.GRAPH),
    ("prs", "PRs", View.PULL_REQUESTS),
    ("tickets", "Tickets", View.TICKETS),
    ("settings", "Settings", None),
    ("help", "Help", View.HELP),
)

ACTION_BARS: dict[str, tuple[tuple[str, str], ...]] = {
    CONTEXT_PULL_REQUESTS: (
        ("open_pr", "Open"),
        ("merge_pr", "Merge"),
        ("close_pr", "Close"),
        ("refresh", "Refresh"),
    ),
    CONTEXT_TICKETS: (
        ("ticket_branch", "Branch"),
        ("open_ticket", "Open"),
        ("toggle_status_mode", "Status"),
    ),
    CONTEXT_TICKET_STATUS: (
        ("transition_in_progress", "In Progress"),
        ("transition_done", "Done"),
        ("transition_blocked", "Blocked"),
        ("transition_not_started", "Not Started"),
        ("toggle_status_mode", "Back"),
    ),
    CONTEXT_HELP: (("view_graph", "Back"),),
    CONTEXT_REBASE: (("submit", "Rebase here"), ("cancel", "Cancel")),
    CONTEXT_FORM: (("submit", "Save"), ("next_field", "Next field"), ("cancel", "Cancel")),
    CONTEXT_BOOKMARK_FORM: (("submit", "Confirm"), ("next_field", "Existing"), ("cancel", "Cancel")),
    CONTEXT_SETTINGS: (
        ("submit", "Save"),
        ("save_settings_local", "Save locally"),
        ("login", "GitHub login"),
        ("cancel", "Close"),
    ),
    CONTEXT_LOGIN: (("open_login_url", "Open page"), ("copy_login_code", "Copy code"), ("cancel", "Cancel")),
    CONTEXT_ERROR: (("retry", "Retry"), ("dismiss_error", "Dismiss"), ("copy_error", "Copy"), ("quit", "Quit")),
}

HELP_SECTIONS: tuple[tuple[str, str], ...] = (
    (CONTEXT_GLOBAL, "Global"),
    (CONTEXT_GRAPH, "Graph"),
    (CONTEXT_PULL_REQUESTS, "Pull requests"),
    (CONTEXT_TICKETS, "Tickets"),
    (CONTEXT_TICKET_STATUS, "Ticket status"),
    (CONTEXT_REBASE, "Rebase"),
    (CONTEXT_FORM, "Forms"),
    (CONTEXT_BOOKMARK_FORM, "Bookmark form"),
    (CONTEXT_SETTINGS, "Settings"),
    (CONTEXT_LOGIN, "GitHub login"),
    (CONTEXT_ERROR, "Errors"),
)

_FILE_STATUS_COLORS = {"A": GREEN, "D": RED, "M": YELLOW, "R": CYAN, "C": CYAN}


@dataclass(frozen=True)
class RenderOptions:
    width: int
    height: int
    color: bool = True
    busy: bool = False
    diff_style: str = DEFAULT_STYLE
    rebase_source_index: int | None = None


@dataclass(frozen=True)
class Frame:
    lines: tuple[str, ...]
    zones: ZoneMap = field(default_factory=ZoneMap)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


class _Line:
    """A row assembled from segments, remembering the columns of zoned segments."""

    def __init__(self) -> None:
        self.parts: list[str] = []
        self.spans: list[tuple[str, int, int]] = []
        self.col = 0

    def add(self, text: str, zone: str = "") -> _Line:
        width = display_width(text)
        if zone:
            self.spans.append((zone, self.col, self.col + width))
        self.parts.append(text)
        self.col += width
        return self

    def text(self) -> str:
        return "".join(self.parts)


class _Canvas:
    def __init__(self, width: int, color: bool) -> None:
        self.width = max(1, width)
        self.color = color
        self.lines: list[str] = []
        self.zones = ZoneMap()

    @property
    def row(self) -> int:
        return len(self.lines)

    def emit(self, content: str | _Line = "", *, zone: str = "", selected: bool = False) -> None:
        """Append one row; ``zone`` makes the whole row clickable."""
        row = self.row
        if isinstance(content, _Line):
            text = content.text()
            for name, start, end in content.spans:
                self.zones.add(name, row, start, min(end, self.width))
        else:
            text = content
        if selected:
            plain = strip_ansi(text)
            if self.color:
                text = paint(pad_ansi_line(plain, self.width), REVERSE)
            else:
                text = pad_ansi_line("> " + plain, self.width)
        else:
            text = pad_ansi_line(text, self.width)
        if zone:
            self.zones.add(zone, row, 0, self.width)
        self.lines.append(text)

    def fill_to(self, rows: int) -> None:
        while self.row < rows:
            self.emit()


def _key_for(context: str, command: str) -> str:
    for scope in (context, CONTEXT_GLOBAL):
        for binding in BINDINGS:
            if binding.context == scope and binding.command == command:
                return key_label(binding.keys[0])
    return ""


def _context_actions(state: AppState, context: str) -> list[tuple[str, str]]:
    if context == CONTEXT_GRAPH:
        assignments = derive_branch_assignments(state.snapshot, open_pr_branches(state.pull_requests))
        return commit_actions(state.selected_commit(), assignments)
    return list(ACTION_BARS.get(context, ()))


def _action_line(canvas: _Canvas, state: AppState, context: str) -> _Line:
    """Buttons as ``Label (key)``, each clickable under ``action:<command>``."""
    line = _Line()
    for command, label in _context_actions(state, context):
        key = _key_for(context, command)
        if not key:
            continue
        line.add(" ")
        line.add(f"{label} ({paint(key, BOLD, color=canvas.color)})", zone=ZONE_ACTION_PREFIX + command)
        line.add(" ")
    return line


def _render_tabs(canvas: _Canvas, state: AppState, *, clickable: bool) -> None:
    line = _Line().add(paint(" jjview ", BOLD, CYAN, color=canvas.color))
    for name, label, view in TABS:
        if view is None:
            active = isinstance(state.form, SettingsForm)
        else:
            active = view is state.view and not state.modal_active
        text = f" {label} "
        text = paint(text, REVERSE, color=canvas.color) if active else text
        line.add(text, zone=ZONE_TAB_PREFIX + name if clickable else "")
        line.add("│")
    canvas.emit(line)


def _render_status(canvas: _Canvas, state: AppState, options: RenderOptions) -> None:
    indicators = []
    if state.loading:
        indicators.append("loading")
    if state.pr_loading:
        indicators.append("PRs…")
    if state.tickets_loading:
        indicators.append("tickets…")
    if options.busy or state.working:
        indicators.append("working…")
    if state.ticket_provider_name:
        indicators.append(state.ticket_provider_name)
    right = " ".join(indicators)
    status = sanitize_terminal_text(state.status).replace("\n", " ")
    room = max(0, canvas.width - display_width(right) - 2)
    left = status if display_width(status) <= room else status[: max(0, room - 1)] + "…"
    gap = max(1, canvas.width - display_width(left) - display_width(right) - 1)
    text = f" {left}{' ' * gap}{right}"
    canvas.emit(paint(pad_ansi_line(text, canvas.width), REVERSE, color=canvas.color))


# Views


def _render_graph(canvas: _Canvas, state: AppState, options: RenderOptions, rows: int) -> None:
    start_row = canvas.row
    snapshot = state.snapshot
    if not len(snapshot):
        canvas.emit("  Loading commits…" if state.loading else "  No commits to show")
        canvas.fill_to(start_row + rows)
        return
    commit = state.selected_commit()
    detail_rows = max(4, rows // 3) if commit is not None and rows >= 10 else 0
    graph_rows = rows - detail_rows - (1 if detail_rows else 0)
    graph = build_graph_rows(
        snapshot,
        pull_requests=state.pull_requests,
        selected=state.selected,
        rebase_source_index=options.rebase_source_index,
        color=canvas.color,
    )
    start = scroll_start(len(graph), header_row_of(graph, state.selected), graph_rows)
    for row in graph[start : start + graph_rows]:
        canvas.emit(
            row.text,
            zone=f"commit:{row.commit_index}",
            selected=row.header and row.commit_index == state.selected,
        )
    canvas.fill_to(start_row + graph_rows)
    if not detail_rows or commit is None:
        return

    title = " Diff " if state.show_diff else " Changed files "
    canvas.emit(paint("─" * 2 + title + "─" * max(0, canvas.width - len(title) - 2), DIM, color=canvas.color))
    details = [
        f"{paint(commit.change_id, BOLD, color=canvas.color)} {commit.id}  {commit.author}  {commit.timestamp}",
    ]
    if state.show_diff:
        diff = highlight_diff(state.diff_text, style=options.diff_style, color=canvas.color)
        details.extend(diff or ["  Loading diff…"])
    elif state.changed_files:
        for changed in state.changed_files:
            status = paint(changed.status, _FILE_STATUS_COLORS.get(changed.status, ""), color=canvas.color)
            details.append(f"  {status} {changed.path}")
    else:
        details.append("  (no changes)")
    for text in details[: detail_rows]:
        canvas.emit(text)
    canvas.fill_to(start_row + rows)


def _scrolled(count: int, selected: int, rows: int) -> range:
    start = scroll_start(count, selected, rows)
    return range(start, min(count, start + rows))


def _render_pull_requests(canvas: _Canvas, state: AppState, rows: int) -> None:
    start_row = canvas.row
    prs = state.pull_requests
    if not prs:
        canvas.emit("  Loading pull requests…" if state.pr_loading else "  No pull requests")
        canvas.fill_to(start_row + rows)
        return
    detail_rows = min(6, rows // 3) if rows >= 10 else 0
    list_rows = rows - detail_rows
    state_colors = {"open": GREEN, "merged": CYAN, "closed": RED}
    for index in _scrolled(len(prs), state.selected_pr, list_rows):
        pr = prs[index]
        badge = paint(f"{pr.state:<7}", state_colors.get(pr.state, ""), color=canvas.color)
        canvas.emit(
            f"  #{pr.number:<5} {badge} {pr.title}  {pr.head_branch} → {pr.base_branch}",
            zone=f"pr:{index}",
            selected=index == state.selected_pr,
        )
    canvas.fill_to(start_row + list_rows)
    pr = state.selected_pull_request()
    if detail_rows and pr is not None:
        canvas.emit(paint(pr.url, DIM, color=canvas.color))
        body = [line for line in sanitize_terminal_text(pr.body).splitlines() if line.strip()]
        for line in body[: detail_rows - 1]:
            canvas.emit("  " + line)
    canvas.fill_to(start_row + rows)


def _render_tickets(canvas: _Canvas, state: AppState, rows: int) -> None:
    start_row = canvas.row
    tickets = state.tickets
    if not tickets:
        canvas.emit("  Loading tickets…" if state.tickets_loading else "  No tickets assigned")
        canvas.fill_to(start_row + rows)
        return
    detail_rows = min(8, rows // 3) if rows >= 10 else 0
    list_rows = rows - detail_rows
    key_width = max(len(ticket.display_key) for ticket in tickets)
    for index in _scrolled(len(tickets), state.selected_ticket, list_rows):
        ticket = tickets[index]
        status = paint(f"{ticket.status:<14}", YELLOW, color=canvas.color)
        canvas.emit(
            f"  {ticket.display_key:<{key_width}} {status} {ticket.summary}",
            zone=f"ticket:{index}",
            selected=index == state.selected_ticket,
        )
    canvas.fill_to(start_row + list_rows)
    ticket = state.selected_ticket_value()
    if detail_rows and ticket is not None:
        if state.transition_mode:
            names = ", ".join(transition.name for transition in state.transitions)
            canvas.emit(paint("Available: " + (names or "loading…"), BOLD, color=canvas.color))
        meta = "  ".join(part for part in (ticket.type, ticket.priority) if part)
        if meta:
            canvas.emit(paint(meta, DIM, color=canvas.color))
        description = [line for line in sanitize_terminal_text(ticket.description).splitlines() if line.strip()]
        for line in description:
            if canvas.row >= start_row + rows:
                break
            canvas.emit("  " + line)
    canvas.fill_to(start_row + rows)


def _render_help(canvas: _Canvas, rows: int) -> None:
    start_row = canvas.row
    lines: list[str] = []
    for context, title in HELP_SECTIONS:
        lines.append(paint(title, BOLD, CYAN, color=canvas.color))
        for binding in BINDINGS:
            if binding.context != context:
                continue
            keys = ", ".join(key_label(key) for key in binding.keys)
            lines.append(f"  {keys:<22} {binding.help}")
        lines.append("")
    for text in lines[:rows]:
        canvas.emit(text)
    canvas.fill_to(start_row + rows)


# Overlays


def _wrapped(text: str, width: int) -> list[str]:
    out: list[str] = []
    for paragraph in sanitize_terminal_text(text).splitlines() or [""]:
        out.extend(textwrap.wrap(paragraph, max(10, width)) or [""])
    return out


def _render_error(canvas: _Canvas, state: AppState, rows: int) -> None:
    start_row = canvas.row
    error = state.error
    canvas.emit()
    if state.not_managed:
        canvas.emit(paint("  This directory is not a jj repository.", BOLD, color=canvas.color))
        canvas.emit()
        canvas.emit(_Line().add("  ").add(paint(INIT_BUTTON, BOLD, GREEN, color=canvas.color), ZONE_ACTION_PREFIX + "init_repo"))
        canvas.emit()
    canvas.emit(paint("  Error", BOLD, RED, color=canvas.color))
    for line in _wrapped(describe_error(error) if error is not None else "", canvas.width - 4):
        canvas.emit("  " + line)
    if isinstance(error, ExternalToolFailure) and error.stderr.strip():
        canvas.emit()
        for line in _wrapped(error.stderr.strip(), canvas.width - 4):
            if canvas.row >= start_row + rows:
                break
            canvas.emit(paint("  " + line, DIM, color=canvas.color))
    canvas.fill_to(start_row + rows)


def _field_line(label: str, value: str, *, focused: bool, zone: str, color: bool) -> _Line:
    marker = paint("›", BOLD, CYAN, color=color) if focused else " "
    cursor = CURSOR if focused else ""
    return _Line().add(f" {marker} {label}: {value}{cursor}", zone=zone)


def _render_description_form(canvas: _Canvas, form: DescriptionForm, rows: int) -> None:
    canvas.emit(paint(f"  Describe {form.change_id}", BOLD, color=canvas.color))
    canvas.emit()
    lines = form.text.value.split("\n")
    lines[-1] += CURSOR
    for line in lines[-max(1, rows - 3) :]:
        canvas.emit("  │ " + line)


def _render_pull_request_form(canvas: _Canvas, form: PullRequestForm, end_row: int) -> None:
    canvas.emit(paint(f"  Create pull request {form.head} → {form.base}", BOLD, color=canvas.color))
    if form.needs_move:
        canvas.emit(paint(f"  Bookmark {form.head} will be moved to {form.change_id}", YELLOW, color=canvas.color))
    canvas.emit()
    canvas.emit(_field_line("Title", form.title.value, focused=form.focus == 0, zone="field:0", color=canvas.color))
    canvas.emit(_field_line("Body", "", focused=False, zone="field:1", color=canvas.color))
    body = form.body.value.split("\n")
    if form.focus == 1:
        body[-1] += CURSOR
    for line in body[-max(1, end_row - canvas.row) :]:
        canvas.emit(_Line().add("    │ " + line, zone="field:1"))


def _render_bookmark_form(canvas: _Canvas, form: BookmarkForm) -> None:
    if form.ticket is not None:
        title = f"  Create branch for {form.ticket.display_key}: {form.ticket.summary}"
    else:
        title = f"  Bookmark for {form.change_id}"
    canvas.emit(paint(title, BOLD, color=canvas.color))
    canvas.emit()
    canvas.emit(_field_line("Name", form.name.value, focused=form.selected_existing < 0, zone="", color=canvas.color))
    if form.existing:
        canvas.emit()
        canvas.emit("  Or move an existing bookmark here (Tab):")
        for index, name in enumerate(form.existing):
            canvas.emit(f"    {name}", zone=f"bookmark:{index}", selected=index == form.selected_existing)


def _render_settings_form(canvas: _Canvas, form: SettingsForm, rows: int) -> None:
    canvas.emit(paint("  Settings", BOLD, color=canvas.color))
    canvas.emit()
    label_width = max(len(item.label) for item in form.entries)
    for index in _scrolled(len(form.entries), form.focus, max(1, rows - 2)):
        item = form.entries[index]
        value = item.value.value
        if item.secret and value:
            value = SECRET_MASK * min(len(value), 12)
        focused = index == form.focus
        canvas.emit(
            _field_line(item.label.ljust(label_width), value, focused=focused, zone=f"field:{index}", color=canvas.color)
        )


def _render_login_form(canvas: _Canvas, form: LoginForm) -> None:
    canvas.emit(paint("  GitHub login", BOLD, color=canvas.color))
    canvas.emit()
    canvas.emit("  " + form.message)
    if form.user_code:
        canvas.emit()
        canvas.emit(_Line().add("  1. Open ").add(form.verification_uri, ZONE_ACTION_PREFIX + "open_login_url"))
        canvas.emit(
            _Line()
            .add("  2. Enter code: ")
            .add(paint(form.user_code, BOLD, GREEN, color=canvas.color), ZONE_ACTION_PREFIX + "copy_login_code")
        )


def _render_modal(canvas: _Canvas, state: AppState, rows: int) -> None:
    start_row = canvas.row
    form = state.form
    if isinstance(form, DescriptionForm):
        _render_description_form(canvas, form, rows)
    elif isinstance(form, PullRequestForm):
        _render_pull_request_form(canvas, form, start_row + rows)
    elif isinstance(form, BookmarkForm):
        _render_bookmark_form(canvas, form)
    elif isinstance(form, SettingsForm):
        _render_settings_form(canvas, form, rows)
    elif isinstance(form, LoginForm):
        _render_login_form(canvas, form)
    if state.working:
        canvas.emit()
        canvas.emit(paint("  Working…", YELLOW, color=canvas.color))
    # Forms taller than the terminal lose their tail rows.
    del canvas.lines[start_row + rows :]
    canvas.zones.truncate(start_row + rows)
    canvas.fill_to(start_row + rows)


def render_frame(state: AppState, options: RenderOptions) -> Frame:
    """Lay out tabs, the active body, the action bar and the status line."""
    canvas = _Canvas(options.width, options.color)
    overlay = state.error is not None or state.modal_active
    _render_tabs(canvas, state, clickable=not overlay)
    body_rows = max(1, options.height - 3)
    if state.error is not None:
        _render_error(canvas, state, body_rows)
    elif state.modal_active:
        _render_modal(canvas, state, body_rows)
    elif state.view is View.PULL_REQUESTS:
        _render_pull_requests(canvas, state, body_rows)
    elif state.view is View.TICKETS:
        _render_tickets(canvas, state, body_rows)
    elif state.view is View.HELP:
        _render_help(canvas, body_rows)
    else:
        _render_graph(canvas, state, options, body_rows)
    canvas.emit(_action_line(canvas, state, state.key_contexts()[0]))
    _render_status(canvas, state, options)
    zones = canvas.zones
    if len(canvas.lines) > options.height:
        # Tiny terminals: keep the status line, drop body rows.
        kept = canvas.lines[: max(0, options.height - 1)] + canvas.lines[-1:]
        return Frame(tuple(kept[: options.height]), zones)
    return Frame(tuple(canvas.lines), zones)


__all__ = ["ACTION_BARS", "Frame", "INIT_BUTTON", "RenderOptions", "TABS", "render_frame"]
