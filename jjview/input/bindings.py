"""The flat command table: every key binding and what it means.

Key handling and the help view both read ``BINDINGS``; click zones name the
same commands, so keyboard and mouse share one set of entry points.
"""

from __future__ import annotations

from dataclasses import dataclass

CONTEXT_GLOBAL = "global"
CONTEXT_GRAPH = "graph"
CONTEXT_PULL_REQUESTS = "pull-requests"
CONTEXT_TICKETS = "tickets"
CONTEXT_TICKET_STATUS = "ticket-status"
CONTEXT_HELP = "help"
CONTEXT_REBASE = "rebase"
CONTEXT_FORM = "form"
CONTEXT_BOOKMARK_FORM = "bookmark-form"
CONTEXT_SETTINGS = "settings"
CONTEXT_LOGIN = "login"
CONTEXT_ERROR = "error"


@dataclass(frozen=True)
class Binding:
    context: str
    command: str
    keys: tuple[str, ...]
    help: str


BINDINGS: tuple[Binding, ...] = (
    Binding(CONTEXT_GLOBAL, "quit", ("q", "CTRL_Q", "CTRL_C"), "Quit"),
    Binding(CONTEXT_GLOBAL, "refresh", ("CTRL_R",), "Refresh the graph"),
    Binding(CONTEXT_GLOBAL, "undo", ("CTRL_Z",), "Undo the last jj operation"),
    Binding(CONTEXT_GLOBAL, "fetch", ("f",), "Fetch from the remote"),
    Binding(CONTEXT_GLOBAL, "view_graph", ("g",), "Commit graph"),
    Binding(CONTEXT_GLOBAL, "view_prs", ("p",), "Pull requests"),
    Binding(CONTEXT_GLOBAL, "view_tickets", ("t",), "Tickets"),
    Binding(CONTEXT_GLOBAL, "settings", (",",), "Settings"),
    Binding(CONTEXT_GLOBAL, "view_help", ("h", "?"), "Help"),
    Binding(CONTEXT_GRAPH, "move_down", ("j", "DOWN"), "Next commit"),
    Binding(CONTEXT_GRAPH, "move_up", ("k", "UP"), "Previous commit"),
    Binding(CONTEXT_GRAPH, "page_down", ("PAGE_DOWN", "CTRL_D"), "Page down"),
    Binding(CONTEXT_GRAPH, "page_up", ("PAGE_UP", "CTRL_U"), "Page up"),
    Binding(CONTEXT_GRAPH, "edit", ("e", "ENTER"), "Edit (check out) commit"),
    Binding(CONTEXT_GRAPH, "describe", ("d",), "Edit description"),
    Binding(CONTEXT_GRAPH, "new", ("n",), "New commit on selection"),
    Binding(CONTEXT_GRAPH, "squash", ("s",), "Squash into parent"),
    Binding(CONTEXT_GRAPH, "abandon", ("a",), "Abandon commit"),
    Binding(CONTEXT_GRAPH, "rebase", ("r",), "Rebase commit and descendants"),
    Binding(CONTEXT_GRAPH, "bookmark", ("b",), "Create or move a bookmark"),
    Binding(CONTEXT_GRAPH, "delete_bookmark", ("x",), "Delete bookmark"),
    Binding(CONTEXT_GRAPH, "create_pr", ("c",), "Create pull request"),
    Binding(CONTEXT_GRAPH, "update_pr", ("u",), "Push to update pull request"),
    Binding(CONTEXT_GRAPH, "toggle_diff", ("TAB",), "Toggle diff / changed files"),
    Binding(CONTEXT_PULL_REQUESTS, "move_down", ("j", "DOWN"), "Next pull request"),
    Binding(CONTEXT_PULL_REQUESTS, "move_up", ("k", "UP"), "Previous pull request"),
    Binding(CONTEXT_PULL_REQUESTS, "open_pr", ("o", "ENTER"), "Open in browser"),
    Binding(CONTEXT_PULL_REQUESTS, "merge_pr", ("M",), "Merge"),
    Binding(CONTEXT_PULL_REQUESTS, "close_pr", ("X",), "Close"),
    Binding(CONTEXT_TICKETS, "move_down", ("j", "DOWN"), "Next ticket"),
    Binding(CONTEXT_TICKETS, "move_up", ("k", "UP"), "Previous ticket"),
    Binding(CONTEXT_TICKETS, "ticket_branch", ("ENTER",), "Start a branch for the ticket"),
    Binding(CONTEXT_TICKETS, "open_ticket", ("o",), "Open in browser"),
    Binding(CONTEXT_TICKETS, "toggle_status_mode", ("c",), "Change status"),
    Binding(CONTEXT_TICKET_STATUS, "transition_in_progress", ("i",), "Set In Progress"),
    Binding(CONTEXT_TICKET_STATUS, "transition_done", ("D",), "Set Done"),
    Binding(CONTEXT_TICKET_STATUS, "transition_blocked", ("B",), "Set Blocked"),
    Binding(CONTEXT_TICKET_STATUS, "transition_not_started", ("N",), "Set Not Started"),
    Binding(CONTEXT_TICKET_STATUS, "toggle_status_mode", ("ESC",), "Leave status mode"),
    Binding(CONTEXT_HELP, "view_graph", ("ESC",), "Back to the graph"),
    Binding(CONTEXT_REBASE, "move_down", ("j", "DOWN"), "Next destination"),
    Binding(CONTEXT_REBASE, "move_up", ("k", "UP"), "Previous destination"),
    Binding(CONTEXT_REBASE, "submit", ("ENTER",), "Rebase onto selection"),
    Binding(CONTEXT_REBASE, "cancel", ("ESC", "q"), "Cancel rebase"),
    Binding(CONTEXT_FORM, "submit", ("CTRL_S",), "Submit"),
    Binding(CONTEXT_FORM, "cancel", ("ESC",), "Cancel"),
    Binding(CONTEXT_FORM, "next_field", ("TAB",), "Next field"),
    Binding(CONTEXT_FORM, "prev_field", ("SHIFT_TAB",), "Previous field"),
    Binding(CONTEXT_BOOKMARK_FORM, "submit", ("ENTER", "CTRL_S"), "Create or move bookmark"),
    Binding(CONTEXT_BOOKMARK_FORM, "cancel", ("ESC",), "Cancel"),
    Binding(CONTEXT_BOOKMARK_FORM, "next_field", ("TAB", "SHIFT_TAB"), "New name / existing bookmarks"),
    Binding(CONTEXT_BOOKMARK_FORM, "move_down", ("DOWN",), "Next existing bookmark"),
    Binding(CONTEXT_BOOKMARK_FORM, "move_up", ("UP",), "Previous existing bookmark"),
    Binding(CONTEXT_SETTINGS, "submit", ("CTRL_S",), "Save settings"),
    Binding(CONTEXT_SETTINGS, "save_settings_local", ("CTRL_L",), "Save settings for this repository"),
    Binding(CONTEXT_SETTINGS, "login", ("CTRL_G",), "Log in to GitHub"),
    Binding(CONTEXT_SETTINGS, "cancel", ("ESC",), "Close settings"),
    Binding(CONTEXT_SETTINGS, "next_field", ("TAB", "DOWN"), "Next field"),
    Binding(CONTEXT_SETTINGS, "prev_field", ("SHIFT_TAB", "UP"), "Previous field"),
    Binding(CONTEXT_LOGIN, "open_login_url", ("o", "ENTER"), "Open the verification page"),
    Binding(CONTEXT_LOGIN, "copy_login_code", ("c",), "Copy the code"),
    Binding(CONTEXT_LOGIN, "cancel", ("ESC",), "Cancel login"),
    Binding(CONTEXT_ERROR, "quit", ("CTRL_Q", "CTRL_C"), "Quit"),
    Binding(CONTEXT_ERROR, "retry", ("CTRL_R",), "Retry"),
    Binding(CONTEXT_ERROR, "dismiss_error", ("ESC",), "Dismiss"),
    Binding(CONTEXT_ERROR, "copy_error", ("c",), "Copy error"),
    Binding(CONTEXT_ERROR, "init_repo", ("i",), "Initialize repository"),
)

# Zones name either a command ("action:squash") or an indexed target
# ("commit:3"); indexed kinds map to the command that receives the index.
ZONE_ACTION_PREFIX = "action:"
ZONE_TAB_PREFIX = "tab:"
INDEXED_ZONE_COMMANDS: dict[str, str] = {
    "commit": "select_commit",
    "pr": "select_pr",
    "ticket": "select_ticket",
    "field": "select_field",
    "bookmark": "select_bookmark",
}
TAB_ZONE_COMMANDS: dict[str, str] = {
    "graph": "view_graph",
    "prs": "view_prs",
    "tickets": "view_tickets",
    "settings": "settings",
    "help": "view_help",
}


def bindings_for(context: str) -> tuple[Binding, ...]:
    return tuple(binding for binding in BINDINGS if binding.context == context)


def key_label(key: str) -> str:
    """Human label for a key token (``CTRL_S`` -> ``Ctrl+S``)."""
    if key.startswith("CTRL_"):
        return "Ctrl+" + key[len("CTRL_") :]
    return {
        "ENTER": "Enter",
        "ESC": "Esc",
        "TAB": "Tab",
        "SHIFT_TAB": "Shift+Tab",
        "UP": "↑",
        "DOWN": "↓",
        "PAGE_UP": "PgUp",
        "PAGE_DOWN": "PgDn",
    }.get(key, key)


__all__ = [
    "BINDINGS",
    "Binding",
    "CONTEXT_BOOKMARK_FORM",
    "CONTEXT_ERROR",
    "CONTEXT_FORM",
    "CONTEXT_GLOBAL",
    "CONTEXT_GRAPH",
    "CONTEXT_HELP",
    "CONTEXT_LOGIN",
    "CONTEXT_PULL_REQUESTS",
    "CONTEXT_REBASE",
    "CONTEXT_SETTINGS",
    "CONTEXT_TICKETS",
    "CONTEXT_TICKET_STATUS",
    "INDEXED_ZONE_COMMANDS",
    "TAB_ZONE_COMMANDS",
    "ZONE_ACTION_PREFIX",
    "ZONE_TAB_PREFIX",
    "bindings_for",
    "key_label",
]
