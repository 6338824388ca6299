"""Merge a freshly fetched snapshot into the live UI model.

Selection is an index into the current snapshot, so it is meaningless once
the snapshot is replaced. The change id of the tracked commit is the only
key that survives rewrites, and selection is re-derived from it here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from ..errors import StaleSelectionFailure
from ..messages import RefreshMode
from ..models import Commit, RepositorySnapshot
from .state import AppState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reconciliation:
    """Result of one ``reconcile`` call.

    ``fetch_changed_files`` names the commit whose changed files have to be
    (re)loaded, either because it was just auto-selected or because the
    tracked change was rewritten to a new content id.
    """

    state: AppState
    applied: bool
    fetch_changed_files: Commit | None = None


def _tracked_ids(state: AppState) -> tuple[str, str]:
    if state.tracked_change_id:
        return state.tracked_change_id, state.tracked_commit_id
    commit = state.selected_commit()
    if commit is None:
        return "", ""
    return commit.change_id, commit.id


def _status_for(state: AppState, snapshot: RepositorySnapshot, mode: RefreshMode) -> str:
    if mode is RefreshMode.LOUD:
        return f"Loaded {len(snapshot)} commits"
    if len(snapshot) != len(state.snapshot) and state.error is None:
        return f"Updated: {len(snapshot)} commits"
    return state.status


def reconcile(state: AppState, snapshot: RepositorySnapshot, mode: RefreshMode) -> Reconciliation:
    """Return a new state showing ``snapshot``; ``state`` itself is left untouched."""
    if mode is RefreshMode.SILENT and state.error is not None:
        logger.debug("silent refresh skipped while an error is displayed")
        return Reconciliation(state=state, applied=False)
    if mode is RefreshMode.SILENT and state.modal_active:
        logger.debug("silent refresh skipped while %s is open", state.mode.name)
        return Reconciliation(state=state, applied=False)

    change_id, commit_id = _tracked_ids(state)
    selected: int | None = None
    changed_files = state.changed_files
    fetch: Commit | None = None

    if change_id:
        selected = snapshot.find_change(change_id, prefer_id=commit_id)
        if selected is None:
            logger.info("%s", StaleSelectionFailure(change_id))
            change_id, commit_id = "", ""
            changed_files = ()
        else:
            commit = snapshot.commits[selected]
            if commit.id != commit_id:
                fetch = commit
            commit_id = commit.id
    elif len(snapshot):
        selected = 0
        commit = snapshot.commits[0]
        change_id, commit_id = commit.change_id, commit.id
        changed_files = ()
        fetch = commit

    new_state = replace(
        state,
        snapshot=snapshot,
        selected=selected,
        tracked_change_id=change_id,
        tracked_commit_id=commit_id,
        changed_files=changed_files,
        diff_text=state.diff_text if fetch is None and selected is not None else "",
        pull_requests=state.pull_requests,
        tickets=state.tickets,
        not_managed=False,
        status=_status_for(state, snapshot, mode),
        dirty=True,
    )
    return Reconciliation(state=new_state, applied=True, fetch_changed_files=fetch)


__all__ = ["Reconciliation", "reconcile"]
