"""State, reconciliation, and command dispatch for the jj client."""

from __future__ import annotations

from .commands import CommandOutcome, Mutation, Services, run_mutation
from .controller import Engine, LoginFlow
from .derive import BranchAssignments, derive_branch_assignments, open_pr_branches
from .dispatcher import AsyncCommandDispatcher, retry_eventual_consistency
from .modes import InteractionStateMachine
from .reconcile import Reconciliation, reconcile
from .scheduler import AutoRefreshScheduler, silent_refresh_allowed
from .state import AppState, Mode, View

__all__ = [
    "AppState",
    "AsyncCommandDispatcher",
    "AutoRefreshScheduler",
    "BranchAssignments",
    "CommandOutcome",
    "Engine",
    "InteractionStateMachine",
    "LoginFlow",
    "Mode",
    "Mutation",
    "Reconciliation",
    "Services",
    "View",
    "derive_branch_assignments",
    "open_pr_branches",
    "reconcile",
    "retry_eventual_consistency",
    "run_mutation",
    "silent_refresh_allowed",
]
