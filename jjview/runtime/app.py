"""Runtime composition layer for jjview.

Resolves the repository and settings, builds the collaborators, and starts
the loop. This is the only module where jj, GitHub, the ticket trackers and
the terminal meet.
"""

from __future__ import annotations

import logging
import os
import queue
import shutil
import sys
from functools import partial
from pathlib import Path

from ..config import Settings, load_settings
from ..engine.commands import Services
from ..engine.controller import Engine
from ..engine.dispatcher import AsyncCommandDispatcher
from ..engine.reconcile import reconcile
from ..engine.scheduler import AutoRefreshScheduler
from ..engine.state import AppState
from ..errors import JJViewError
from ..messages import Message, RefreshMode
from ..providers.github import GitHubClient, GitHubHost, PullRequestFilter, parse_github_url
from ..providers.registry import build_ticket_provider
from ..render import RenderOptions, render_frame
from ..vcs.fetcher import SnapshotFetcher
from ..vcs.jj import JJService, find_repo_root
from .loop import RuntimeLoopTiming, run_main_loop
from .terminal import TerminalController

logger = logging.getLogger(__name__)


def resolve_repo_root(path: Path) -> Path:
    """The enclosing jj repository, or ``path`` itself when there is none."""
    root = find_repo_root(path)
    return root if root is not None else path.resolve()


def resolve_github_repo(jj: JJService) -> tuple[str, str] | None:
    """``(owner, repo)`` of the GitHub remote, or ``None`` when there is none."""
    try:
        return parse_github_url(jj.remote_url())
    except (JJViewError, ValueError) as exc:
        logger.info("GitHub integration disabled: %s", exc)
        return None


def build_services(
    repo_root: Path,
    settings: Settings,
    *,
    github_repo: tuple[str, str] | None = None,
) -> Services:
    """Collaborators for ``settings``; rebuilt whenever settings change."""
    jj = JJService(repo_root)
    client: GitHubClient | None = None
    host: GitHubHost | None = None
    if settings.has_github and github_repo is not None:
        owner, repo = github_repo
        client = GitHubClient(owner, repo, settings.github_token)
        host = GitHubHost(
            client,
            jj.push_bookmark,
            filters=PullRequestFilter(
                only_mine=settings.github_only_mine,
                show_merged=settings.github_show_merged,
                show_closed=settings.github_show_closed,
                limit=settings.github_pr_limit,
            ),
        )
    tickets = build_ticket_provider(settings, client)
    logger.info(
        "services: github=%s tickets=%s",
        "on" if host is not None else "off",
        tickets.name if tickets is not None else "none",
    )
    return Services(jj=jj, fetcher=SnapshotFetcher(jj), host=host, tickets=tickets)


def render_once(path: Path, *, width: int, height: int, color: bool = False) -> str:
    """Render one frame of the graph without entering the TUI."""
    repo_root = resolve_repo_root(path)
    services = build_services(repo_root, load_settings(repo_root))
    state = AppState()
    try:
        state = reconcile(state, services.fetcher.fetch(), RefreshMode.LOUD).state
    except JJViewError as exc:
        state.error = exc
    return render_frame(state, RenderOptions(width=width, height=height, color=color)).text


def run_app(path: Path, *, no_color: bool = False) -> None:
    """Run the interactive client on the repository containing ``path``."""
    if not os.isatty(sys.stdin.fileno()):
        raise SystemExit("jjview needs an interactive terminal")

    repo_root = resolve_repo_root(path)
    settings = load_settings(repo_root)
    github_repo = resolve_github_repo(JJService(repo_root))
    factory = partial(build_services, repo_root, github_repo=github_repo)

    messages: queue.Queue[Message] = queue.Queue()
    dispatcher = AsyncCommandDispatcher(messages)
    engine = Engine(
        factory(settings),
        dispatcher,
        AutoRefreshScheduler(),
        settings,
        repo_root=repo_root,
        build_services=factory,
    )
    terminal = TerminalController(sys.stdin.fileno(), sys.stdout.fileno())
    logger.info("starting in %s", repo_root)
    engine.start()
    try:
        run_main_loop(engine, terminal, sys.stdin.fileno(), messages, RuntimeLoopTiming(), color=not no_color)
    finally:
        dispatcher.shutdown()


def default_render_size() -> tuple[int, int]:
    term = shutil.get_terminal_size((100, 30))
    return max(20, term.columns), max(6, term.lines)


__all__ = ["build_services", "default_render_size", "render_once", "resolve_github_repo", "resolve_repo_root", "run_app"]
