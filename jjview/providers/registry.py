"""Select the active ticket provider from configuration."""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..config import Settings
from .base import TicketProvider
from .codecks import CodecksProvider
from .github import GitHubClient
from .github_issues import GitHubIssuesProvider
from .jira import JiraProvider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[Settings, "GitHubClient | None"], "TicketProvider | None"]


def _jira(settings: Settings, _github: GitHubClient | None) -> TicketProvider | None:
    if not settings.has_jira:
        return None
    return JiraProvider(settings.jira_url, settings.jira_user, settings.jira_token)


def _codecks(settings: Settings, _github: GitHubClient | None) -> TicketProvider | None:
    if not settings.has_codecks:
        return None
    return CodecksProvider(settings.codecks_subdomain, settings.codecks_token, project=settings.codecks_project)


def _github_issues(_settings: Settings, github: GitHubClient | None) -> TicketProvider | None:
    if github is None:
        return None
    return GitHubIssuesProvider(github)


TICKET_PROVIDERS: dict[str, ProviderFactory] = {
    "jira": _jira,
    "codecks": _codecks,
    "github_issues": _github_issues,
}


def build_ticket_provider(settings: Settings, github: GitHubClient | None = None) -> TicketProvider | None:
    """Return the configured provider, or ``None`` when none is usable."""
    name = settings.resolved_ticket_provider()
    if not name:
        return None
    factory = TICKET_PROVIDERS.get(name)
    if factory is None:
        logger.warning("unknown ticket provider %r; known: %s", name, ", ".join(sorted(TICKET_PROVIDERS)))
        return None
    provider = factory(settings, github)
    if provider is None:
        logger.info("ticket provider %r is selected but not fully configured", name)
    return provider


__all__ = ["TICKET_PROVIDERS", "build_ticket_provider"]
