"""Collaborators reached over HTTP: ticket trackers and the PR host."""

from .base import PullRequestHost, TicketProvider
from .github import GitHubClient, GitHubHost, PullRequestFilter, parse_github_url
from .registry import TICKET_PROVIDERS, build_ticket_provider

__all__ = [
    "GitHubClient",
    "GitHubHost",
    "PullRequestFilter",
    "PullRequestHost",
    "TICKET_PROVIDERS",
    "TicketProvider",
    "build_ticket_provider",
    "parse_github_url",
]
