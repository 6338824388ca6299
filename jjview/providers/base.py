"""Interfaces for the ticket tracker and the pull-request host."""

from __future__ import annotations

import abc

from ..models import PullRequest, Ticket, Transition


class TicketProvider(abc.ABC):
    """One ticket-tracking service; exactly one is active per session."""

    name: str = ""

    @abc.abstractmethod
    def list_assigned(self) -> list[Ticket]:
        """Tickets assigned to (or visible for) the configured user."""

    @abc.abstractmethod
    def get(self, key: str) -> Ticket:
        """Fetch one ticket by its provider key."""

    @abc.abstractmethod
    def url(self, ticket: Ticket) -> str:
        """Browser URL of ``ticket``."""

    @abc.abstractmethod
    def list_transitions(self, key: str) -> list[Transition]:
        """Status changes currently available for ``key``."""

    @abc.abstractmethod
    def apply_transition(self, key: str, transition_id: str) -> None:
        """Move ``key`` through ``transition_id``."""


class PullRequestHost(abc.ABC):
    """Code-hosting service that owns the pull requests of the repository."""

    name: str = ""

    @abc.abstractmethod
    def list_pull_requests(self) -> list[PullRequest]:
        """Pull requests after the configured filters and limit."""

    @abc.abstractmethod
    def create(self, title: str, body: str, head: str, base: str) -> PullRequest:
        """Open a pull request from ``head`` into ``base``."""

    @abc.abstractmethod
    def push(self, branch: str) -> None:
        """Publish ``branch`` so the host can see it."""

    @abc.abstractmethod
    def merge(self, number: int) -> None:
        """Merge pull request ``number``."""

    @abc.abstractmethod
    def close(self, number: int) -> None:
        """Close pull request ``number`` without merging."""


__all__ = ["PullRequestHost", "TicketProvider"]
