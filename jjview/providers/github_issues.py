"""GitHub Issues as a ticket provider."""

from __future__ import annotations

from typing import Any

from ..errors import ValidationFailure
from ..models import Ticket, Transition
from .base import TicketProvider
from .github import GitHubClient

_PRIORITY_MARKERS = ("priority", "p0", "p1", "p2", "critical", "high", "medium", "low")


def _label_names(issue: dict[str, Any]) -> list[str]:
    names = []
    for label in issue.get("labels") or []:
        if isinstance(label, dict) and label.get("name"):
            names.append(str(label["name"]))
    return names


def _issue_type(labels: list[str]) -> str:
    for label in labels:
        name = label.lower()
        if "bug" in name:
            return "Bug"
        if "feature" in name or "enhancement" in name:
            return "Feature"
        if "documentation" in name or "docs" in name:
            return "Documentation"
    return "Issue"


def issue_to_ticket(issue: dict[str, Any]) -> Ticket:
    state = str(issue.get("state") or "")
    labels = _label_names(issue)
    priority = next((label for label in labels if any(m in label.lower() for m in _PRIORITY_MARKERS)), "")
    key = f"#{issue.get('number')}"
    return Ticket(
        key=key,
        display_key=key,
        summary=str(issue.get("title") or ""),
        status=state[:1].upper() + state[1:],
        priority=priority,
        type=_issue_type(labels),
        description=str(issue.get("body") or ""),
    )


def _issue_number(key: str) -> int:
    try:
        return int(key.strip().lstrip("#"))
    except ValueError:
        raise ValidationFailure(f"invalid issue number: {key}") from None


class GitHubIssuesProvider(TicketProvider):
    name = "GitHub Issues"

    def __init__(self, client: GitHubClient) -> None:
        self.client = client

    def list_assigned(self) -> list[Ticket]:
        params = {
            "assignee": self.client.username(),
            "state": "open",
            "sort": "updated",
            "direction": "desc",
            "per_page": 100,
        }
        return [
            issue_to_ticket(issue)
            for issue in self.client.paginate(f"{self.client.repo_url}/issues", params)
            # The issues endpoint also returns pull requests.
            if "pull_request" not in issue
        ]

    def get(self, key: str) -> Ticket:
        data = self.client.request("GET", f"{self.client.repo_url}/issues/{_issue_number(key)}") or {}
        return issue_to_ticket(data)

    def url(self, ticket: Ticket) -> str:
        return f"https://github.com/{self.client.owner}/{self.client.repo}/issues/{ticket.key.lstrip('#')}"

    def list_transitions(self, key: str) -> list[Transition]:
        data = self.client.request("GET", f"{self.client.repo_url}/issues/{_issue_number(key)}") or {}
        if data.get("state") == "open":
            return [Transition(id="closed", name="Close Issue")]
        return [Transition(id="open", name="Reopen Issue")]

    def apply_transition(self, key: str, transition_id: str) -> None:
        if transition_id not in ("open", "closed"):
            raise ValidationFailure(f"invalid transition: {transition_id} (must be 'open' or 'closed')")
        self.client.request(
            "PATCH",
            f"{self.client.repo_url}/issues/{_issue_number(key)}",
            json={"state": transition_id},
        )


__all__ = ["GitHubIssuesProvider", "issue_to_ticket"]
