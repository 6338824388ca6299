"""Jira Cloud (REST API v3) ticket provider."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import requests

from ..models import Ticket, Transition
from .base import TicketProvider
from .http import build_session, send_json

SEARCH_FIELDS = "key,summary,status,priority,issuetype,description"
MAX_RESULTS = 50


def _adf_text(description: Any) -> str:
    """Flatten the two top levels of an Atlassian Document Format body."""
    if not isinstance(description, dict):
        return ""
    parts = []
    for block in description.get("content") or []:
        for inline in (block or {}).get("content") or []:
            text = (inline or {}).get("text")
            if text:
                parts.append(text)
    return " ".join(parts)


def _named(fields: dict[str, Any], key: str) -> str:
    value = fields.get(key)
    if isinstance(value, dict):
        return str(value.get("name") or "")
    return ""


def issue_to_ticket(issue: dict[str, Any]) -> Ticket:
    fields = issue.get("fields") or {}
    key = str(issue.get("key") or "")
    return Ticket(
        key=key,
        display_key=key,
        summary=str(fields.get("summary") or ""),
        status=_named(fields, "status"),
        priority=_named(fields, "priority"),
        type=_named(fields, "issuetype"),
        description=_adf_text(fields.get("description")),
    )


class JiraProvider(TicketProvider):
    name = "Jira"

    def __init__(self, base_url: str, user: str, token: str, *, session: requests.Session | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.user = user
        self.session = session if session is not None else build_session(
            headers={"Content-Type": "application/json"},
            auth=(user, token),
        )

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        return send_json(self.session, method, self.base_url + endpoint, service="Jira", **kwargs)

    def list_assigned(self) -> list[Ticket]:
        jql = f'assignee = "{self.user}" AND status != Done ORDER BY updated DESC'
        endpoint = f"/rest/api/3/search/jql?jql={quote(jql)}&maxResults={MAX_RESULTS}&fields={SEARCH_FIELDS}"
        data = self._request("GET", endpoint) or {}
        return [issue_to_ticket(issue) for issue in data.get("issues") or []]

    def get(self, key: str) -> Ticket:
        return issue_to_ticket(self._request("GET", f"/rest/api/3/issue/{key}") or {})

    def url(self, ticket: Ticket) -> str:
        return f"{self.base_url}/browse/{ticket.key}"

    def list_transitions(self, key: str) -> list[Transition]:
        data = self._request("GET", f"/rest/api/3/issue/{key}/transitions") or {}
        return [
            Transition(id=str(item.get("id") or ""), name=str(item.get("name") or ""))
            for item in data.get("transitions") or []
        ]

    def apply_transition(self, key: str, transition_id: str) -> None:
        self._request("POST", f"/rest/api/3/issue/{key}/transitions", json={"transition": {"id": transition_id}})


__all__ = ["JiraProvider", "issue_to_ticket"]
