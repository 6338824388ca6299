"""Codecks ticket provider.

Codecks answers queries in a normalized shape: the requested relations come
back as id lists and the entities themselves under top-level ``project``,
``deck`` and ``card`` maps. Project and deck lookups are cached per provider
instance the first time tickets are listed.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import requests

from ..errors import NetworkFailure
from ..models import Ticket, Transition
from .base import TicketProvider
from .http import build_session, send_json

logger = logging.getLogger(__name__)

API_URL = "https://api.codecks.io/"
DISPATCH_URL = "https://api.codecks.io/dispatch/cards/update"

SHORT_ID_ALPHABET = "123456789acefghijkoqrsuvwxyz"
# "zz", the largest two-digit id; card ids always have three or more digits.
SHORT_ID_OFFSET = 812

STATUS_LABELS = {
    "not_started": "Not Started",
    "started": "In Progress",
    "done": "Done",
    "blocked": "Blocked",
}
PRIORITY_LABELS = {
    "a": "Highest",
    "b": "High",
    "c": "Medium",
    "d": "Low",
    "e": "Lowest",
}
HIDDEN_VISIBILITY = frozenset({"archived", "deleted"})
CARD_FIELDS = ["title", "status", "priority", "content", "accountSeq", "visibility"]

_SLUG_INVALID_RE = re.compile(r"[^a-z0-9-]")
_SLUG_HYPHENS_RE = re.compile(r"-+")


def encode_short_id(seq: int) -> str:
    """Bijective base-28 rendering of a card's ``accountSeq``."""
    if seq <= 0:
        return ""
    n = seq + SHORT_ID_OFFSET
    base = len(SHORT_ID_ALPHABET)
    digits = []
    while n > 0:
        remainder = n % base
        if remainder == 0:
            remainder = base
            n = n // base - 1
        else:
            n //= base
        digits.append(SHORT_ID_ALPHABET[remainder - 1])
    return "".join(reversed(digits))


def slugify(text: str) -> str:
    slug = _SLUG_INVALID_RE.sub("", text.lower().replace(" ", "-"))
    return _SLUG_HYPHENS_RE.sub("-", slug).strip("-")


@dataclass
class _DeckMeta:
    seq: int = 0
    title: str = ""


@dataclass
class _ProjectTables:
    project_ids: dict[str, str] = field(default_factory=dict)
    project_decks: dict[str, list[str]] = field(default_factory=dict)
    decks: dict[str, _DeckMeta] = field(default_factory=dict)


def _as_int(value: Any) -> int:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return 0


class CodecksProvider(TicketProvider):
    name = "Codecks"

    def __init__(
        self,
        subdomain: str,
        token: str,
        *,
        project: str = "",
        session: requests.Session | None = None,
    ) -> None:
        self.subdomain = subdomain
        self.project = project
        self.session = session if session is not None else build_session(
            headers={
                "X-Account": subdomain,
                "X-Auth-Token": token,
                "Content-Type": "application/json",
            }
        )
        self._tables: _ProjectTables | None = None

    def _query(self, query: dict[str, Any]) -> dict[str, Any]:
        data = send_json(self.session, "POST", API_URL, service="Codecks", json={"query": query})
        return data if isinstance(data, dict) else {}

    def _load_tables(self) -> _ProjectTables:
        if self._tables is not None:
            return self._tables
        result = self._query(
            {
                "_root": [
                    {
                        "account": [
                            "name",
                            {"projects": ["id", "name", {"decks": ["id", "isDeleted", "accountSeq", "title"]}]},
                            {"archivedProjects": ["id", "name"]},
                        ]
                    }
                ]
            }
        )
        archived: set[str] = set()
        for account in (result.get("account") or {}).values():
            if isinstance(account, dict):
                archived.update(pid for pid in account.get("archivedProjects") or [] if isinstance(pid, str))

        tables = _ProjectTables()
        deleted: set[str] = set()
        for deck_id, deck in (result.get("deck") or {}).items():
            if not isinstance(deck, dict):
                continue
            if deck.get("isDeleted") is True:
                deleted.add(deck_id)
            tables.decks[deck_id] = _DeckMeta(seq=_as_int(deck.get("accountSeq")), title=str(deck.get("title") or ""))

        for project_id, project in (result.get("project") or {}).items():
            if project_id in archived or not isinstance(project, dict):
                continue
            name = project.get("name")
            if isinstance(name, str):
                tables.project_ids[name] = project_id
            tables.project_decks[project_id] = [
                deck_id for deck_id in project.get("decks") or [] if isinstance(deck_id, str) and deck_id not in deleted
            ]
        logger.debug("codecks: %d projects, %d decks", len(tables.project_ids), len(tables.decks))
        self._tables = tables
        return tables

    def _card_to_ticket(self, card_id: str, card: dict[str, Any], deck_id: str) -> Ticket:
        return Ticket(
            key=card_id,
            display_key="$" + encode_short_id(_as_int(card.get("accountSeq"))),
            summary=str(card.get("title") or ""),
            status=STATUS_LABELS.get(str(card.get("status") or ""), str(card.get("status") or "")),
            priority=PRIORITY_LABELS.get(str(card.get("priority") or ""), str(card.get("priority") or "")),
            type="Card",
            description=str(card.get("content") or ""),
            deck_id=deck_id,
        )

    def _open_cards(self, result: dict[str, Any], deck_id: str = "") -> list[Ticket]:
        tickets = []
        for card_id, card in (result.get("card") or {}).items():
            if not isinstance(card, dict):
                continue
            if card.get("visibility") in HIDDEN_VISIBILITY or card.get("status") == "done":
                continue
            tickets.append(self._card_to_ticket(card_id, card, deck_id or str(card.get("deck") or "")))
        return tickets

    def list_assigned(self) -> list[Ticket]:
        tables = self._load_tables()
        project_id = tables.project_ids.get(self.project, "") if self.project else ""
        if not project_id:
            result = self._query({"_root": [{"account": [{"cards": [*CARD_FIELDS, "deck"]}]}]})
            if "card" not in result:
                raise NetworkFailure("Codecks: unexpected response format: missing 'card' object")
            return self._open_cards(result)
        tickets: list[Ticket] = []
        for deck_id in tables.project_decks.get(project_id, []):
            try:
                result = self._query({f"deck({deck_id})": [{"cards": CARD_FIELDS}]})
            except NetworkFailure as exc:
                logger.warning("codecks: skipping deck %s: %s", deck_id, exc)
                continue
            tickets.extend(self._open_cards(result, deck_id))
        return tickets

    def get(self, key: str) -> Ticket:
        result = self._query({f"card({key})": [*CARD_FIELDS, "deck"]})
        card = (result.get("card") or {}).get(key)
        if not isinstance(card, dict):
            raise NetworkFailure(f"card {key} not found")
        if card.get("visibility") in HIDDEN_VISIBILITY:
            raise NetworkFailure(f"card {key} is archived")
        return self._card_to_ticket(key, card, str(card.get("deck") or ""))

    def url(self, ticket: Ticket) -> str:
        tables = self._tables or _ProjectTables()
        card_slug = f"{ticket.display_key.lstrip('$')}-{slugify(ticket.summary)}"
        meta = tables.decks.get(ticket.deck_id)
        if meta is not None and meta.seq > 0:
            deck_slug = f"{meta.seq}-{slugify(meta.title)}"
            return f"https://{self.subdomain}.codecks.io/decks/{deck_slug}/card/{card_slug}"
        return f"https://{self.subdomain}.codecks.io/card/{card_slug}"

    def list_transitions(self, key: str) -> list[Transition]:
        current = self.get(key).status
        return [Transition(id=status, name=label) for status, label in STATUS_LABELS.items() if label != current]

    def apply_transition(self, key: str, transition_id: str) -> None:
        send_json(self.session, "POST", DISPATCH_URL, service="Codecks", json={"id": key, "status": transition_id})


__all__ = ["CodecksProvider", "encode_short_id", "slugify"]
