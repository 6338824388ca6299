"""Shared ``requests`` plumbing for the HTTP collaborators.

Transport errors and non-2xx responses become ``NetworkFailure`` so workers
report them through the usual error path.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from ..errors import NetworkFailure

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
_ERROR_BODY_LIMIT = 500


def build_session(headers: dict[str, str] | None = None, auth: tuple[str, str] | None = None) -> requests.Session:
    session = requests.Session()
    session.headers["Accept"] = "application/json"
    if headers:
        session.headers.update(headers)
    if auth is not None:
        session.auth = auth
    return session


def send(
    session: requests.Session,
    method: str,
    url: str,
    *,
    service: str,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    **kwargs: Any,
) -> requests.Response:
    """Issue one request and raise ``NetworkFailure`` unless it succeeded."""
    try:
        response = session.request(method, url, timeout=timeout, **kwargs)
    except requests.RequestException as exc:
        logger.warning("%s %s %s failed: %s", service, method, url, exc)
        raise NetworkFailure(f"{service} request failed: {exc}") from exc
    if response.status_code >= 300:
        body = (response.text or "")[:_ERROR_BODY_LIMIT]
        logger.warning("%s %s %s returned %d: %s", service, method, url, response.status_code, body)
        raise NetworkFailure(
            f"{service} API error ({response.status_code}): {body.strip()}",
            status_code=response.status_code,
        )
    return response


def send_json(
    session: requests.Session,
    method: str,
    url: str,
    *,
    service: str,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    **kwargs: Any,
) -> Any:
    """Like ``send`` but decode the JSON body; empty bodies decode to ``None``."""
    response = send(session, method, url, service=service, timeout=timeout, **kwargs)
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        raise NetworkFailure(f"{service} returned invalid JSON: {exc}") from exc


__all__ = ["DEFAULT_TIMEOUT_SECONDS", "build_session", "send", "send_json"]
