"""GitHub pull-request host and device-flow login.

Talks to the REST v3 API through ``requests``. Owner and repository come
from the ``jj git remote list`` URL; pushes go through jj itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

from ..errors import EventualConsistencyFailure, NetworkFailure
from ..models import PullRequest
from .base import PullRequestHost
from .http import build_session, send, send_json

logger = logging.getLogger(__name__)

API_ROOT = "https://api.github.com"
CLIENT_ID = "Iv23liEpah7dINFx13j6"
DEVICE_CODE_URL = "https://github.com/login/device/code"
ACCESS_TOKEN_URL = "https://github.com/login/oauth/access_token"
DEVICE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"
SLOW_DOWN_SECONDS = 5
_PAGE_SIZE = 100


def parse_github_url(remote_url: str) -> tuple[str, str]:
    """Return ``(owner, repo)`` for https and ssh GitHub remotes.

    Raises ``ValueError`` for anything that is not a GitHub URL.
    """
    url = remote_url.strip()
    if url.endswith(".git"):
        url = url[: -len(".git")]
    path = ""
    if "github.com/" in url:
        parts = url.split("github.com/")
        if len(parts) == 2:
            path = parts[1]
    elif url.startswith("git@github.com:"):
        path = url[len("git@github.com:") :]
    pieces = path.split("/")
    if len(pieces) >= 2 and pieces[0] and pieces[1]:
        return pieces[0], pieces[1]
    raise ValueError(f"invalid GitHub URL: {remote_url}")


@dataclass(frozen=True)
class PullRequestFilter:
    only_mine: bool = False
    show_merged: bool = True
    show_closed: bool = True
    limit: int = 100


def github_session(token: str) -> requests.Session:
    return build_session(
        headers={
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
        }
    )


class GitHubClient:
    """Authenticated access to one repository; caches the viewer's login."""

    def __init__(self, owner: str, repo: str, token: str, *, session: requests.Session | None = None) -> None:
        if not token:
            raise NetworkFailure("GitHub token is required")
        self.owner = owner
        self.repo = repo
        self.session = session if session is not None else github_session(token)
        self._username = ""

    @property
    def repo_url(self) -> str:
        return f"{API_ROOT}/repos/{self.owner}/{self.repo}"

    def request(self, method: str, url: str, **kwargs: Any) -> Any:
        return send_json(self.session, method, url, service="GitHub", **kwargs)

    def paginate(self, url: str, params: dict[str, Any]):
        """Yield items across pages by following ``Link: rel=next``."""
        next_url: str | None = url
        first = True
        while next_url:
            response = send(self.session, "GET", next_url, service="GitHub", params=params if first else None)
            first = False
            for item in response.json() or []:
                if isinstance(item, dict):
                    yield item
            next_url = (response.links or {}).get("next", {}).get("url")

    def username(self) -> str:
        if not self._username:
            data = self.request("GET", f"{API_ROOT}/user") or {}
            self._username = str(data.get("login") or "")
        return self._username


def _pull_request_from_api(item: dict[str, Any]) -> PullRequest:
    state = str(item.get("state") or "open")
    if state == "closed" and (item.get("merged") or item.get("merged_at")):
        state = "merged"
    return PullRequest(
        number=int(item.get("number") or 0),
        title=str(item.get("title") or ""),
        head_branch=str((item.get("head") or {}).get("ref") or ""),
        base_branch=str((item.get("base") or {}).get("ref") or ""),
        state=state,
        url=str(item.get("html_url") or ""),
        body=str(item.get("body") or ""),
    )


class GitHubHost(PullRequestHost):
    """Pull requests of the repository behind the jj ``origin`` remote."""

    name = "GitHub"

    def __init__(self, client: GitHubClient, pusher, *, filters: PullRequestFilter | None = None) -> None:
        self.client = client
        self._pusher = pusher
        self.filters = filters if filters is not None else PullRequestFilter()

    def list_pull_requests(self) -> list[PullRequest]:
        filters = self.filters
        username = self.client.username() if filters.only_mine else ""
        params = {"state": "all", "sort": "created", "direction": "desc", "per_page": _PAGE_SIZE}
        out: list[PullRequest] = []
        for item in self.client.paginate(f"{self.client.repo_url}/pulls", params):
            if filters.only_mine and (item.get("user") or {}).get("login") != username:
                continue
            pr = _pull_request_from_api(item)
            if pr.state == "merged" and not filters.show_merged:
                continue
            if pr.state == "closed" and not filters.show_closed:
                continue
            out.append(pr)
            if filters.limit > 0 and len(out) >= filters.limit:
                break
        return out

    def create(self, title: str, body: str, head: str, base: str) -> PullRequest:
        url = f"{self.client.repo_url}/pulls"
        payload = {"title": title, "body": body, "head": head, "base": base, "maintainer_can_modify": True}
        try:
            data = self.client.request("POST", url, json=payload)
        except NetworkFailure as exc:
            if exc.status_code != 422 or "already exists" in str(exc):
                raise
            logger.info("PR create for %s returned 422, retrying with %s:%s", head, self.client.owner, head)
            payload["head"] = f"{self.client.owner}:{head}"
            try:
                data = self.client.request("POST", url, json=payload)
            except NetworkFailure as retry_exc:
                if retry_exc.status_code == 422 and "already exists" not in str(retry_exc):
                    raise EventualConsistencyFailure(str(retry_exc), status_code=422) from retry_exc
                raise
        return _pull_request_from_api(data or {})

    def push(self, branch: str) -> None:
        self._pusher(branch)

    def merge(self, number: int) -> None:
        self.client.request("PUT", f"{self.client.repo_url}/pulls/{number}/merge", json={"merge_method": "merge"})

    def close(self, number: int) -> None:
        self.client.request("PATCH", f"{self.client.repo_url}/pulls/{number}", json={"state": "closed"})


# Device flow


@dataclass(frozen=True)
class DeviceCode:
    device_code: str
    user_code: str
    verification_uri: str
    interval: int


@dataclass(frozen=True)
class TokenPoll:
    """One poll result; an empty token without ``slow_down`` means "pending"."""

    token: str = ""
    slow_down: bool = False


_FORM_HEADERS = {"Accept": "application/json", "Content-Type": "application/x-www-form-urlencoded"}


def start_device_flow(session: requests.Session | None = None) -> DeviceCode:
    session = session if session is not None else build_session()
    data = send_json(
        session,
        "POST",
        DEVICE_CODE_URL,
        service="GitHub login",
        data={"client_id": CLIENT_ID, "scope": "repo"},
        headers=_FORM_HEADERS,
    ) or {}
    if not data.get("device_code"):
        raise NetworkFailure("GitHub login: no device code returned")
    return DeviceCode(
        device_code=str(data["device_code"]),
        user_code=str(data.get("user_code") or ""),
        verification_uri=str(data.get("verification_uri") or "https://github.com/login/device"),
        interval=int(data.get("interval") or 5),
    )


def poll_for_token(device_code: str, session: requests.Session | None = None) -> TokenPoll:
    session = session if session is not None else build_session()
    data = send_json(
        session,
        "POST",
        ACCESS_TOKEN_URL,
        service="GitHub login",
        data={"client_id": CLIENT_ID, "device_code": device_code, "grant_type": DEVICE_GRANT_TYPE},
        headers=_FORM_HEADERS,
    ) or {}
    error = data.get("error")
    if error == "authorization_pending":
        return TokenPoll()
    if error == "slow_down":
        return TokenPoll(slow_down=True)
    if error == "expired_token":
        raise NetworkFailure("device code expired, please try again")
    if error == "access_denied":
        raise NetworkFailure("access denied by user")
    if error:
        raise NetworkFailure(f"auth error: {error} - {data.get('error_description', '')}")
    return TokenPoll(token=str(data.get("access_token") or ""))


__all__ = [
    "CLIENT_ID",
    "DeviceCode",
    "GitHubClient",
    "GitHubHost",
    "PullRequestFilter",
    "SLOW_DOWN_SECONDS",
    "TokenPoll",
    "github_session",
    "parse_github_url",
    "poll_for_token",
    "start_device_flow",
]
