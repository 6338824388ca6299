"""GitHub host, client pagination and device-flow login."""

from __future__ import annotations

import json
import unittest
from unittest import mock

import requests

from jjview.errors import EventualConsistencyFailure, NetworkFailure
from jjview.providers.github import (
    GitHubClient,
    GitHubHost,
    PullRequestFilter,
    TokenPoll,
    parse_github_url,
    poll_for_token,
    start_device_flow,
)


def _response(status: int = 200, payload: object = None, *, link: str = "") -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = b"" if payload is None else json.dumps(payload).encode("utf-8")
    if link:
        response.headers["Link"] = link
    return response


def _session(*responses: requests.Response) -> mock.Mock:
    session = mock.Mock(spec=requests.Session)
    session.request.side_effect = list(responses)
    return session


def _pr(number: int, state: str = "open", *, merged: bool = False, login: str = "me") -> dict:
    return {
        "number": number,
        "title": f"PR {number}",
        "state": state,
        "merged_at": "2024-01-01T00:00:00Z" if merged else None,
        "head": {"ref": f"feature-{number}"},
        "base": {"ref": "main"},
        "html_url": f"https://github.com/octo/repo/pull/{number}",
        "user": {"login": login},
    }


class ParseGitHubUrlTests(unittest.TestCase):
    def test_https_and_ssh_remotes(self) -> None:
        self.assertEqual(parse_github_url("https://github.com/octo/repo.git"), ("octo", "repo"))
        self.assertEqual(parse_github_url("https://github.com/octo/repo"), ("octo", "repo"))
        self.assertEqual(parse_github_url("git@github.com:octo/repo.git"), ("octo", "repo"))
        self.assertEqual(parse_github_url("ssh://git@github.com/octo/repo.git"), ("octo", "repo"))

    def test_rejects_other_hosts(self) -> None:
        for url in ("https://gitlab.com/octo/repo", "https://github.com/octo", ""):
            with self.subTest(url=url), self.assertRaises(ValueError):
                parse_github_url(url)


class GitHubClientTests(unittest.TestCase):
    def test_token_is_required(self) -> None:
        with self.assertRaises(NetworkFailure):
            GitHubClient("octo", "repo", "")

    def test_paginate_follows_next_links(self) -> None:
        session = _session(
            _response(200, [{"n": 1}], link='<https://api.github.com/page2>; rel="next"'),
            _response(200, [{"n": 2}, "junk"]),
        )
        client = GitHubClient("octo", "repo", "tok", session=session)

        items = list(client.paginate("https://api.github.com/first", {"per_page": 100}))

        self.assertEqual(items, [{"n": 1}, {"n": 2}])
        second = session.request.call_args_list[1]
        self.assertEqual(second.args, ("GET", "https://api.github.com/page2"))
        self.assertIsNone(second.kwargs["params"])

    def test_username_is_cached(self) -> None:
        session = _session(_response(200, {"login": "me"}))
        client = GitHubClient("octo", "repo", "tok", session=session)

        self.assertEqual(client.username(), "me")
        self.assertEqual(client.username(), "me")
        self.assertEqual(session.request.call_count, 1)


class GitHubHostListTests(unittest.TestCase):
    def _host(self, filters: PullRequestFilter, *responses: requests.Response) -> GitHubHost:
        client = GitHubClient("octo", "repo", "tok", session=_session(*responses))
        return GitHubHost(client, pusher=lambda branch: None, filters=filters)

    def test_merged_state_is_derived(self) -> None:
        host = self._host(PullRequestFilter(), _response(200, [_pr(3, "closed", merged=True), _pr(2, "closed"), _pr(1)]))

        states = [(pr.number, pr.state) for pr in host.list_pull_requests()]

        self.assertEqual(states, [(3, "merged"), (2, "closed"), (1, "open")])

    def test_filters_and_limit(self) -> None:
        items = [_pr(5, login="other"), _pr(4, "closed", merged=True), _pr(3, "closed"), _pr(2), _pr(1)]
        filters = PullRequestFilter(only_mine=True, show_merged=False, show_closed=False, limit=1)
        host = self._host(filters, _response(200, {"login": "me"}), _response(200, items))

        (pr,) = host.list_pull_requests()

        self.assertEqual((pr.number, pr.head_branch, pr.base_branch), (2, "feature-2", "main"))


class GitHubHostMutationTests(unittest.TestCase):
    def _host(self, *responses: requests.Response) -> tuple[GitHubHost, mock.Mock]:
        session = _session(*responses)
        client = GitHubClient("octo", "repo", "tok", session=session)
        return GitHubHost(client, pusher=mock.Mock()), session

    def test_create(self) -> None:
        host, session = self._host(_response(201, _pr(42)))

        pr = host.create("Title", "Body", "feature", "main")

        self.assertEqual(pr.number, 42)
        payload = session.request.call_args.kwargs["json"]
        self.assertEqual(payload["head"], "feature")
        self.assertTrue(payload["maintainer_can_modify"])

    def test_create_retries_with_owner_qualified_head(self) -> None:
        host, session = self._host(
            _response(422, {"message": "Validation Failed", "errors": [{"field": "head", "code": "invalid"}]}),
            _response(201, _pr(7)),
        )

        self.assertEqual(host.create("T", "", "feature", "main").number, 7)
        self.assertEqual(session.request.call_args.kwargs["json"]["head"], "octo:feature")

    def test_second_422_is_eventual_consistency(self) -> None:
        invalid = {"message": "Validation Failed", "errors": [{"field": "head", "code": "invalid"}]}
        host, _ = self._host(_response(422, invalid), _response(422, invalid))

        with self.assertRaises(EventualConsistencyFailure):
            host.create("T", "", "feature", "main")

    def test_existing_pr_is_not_retried(self) -> None:
        host, session = self._host(_response(422, {"message": "A pull request already exists for octo:feature."}))

        with self.assertRaises(NetworkFailure) as ctx:
            host.create("T", "", "feature", "main")

        self.assertNotIsInstance(ctx.exception, EventualConsistencyFailure)
        self.assertEqual(session.request.call_count, 1)

    def test_merge_close_and_push(self) -> None:
        host, session = self._host(_response(200, {"merged": True}), _response(200, {}))

        host.merge(9)
        host.close(9)
        host.push("feature")

        (merge_call, close_call) = session.request.call_args_list
        self.assertEqual(merge_call.args, ("PUT", "https://api.github.com/repos/octo/repo/pulls/9/merge"))
        self.assertEqual(close_call.kwargs["json"], {"state": "closed"})
        host._pusher.assert_called_once_with("feature")


class DeviceFlowTests(unittest.TestCase):
    def test_start(self) -> None:
        session = _session(
            _response(200, {"device_code": "dev", "user_code": "ABCD-1234", "verification_uri": "https://github.com/login/device", "interval": 5})
        )

        code = start_device_flow(session)

        self.assertEqual((code.device_code, code.user_code, code.interval), ("dev", "ABCD-1234", 5))

    def test_start_without_device_code_fails(self) -> None:
        with self.assertRaises(NetworkFailure):
            start_device_flow(_session(_response(200, {})))

    def test_poll_results(self) -> None:
        self.assertEqual(poll_for_token("dev", _session(_response(200, {"error": "authorization_pending"}))), TokenPoll())
        self.assertEqual(poll_for_token("dev", _session(_response(200, {"error": "slow_down"}))), TokenPoll(slow_down=True))
        self.assertEqual(poll_for_token("dev", _session(_response(200, {"access_token": "gho_x"}))), TokenPoll(token="gho_x"))

    def test_poll_terminal_errors(self) -> None:
        for error, message in (("expired_token", "expired"), ("access_denied", "denied"), ("bad", "auth error: bad")):
            with self.subTest(error=error), self.assertRaisesRegex(NetworkFailure, message):
                poll_for_token("dev", _session(_response(200, {"error": error})))


if __name__ == "__main__":
    unittest.main()
