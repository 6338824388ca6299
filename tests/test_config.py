from __future__ import annotations

import json
import os
import stat
import tempfile
import unittest
from dataclasses import replace
from pathlib import Path
from unittest import mock

from jjview import config
from jjview.config import Settings


class ConfigLayeringTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.repo = self.tmp / "repo"
        self.repo.mkdir()
        self.global_path = self.tmp / "global" / "config.json"
        patcher = mock.patch("jjview.config.CONFIG_PATH", self.global_path)
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_defaults_when_nothing_is_configured(self) -> None:
        settings = config.load_settings(self.repo, environ={})

        self.assertEqual(settings, Settings())
        self.assertFalse(settings.has_github)
        self.assertEqual(settings.github_refresh_interval, 120)

    def test_local_file_overrides_global_and_env_overrides_both(self) -> None:
        config.save_config({"github_token": "global", "jira_url": "https://global"}, self.global_path)
        config.save_config({"jira_url": "https://local", "github_pr_limit": 20}, self.repo / ".jjview.json")

        settings = config.load_settings(self.repo, environ={"GITHUB_TOKEN": "env"})

        self.assertEqual(settings.github_token, "env")
        self.assertEqual(settings.jira_url, "https://local")
        self.assertEqual(settings.github_pr_limit, 20)

    def test_explicit_config_file_replaces_both_files(self) -> None:
        config.save_config({"github_token": "global"}, self.global_path)
        explicit = self.tmp / "explicit.json"
        config.save_config({"codecks_subdomain": "team"}, explicit)

        settings = config.load_settings(self.repo, environ={"JJVIEW_CONFIG": str(explicit)})

        self.assertEqual(settings.github_token, "")
        self.assertEqual(settings.codecks_subdomain, "team")

    def test_malformed_files_and_wrong_types_are_ignored(self) -> None:
        self.global_path.parent.mkdir(parents=True)
        self.global_path.write_text("{not json", encoding="utf-8")
        (self.repo / ".jjview.json").write_text(
            json.dumps({"github_show_merged": "yes", "github_pr_limit": -5, "unknown": 1}),
            encoding="utf-8",
        )

        with self.assertLogs("jjview.config", level="WARNING"):
            settings = config.load_settings(self.repo, environ={})

        self.assertTrue(settings.github_show_merged)
        self.assertEqual(settings.github_pr_limit, 100)

    def test_non_object_top_level_is_ignored(self) -> None:
        self.global_path.parent.mkdir(parents=True)
        self.global_path.write_text("[1, 2]", encoding="utf-8")

        self.assertEqual(config.load_config(self.global_path), {})

    def test_save_writes_only_non_defaults_with_private_mode(self) -> None:
        settings = Settings(github_token="tok", github_show_closed=False)

        with mock.patch.dict(os.environ, {}, clear=False):
            os.environ.pop("JJVIEW_CONFIG", None)
            path = config.save_settings(settings, self.repo)

        self.assertEqual(path, self.global_path)
        self.assertEqual(json.loads(path.read_text()), {"github_token": "tok", "github_show_closed": False})
        self.assertEqual(stat.S_IMODE(path.stat().st_mode), 0o600)

    def test_save_local_targets_repository_file(self) -> None:
        path = config.save_settings(Settings(jira_user="me"), self.repo, local=True)

        self.assertEqual(path, self.repo / ".jjview.json")
        self.assertEqual(json.loads(path.read_text()), {"jira_user": "me"})

    def test_save_keeps_environment_and_local_values_out_of_the_global_file(self) -> None:
        config.save_config({"github_pr_limit": 50}, self.global_path)
        config.save_config({"jira_url": "https://local"}, self.repo / ".jjview.json")
        loaded = config.load_settings(self.repo, environ={"GITHUB_TOKEN": "env-token"})
        edited = replace(loaded, github_show_closed=False)

        with mock.patch.dict(os.environ, {}, clear=False):
            os.environ.pop("JJVIEW_CONFIG", None)
            path = config.save_settings(edited, self.repo, base=loaded)

        self.assertEqual(json.loads(path.read_text()), {"github_pr_limit": 50, "github_show_closed": False})

    def test_existing_world_readable_file_is_narrowed(self) -> None:
        self.global_path.parent.mkdir(parents=True)
        self.global_path.write_text("{}", encoding="utf-8")
        os.chmod(self.global_path, 0o644)

        config.save_config({"github_token": "tok"}, self.global_path)

        self.assertEqual(stat.S_IMODE(self.global_path.stat().st_mode), 0o600)


class TicketProviderResolutionTests(unittest.TestCase):
    def test_explicit_provider_wins(self) -> None:
        settings = Settings(ticket_provider=" Jira ", codecks_subdomain="x", codecks_token="y")

        self.assertEqual(settings.resolved_ticket_provider(), "jira")

    def test_auto_detects_codecks_before_jira(self) -> None:
        settings = Settings(
            codecks_subdomain="x",
            codecks_token="y",
            jira_url="https://j",
            jira_user="u",
            jira_token="t",
        )

        self.assertEqual(settings.resolved_ticket_provider(), "codecks")
        self.assertEqual(Settings(jira_url="https://j", jira_user="u", jira_token="t").resolved_ticket_provider(), "jira")
        self.assertEqual(Settings().resolved_ticket_provider(), "")

    def test_excluded_statuses_are_normalized(self) -> None:
        settings = Settings(jira_excluded_statuses="Done, Won't Fix ,")

        self.assertEqual(settings.excluded_statuses("jira"), frozenset({"done", "won't fix"}))
        self.assertEqual(settings.excluded_statuses("codecks"), frozenset())


if __name__ == "__main__":
    unittest.main()
