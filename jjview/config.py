"""Layered JSON configuration.

Resolution order is environment variables, then the repository-local
``.jjview.json``, then the global file under the platform config dir.
All file access is defensive: malformed or missing files fall back safely.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path

from platformdirs import user_config_dir

logger = logging.getLogger(__name__)

APP_NAME = "jjview"
CONFIG_FILENAME = "config.json"
LOCAL_CONFIG_FILENAME = ".jjview.json"
CONFIG_ENV_VAR = "JJVIEW_CONFIG"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

DEFAULT_PR_LIMIT = 100
DEFAULT_PR_REFRESH_SECONDS = 120

ENV_OVERRIDES: dict[str, str] = {
    "github_token": "GITHUB_TOKEN",
    "ticket_provider": "TICKET_PROVIDER",
    "jira_url": "JIRA_URL",
    "jira_user": "JIRA_USER",
    "jira_token": "JIRA_TOKEN",
    "codecks_subdomain": "CODECKS_SUBDOMAIN",
    "codecks_token": "CODECKS_TOKEN",
    "codecks_project": "CODECKS_PROJECT",
}


@dataclass(frozen=True)
class Settings:
    """Resolved configuration values; the engine only ever reads these."""

    github_token: str = ""
    github_show_merged: bool = True
    github_show_closed: bool = True
    github_only_mine: bool = False
    github_pr_limit: int = DEFAULT_PR_LIMIT
    github_refresh_interval: int = DEFAULT_PR_REFRESH_SECONDS
    ticket_provider: str = ""
    jira_url: str = ""
    jira_user: str = ""
    jira_token: str = ""
    jira_excluded_statuses: str = ""
    codecks_subdomain: str = ""
    codecks_token: str = ""
    codecks_project: str = ""
    codecks_excluded_statuses: str = ""
    ticket_auto_in_progress: bool = True

    @property
    def has_github(self) -> bool:
        return bool(self.github_token)

    @property
    def has_jira(self) -> bool:
        return bool(self.jira_url and self.jira_user and self.jira_token)

    @property
    def has_codecks(self) -> bool:
        return bool(self.codecks_subdomain and self.codecks_token)

    def resolved_ticket_provider(self) -> str:
        """Explicit provider name, else auto-detected from configured credentials."""
        if self.ticket_provider:
            return self.ticket_provider.strip().lower()
        if self.has_codecks:
            return "codecks"
        if self.has_jira:
            return "jira"
        return ""

    def excluded_statuses(self, provider: str) -> frozenset[str]:
        """Lower-cased statuses hidden from the ticket list for ``provider``."""
        raw = {
            "jira": self.jira_excluded_statuses,
            "codecks": self.codecks_excluded_statuses,
        }.get(provider, "")
        return frozenset(part.strip().lower() for part in raw.split(",") if part.strip())


_FIELD_DEFAULTS = {f.name: f.default for f in fields(Settings)}


def load_config(path: Path | None = None) -> dict[str, object]:
    """Load one persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    config_path = path if path is not None else CONFIG_PATH
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("ignoring unreadable config %s: %s", config_path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("ignoring config %s: top level is not an object", config_path)
        return {}
    return data


def _private_opener(path: str, flags: int) -> int:
    fd = os.open(path, flags, 0o600)
    if hasattr(os, "fchmod"):
        os.fchmod(fd, 0o600)
    return fd


def save_config(data: Mapping[str, object], path: Path | None = None) -> Path:
    """Persist config data as pretty-printed JSON readable only by the user.

    The file is created with mode 0600 and an existing file is narrowed to
    0600 before any content is written.
    """
    config_path = path if path is not None else CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8", opener=_private_opener) as handle:
        handle.write(json.dumps(dict(data), indent=2) + "\n")
    logger.info("saved config to %s", config_path)
    return config_path


def _coerce(name: str, value: object) -> object | None:
    """Return ``value`` if it has the type of field ``name``, else ``None``."""
    default = _FIELD_DEFAULTS[name]
    if isinstance(default, bool):
        return value if isinstance(value, bool) else None
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            return None
        return value
    if isinstance(value, str):
        return value
    return None


def _merge(values: dict[str, object], layer: Mapping[str, object], origin: str) -> None:
    for name, raw in layer.items():
        if name not in _FIELD_DEFAULTS:
            continue
        coerced = _coerce(name, raw)
        if coerced is None:
            logger.warning("ignoring %s=%r from %s", name, raw, origin)
            continue
        if coerced == "":
            continue
        values[name] = coerced


def local_config_path(repo_root: Path) -> Path:
    return repo_root / LOCAL_CONFIG_FILENAME


def load_settings(repo_root: Path, environ: Mapping[str, str] | None = None) -> Settings:
    """Resolve settings for ``repo_root`` (env > local file > global file)."""
    env = os.environ if environ is None else environ
    values: dict[str, object] = {}

    explicit = env.get(CONFIG_ENV_VAR, "")
    if explicit:
        _merge(values, load_config(Path(explicit)), explicit)
    else:
        _merge(values, load_config(CONFIG_PATH), str(CONFIG_PATH))
        local_path = local_config_path(repo_root)
        _merge(values, load_config(local_path), str(local_path))

    for name, env_name in ENV_OVERRIDES.items():
        env_value = env.get(env_name, "")
        if env_value:
            values[name] = env_value

    return replace(Settings(), **values)


def changed_fields(settings: Settings, base: Settings | None = None) -> dict[str, object]:
    """Fields of ``settings`` whose value differs from ``base`` (defaults when omitted)."""
    reference = asdict(base if base is not None else Settings())
    return {
        name: value
        for name, value in asdict(settings).items()
        if value != reference[name]
    }


def save_settings(
    settings: Settings,
    repo_root: Path,
    *,
    local: bool = False,
    base: Settings | None = None,
) -> Path:
    """Record edits to ``settings`` in the global file, or the repository file when ``local``.

    Only fields that differ from ``base`` are written, merged over what the
    target file already holds. Values that came from the environment or from
    another layer therefore stay where they were unless they were edited.
    """
    explicit = os.environ.get(CONFIG_ENV_VAR, "")
    if local:
        target = local_config_path(repo_root)
    elif explicit:
        target = Path(explicit)
    else:
        target = CONFIG_PATH
    data = load_config(target)
    data.update(changed_fields(settings, base))
    return save_config(data, target)


__all__ = [
    "APP_NAME",
    "CONFIG_PATH",
    "LOCAL_CONFIG_FILENAME",
    "Settings",
    "changed_fields",
    "load_config",
    "load_settings",
    "save_config",
    "save_settings",
]
