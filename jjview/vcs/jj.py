"""Subprocess wrapper around the ``jj`` command line.

Every invocation runs in the repository root with colors disabled; failures
are raised as ``ExternalToolFailure`` carrying the extracted jj message.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from ..errors import ExternalToolFailure, NotManagedRepository, extract_error_message
from ..models import ChangedFile, RepositorySnapshot
from .parse import LOG_TEMPLATE, parse_changed_files, parse_log_output, parse_remote_list

logger = logging.getLogger(__name__)

JJ_BINARY = "jj"
DEFAULT_TIMEOUT_SECONDS = 60.0
PRIMARY_REVSET = "mutable() | bookmarks() | main@origin"
FALLBACK_REVSET = "mutable() | bookmarks()"


def find_repo_root(path: Path) -> Path | None:
    """Walk ``path`` and its parents looking for a ``.jj`` directory."""
    current = path.resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".jj").is_dir():
            return candidate
    return None


def jj_available() -> bool:
    return shutil.which(JJ_BINARY) is not None


class JJService:
    """Operations on one jj repository; safe to call from worker threads."""

    def __init__(self, repo_path: Path, *, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.repo_path = Path(repo_path)
        self.timeout_seconds = timeout_seconds

    def run(self, *args: str) -> str:
        """Run ``jj ARGS`` and return stdout, raising on non-zero exit."""
        command = (JJ_BINARY, "--color", "never", *args)
        logger.debug("running %s in %s", " ".join(command), self.repo_path)
        try:
            proc = subprocess.run(
                list(command),
                cwd=str(self.repo_path),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                timeout=self.timeout_seconds,
            )
        except FileNotFoundError as exc:
            raise ExternalToolFailure(
                "jj command not found - please install jujutsu",
                command=command,
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise ExternalToolFailure(
                f"jj {' '.join(args)} timed out after {self.timeout_seconds:g}s",
                command=command,
            ) from exc
        if proc.returncode != 0:
            diagnostic = proc.stderr or proc.stdout
            message = extract_error_message(diagnostic) or f"jj {' '.join(args)} failed"
            logger.warning("jj %s exited %d: %s", " ".join(args), proc.returncode, message)
            raise ExternalToolFailure(message, command=command, stderr=diagnostic)
        return proc.stdout

    # Reads

    def load_snapshot(self) -> RepositorySnapshot:
        """Fetch the commit graph, falling back when ``main@origin`` is unknown."""
        if find_repo_root(self.repo_path) is None:
            raise NotManagedRepository(str(self.repo_path))
        try:
            output = self.run("log", "-r", PRIMARY_REVSET, "-T", LOG_TEMPLATE)
        except ExternalToolFailure:
            logger.info("revset %r failed, retrying with %r", PRIMARY_REVSET, FALLBACK_REVSET)
            output = self.run("log", "-r", FALLBACK_REVSET, "-T", LOG_TEMPLATE)
        return parse_log_output(output)

    def changed_files(self, revision: str) -> list[ChangedFile]:
        return parse_changed_files(self.run("diff", "--summary", "-r", revision))

    def diff_text(self, revision: str) -> str:
        return self.run("diff", "--git", "-r", revision)

    def description(self, revision: str) -> str:
        """Full description of ``revision`` (trailing whitespace stripped)."""
        return self.run("log", "-r", revision, "--no-graph", "-T", "description").strip()

    def remote_url(self) -> str:
        url = parse_remote_list(self.run("git", "remote", "list"))
        if not url:
            raise ExternalToolFailure("no git remotes found")
        return url

    # Mutations

    def describe(self, revision: str, message: str) -> None:
        self.run("describe", revision, "-m", message)

    def edit(self, revision: str) -> None:
        self.run("edit", revision)

    def new(self, parent: str = "") -> None:
        if parent:
            self.run("new", parent)
        else:
            self.run("new")

    def squash(self, revision: str) -> None:
        """Squash ``revision`` into its parent, keeping both descriptions."""
        source = self.description(revision)
        parent = self.description(f"parents({revision})")
        combined = "\n\n".join(part for part in (parent, source) if part)
        self.run("squash", "-r", revision, "-m", combined)

    def abandon(self, revision: str) -> None:
        self.run("abandon", revision)

    def rebase(self, source: str, destination: str) -> None:
        # -s so descendants follow the rebased commit.
        self.run("rebase", "-s", source, "-d", destination)

    def create_bookmark(self, name: str, revision: str) -> None:
        self.run("bookmark", "create", name, "-r", revision)

    def move_bookmark(self, name: str, revision: str) -> None:
        self.run("bookmark", "set", name, "-r", revision)

    def create_branch_from_main(self, name: str) -> None:
        """Bookmark existing work based on ``main@origin`` or start a new commit there.

        If the working copy descends from a non-empty mutable child of
        ``main@origin``, that child gets the bookmark; otherwise a new empty
        commit is created on ``main@origin`` and bookmarked.
        """
        try:
            root = self.run(
                "log",
                "-r",
                "ancestors(@) & mutable() & children(main@origin)",
                "--no-graph",
                "-T",
                "change_id",
                "--limit",
                "1",
            ).strip()
        except ExternalToolFailure:
            root = ""
        if root:
            empty = self.run("log", "-r", root, "--no-graph", "-T", "empty").strip()
            if empty != "true":
                self.create_bookmark(name, root)
                return
        self.run("new", "main@origin")
        self.create_bookmark(name, "@")

    def delete_bookmark(self, name: str) -> None:
        self.run("bookmark", "delete", name)

    def push_bookmark(self, name: str) -> str:
        return self.run("git", "push", "--bookmark", name, "--allow-new")

    def fetch(self) -> str:
        return self.run("git", "fetch")

    def undo(self) -> None:
        self.run("undo")

    def init(self) -> None:
        """Initialize a jj repository and track ``main@origin`` when present."""
        self.run("git", "init")
        try:
            self.run("bookmark", "track", "main@origin")
        except ExternalToolFailure:
            logger.info("no main@origin to track in %s", self.repo_path)


__all__ = [
    "FALLBACK_REVSET",
    "JJService",
    "PRIMARY_REVSET",
    "find_repo_root",
    "jj_available",
]
