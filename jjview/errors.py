"""Error taxonomy surfaced by the engine.

Validation failures are resolved locally before dispatch; every other
failure becomes the persistent, dismissible error shown by the UI.
"""

from __future__ import annotations

import re


class JJViewError(Exception):
    """Base class for all failures the UI knows how to present."""


class NotManagedRepository(JJViewError):
    """The target directory is not a jj repository."""

    def __init__(self, path: str) -> None:
        super().__init__(f"not a jj repository: {path}")
        self.path = path


class ExternalToolFailure(JJViewError):
    """A ``jj`` invocation exited non-zero or could not be started."""

    def __init__(self, message: str, *, command: tuple[str, ...] = (), stderr: str = "") -> None:
        super().__init__(message)
        self.command = command
        self.stderr = stderr


class NetworkFailure(JJViewError):
    """HTTP failure talking to a collaborator, including auth errors."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EventualConsistencyFailure(NetworkFailure):
    """The remote has not yet indexed a just-pushed ref; safe to retry."""


class ValidationFailure(JJViewError):
    """User input rejected before any dispatch."""


class StaleSelectionFailure(JJViewError):
    """The selected change vanished between two snapshots."""

    def __init__(self, change_id: str) -> None:
        super().__init__(f"selected change {change_id} is no longer present")
        self.change_id = change_id


_ERROR_LINE_RE = re.compile(r"^\s*Error:\s*(.*)$")


def extract_error_message(stderr: str) -> str:
    """Pull the actionable line out of jj diagnostic output.

    Prefers the text after an ``Error:`` line (plus its continuation lines);
    otherwise the first line that is not a warning or hint.
    """
    lines = [line.rstrip() for line in stderr.splitlines()]
    for index, line in enumerate(lines):
        match = _ERROR_LINE_RE.match(line)
        if match is None:
            continue
        parts = [match.group(1).strip()]
        for follow in lines[index + 1 :]:
            stripped = follow.strip()
            if not stripped or stripped.startswith(("Hint:", "Warning:")):
                break
            parts.append(stripped)
        return " ".join(part for part in parts if part)
    for line in lines:
        stripped = line.strip()
        if stripped and not stripped.startswith(("Warning:", "Hint:")):
            return stripped
    return stderr.strip()


def describe_error(error: BaseException) -> str:
    """Human-facing one-line description used in the status line."""
    if isinstance(error, JJViewError):
        return str(error)
    return f"{type(error).__name__}: {error}"


__all__ = [
    "EventualConsistencyFailure",
    "ExternalToolFailure",
    "JJViewError",
    "NetworkFailure",
    "NotManagedRepository",
    "StaleSelectionFailure",
    "ValidationFailure",
    "describe_error",
    "extract_error_message",
]
