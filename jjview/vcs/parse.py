"""Parsers for jj command output.

The log template emits one marker-prefixed record per commit; everything
before the marker on that line is jj's own graph art.
"""

from __future__ import annotations

from dataclasses import replace

from ..models import ChangedFile, Commit, RepositorySnapshot

COMMIT_MARKER = "<<<COMMIT>>>"
NO_DESCRIPTION = "(no description)"

LOG_TEMPLATE = (
    "concat("
    f'"{COMMIT_MARKER}", '
    'change_id.short(8), "|", '
    'commit_id.short(8), "|", '
    'author.email(), "|", '
    'author.timestamp(), "|", '
    f'if(description, description.first_line(), "{NO_DESCRIPTION}"), "|", '
    'parents.map(|p| p.commit_id().short(8)).join(","), "|", '
    'bookmarks.join(","), "|", '
    'if(current_working_copy, "true", "false"), "|", '
    'if(conflict, "true", "false"), "|", '
    'if(immutable, "true", "false"), "|", '
    'if(divergent, "true", "false"), '
    '"\\n")'
)
# change_id, commit_id, author, timestamp come before the summary; the six
# remaining fields follow it. The summary itself may contain "|".
_LEADING_FIELDS = 4
_TRAILING_FIELDS = 6


def normalize_bookmarks(raw: str) -> tuple[str, ...]:
    """Strip ``*`` and ``@remote`` decorations and drop duplicates, keeping order."""
    names: list[str] = []
    for part in raw.split(","):
        name = part.strip().rstrip("*")
        at = name.find("@")
        if at > 0:
            name = name[:at]
        if name and name not in names:
            names.append(name)
    return tuple(names)


def _flag(value: str) -> bool:
    return value.strip() == "true"


def parse_commit_record(data: str, graph_prefix: str = "") -> Commit | None:
    """Parse the text after the marker into a ``Commit``; ``None`` if malformed."""
    head = data.split("|", _LEADING_FIELDS)
    if len(head) <= _LEADING_FIELDS:
        return None
    tail = head[_LEADING_FIELDS].rsplit("|", _TRAILING_FIELDS)
    if len(tail) <= _TRAILING_FIELDS:
        return None
    change_id, commit_id, author, timestamp = (part.strip() for part in head[:_LEADING_FIELDS])
    summary, parents_raw, bookmarks_raw, working, conflict, immutable, divergent = tail
    parents_raw = parents_raw.strip()
    return Commit(
        id=commit_id,
        change_id=change_id,
        author=author,
        timestamp=timestamp,
        summary=summary.strip() or NO_DESCRIPTION,
        parents=tuple(p for p in parents_raw.split(",") if p),
        branches=normalize_bookmarks(bookmarks_raw),
        is_working=_flag(working),
        conflicted=_flag(conflict),
        immutable=_flag(immutable),
        divergent=_flag(divergent),
        graph_prefix=graph_prefix.rstrip(),
    )


def parse_log_output(output: str) -> RepositorySnapshot:
    """Build a snapshot from templated ``jj log`` output (graph enabled).

    Lines without the marker are graph connectors; they are attached to the
    commit above them so the renderer can reproduce jj's layout.
    """
    commits: list[Commit] = []
    pending: list[str] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        marker_at = line.find(COMMIT_MARKER)
        if marker_at < 0:
            pending.append(line.rstrip())
            continue
        if commits and pending:
            commits[-1] = replace(commits[-1], graph_lines=tuple(pending))
        pending = []
        commit = parse_commit_record(line[marker_at + len(COMMIT_MARKER) :], line[:marker_at])
        if commit is not None:
            commits.append(commit)
    if commits and pending:
        commits[-1] = replace(commits[-1], graph_lines=tuple(pending))
    return RepositorySnapshot.from_commits(commits)


def parse_changed_files(output: str) -> list[ChangedFile]:
    """Parse ``jj diff --summary`` lines such as ``M src/app.py``."""
    files: list[ChangedFile] = []
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        status, _, path = stripped.partition(" ")
        if path:
            files.append(ChangedFile(status=status, path=path.strip()))
    return files


def parse_remote_list(output: str) -> str:
    """Return the ``origin`` URL from ``jj git remote list``, else the first one."""
    remotes: list[tuple[str, str]] = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 2:
            remotes.append((parts[0], parts[1]))
    for name, url in remotes:
        if name == "origin":
            return url
    return remotes[0][1] if remotes else ""


__all__ = [
    "COMMIT_MARKER",
    "LOG_TEMPLATE",
    "NO_DESCRIPTION",
    "normalize_bookmarks",
    "parse_changed_files",
    "parse_commit_record",
    "parse_log_output",
    "parse_remote_list",
]
