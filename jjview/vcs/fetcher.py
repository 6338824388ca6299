"""Snapshot boundary between the engine and the jj command line."""

from __future__ import annotations

import logging
from typing import Protocol

from ..models import RepositorySnapshot

logger = logging.getLogger(__name__)


class SnapshotSource(Protocol):
    def load_snapshot(self) -> RepositorySnapshot: ...


class SnapshotFetcher:
    """Produce a complete ``RepositorySnapshot`` on every call.

    Raises ``NotManagedRepository`` for directories without ``.jj`` and
    ``ExternalToolFailure`` when jj itself fails.
    """

    def __init__(self, source: SnapshotSource) -> None:
        self._source = source

    def fetch(self) -> RepositorySnapshot:
        snapshot = self._source.load_snapshot()
        logger.debug("fetched snapshot with %d commits", len(snapshot))
        return snapshot


__all__ = ["SnapshotFetcher", "SnapshotSource"]
