"""jj integration: command wrapper, output parsers, and snapshot fetcher."""

from .fetcher import SnapshotFetcher
from .jj import JJService, find_repo_root, jj_available

__all__ = ["JJService", "SnapshotFetcher", "find_repo_root", "jj_available"]
