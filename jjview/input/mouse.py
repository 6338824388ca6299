"""Named click zones recorded while rendering a frame."""

from __future__ import annotations

from dataclasses import dataclass

from .bindings import INDEXED_ZONE_COMMANDS, TAB_ZONE_COMMANDS, ZONE_ACTION_PREFIX, ZONE_TAB_PREFIX


@dataclass(frozen=True)
class Zone:
    """A clickable span on one 0-based screen row, ``col_end`` exclusive."""

    name: str
    row: int
    col_start: int
    col_end: int

    def contains(self, col: int, row: int) -> bool:
        return row == self.row and self.col_start <= col < self.col_end


class ZoneMap:
    def __init__(self) -> None:
        self._zones: list[Zone] = []

    def add(self, name: str, row: int, col_start: int = 0, col_end: int = 1 << 16) -> None:
        if col_end > col_start:
            self._zones.append(Zone(name, row, col_start, col_end))

    def __len__(self) -> int:
        return len(self._zones)

    def truncate(self, rows: int) -> None:
        """Forget zones on row ``rows`` and below."""
        self._zones = [zone for zone in self._zones if zone.row < rows]

    def names(self) -> list[str]:
        return [zone.name for zone in self._zones]

    def hit(self, col: int, row: int) -> str:
        """Return the zone under 0-based ``(col, row)``; later zones win."""
        for zone in reversed(self._zones):
            if zone.contains(col, row):
                return zone.name
        return ""


@dataclass(frozen=True)
class ZoneTarget:
    command: str
    index: int | None = None


def resolve_zone(name: str) -> ZoneTarget | None:
    """Map a zone name to the command it triggers.

    ``action:squash`` -> ``squash``; ``tab:prs`` -> ``view_prs``;
    ``commit:3`` -> ``select_commit`` with index 3.
    """
    if name.startswith(ZONE_ACTION_PREFIX):
        command = name[len(ZONE_ACTION_PREFIX) :]
        return ZoneTarget(command) if command else None
    if name.startswith(ZONE_TAB_PREFIX):
        command = TAB_ZONE_COMMANDS.get(name[len(ZONE_TAB_PREFIX) :])
        return ZoneTarget(command) if command else None
    kind, _, raw_index = name.partition(":")
    command = INDEXED_ZONE_COMMANDS.get(kind)
    if command is None:
        return None
    try:
        return ZoneTarget(command, int(raw_index))
    except ValueError:
        return None


__all__ = ["Zone", "ZoneMap", "ZoneTarget", "resolve_zone"]
