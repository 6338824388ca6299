"""Keyboard and mouse input: decoding, command table, and click zones."""

from .bindings import BINDINGS, Binding, bindings_for, key_label
from .key_registry import KeyComboBinding, KeyComboRegistry
from .keys import parse_mouse_col_row, read_key
from .mouse import ZoneMap, ZoneTarget, resolve_zone

__all__ = [
    "BINDINGS",
    "Binding",
    "KeyComboBinding",
    "KeyComboRegistry",
    "ZoneMap",
    "ZoneTarget",
    "bindings_for",
    "key_label",
    "parse_mouse_col_row",
    "read_key",
    "resolve_zone",
]
