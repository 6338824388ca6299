"""Key-combo registries built from the command table."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass

from .bindings import Binding


@dataclass(frozen=True)
class KeyComboBinding:
    """Mapping from one or more key tokens to a single command callback."""

    combos: tuple[str, ...]
    handler: Callable[[], object]


class KeyComboRegistry:
    """Exact-match key dispatch for one input context."""

    def __init__(self, context: str = "") -> None:
        self.context = context
        self._handlers: dict[str, Callable[[], object]] = {}

    @classmethod
    def from_bindings(
        cls,
        context: str,
        bindings: Iterable[Binding],
        commands: Mapping[str, Callable[[], object]],
    ) -> KeyComboRegistry:
        """Bind every binding of ``context`` to its entry in ``commands``.

        Raises ``KeyError`` when a binding names a command that does not exist.
        """
        registry = cls(context)
        for binding in bindings:
            if binding.context == context:
                registry.register_binding(KeyComboBinding(binding.keys, commands[binding.command]))
        return registry

    def register_binding(self, binding: KeyComboBinding) -> KeyComboRegistry:
        """Register one binding, overwriting existing handlers for same combos."""
        for combo in binding.combos:
            self._handlers[combo] = binding.handler
        return self

    def register_bindings(self, *bindings: KeyComboBinding) -> KeyComboRegistry:
        for binding in bindings:
            self.register_binding(binding)
        return self

    def __contains__(self, key: str) -> bool:
        return key in self._handlers

    def dispatch(self, key: str) -> bool:
        """Invoke the handler bound to ``key``; returns whether one existed."""
        handler = self._handlers.get(key)
        if handler is None:
            return False
        handler()
        return True


__all__ = ["KeyComboBinding", "KeyComboRegistry"]
