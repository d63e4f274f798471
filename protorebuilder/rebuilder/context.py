"""Shared state for a single rebuild run."""

import itertools
from dataclasses import dataclass, field
from typing import Iterator

from protorebuilder.metadata import Assembly

from .types import EnumType, MessageType, Module


@dataclass
class RebuildContext:
    """Registries of discovered types and the evolving module graph.

    Messages and enums are keyed by full name, modules by id. Only live
    modules are kept in ``modules``.
    """

    assembly: Assembly
    messages: dict[str, MessageType] = field(default_factory=dict)
    enums: dict[str, EnumType] = field(default_factory=dict)
    modules: dict[int, Module] = field(default_factory=dict)
    message_module: dict[str, int] = field(default_factory=dict)
    enum_module: dict[str, int] = field(default_factory=dict)
    _ids: Iterator[int] = field(default_factory=lambda: itertools.count(1), repr=False)

    def next_module_id(self) -> int:
        return next(self._ids)

    def new_module(self, namespace: str) -> Module:
        """Create a module with the next id. It is not registered as live yet."""
        return Module(id=self.next_module_id(), namespace=namespace)

    def add_module(self, module: Module) -> None:
        self.modules[module.id] = module

    def root_messages(self) -> list[MessageType]:
        return [m for m in self.messages.values() if m.is_root]

    def root_enums(self) -> list[EnumType]:
        return [e for e in self.enums.values() if e.is_root]

    def sorted_modules(self) -> list[Module]:
        return [self.modules[i] for i in sorted(self.modules)]

    def module_for_message(self, name: str) -> Module:
        return self.modules[self.message_module[name]]

    def module_for_enum(self, name: str) -> Module:
        return self.modules[self.enum_module[name]]
