"""Type definitions for schema reconstruction."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from protorebuilder.metadata import TypeDescriptor, TypeReference

if TYPE_CHECKING:
    from .context import RebuildContext


class RebuildError(RuntimeError):
    """Raised when the schema cannot be rebuilt."""


class InvariantViolation(RebuildError):
    """Raised when an internal consistency check fails.

    These indicate a defect in the analysis or merge algorithm (or types the
    discovery phase mis-classified), not merely unusual input.
    """


@dataclass(frozen=True)
class TypeMapping:
    """Result of mapping a managed type to a .proto type.

    ``internal_types`` holds full names of user messages/enums referenced by
    the type; they become imports only at module granularity.
    """

    name: str
    external_imports: tuple[str, ...] = ()
    internal_types: tuple[str, ...] = ()


@dataclass(frozen=True)
class MappingFailure:
    """A managed type that has no .proto equivalent."""

    type_name: str


@dataclass(eq=False)
class EnumType:
    """An enum type discovered in the assembly."""

    descriptor: TypeDescriptor
    root_message: str | None
    value_pairs: list[tuple[str, int]]

    @property
    def full_name(self) -> str:
        return self.descriptor.full_name

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def namespace(self) -> str:
        return self.descriptor.namespace

    @property
    def is_root(self) -> bool:
        return self.root_message is None


@dataclass
class Field:
    """A message field recovered from its field-number constant."""

    name: str
    number: int
    value_type: TypeReference
    is_oneof_member: bool
    has_explicit_presence: bool


@dataclass
class Oneof:
    """A oneof group identified by its generated case enum."""

    name: str
    discriminator: str
    members: list[Field]


@dataclass(eq=False)
class MessageType:
    """A message type discovered in the assembly.

    Nested messages/enums and dependencies are recorded by full name.
    ``root_message`` is the full name of the outermost enclosing message.
    """

    descriptor: TypeDescriptor
    root_message: str | None
    fields: list[Field] = field(default_factory=list)
    oneofs: list[Oneof] = field(default_factory=list)
    nested_messages: list[str] = field(default_factory=list)
    nested_enums: list[str] = field(default_factory=list)
    imports: set[str] = field(default_factory=set)
    depends_on_messages: set[str] = field(default_factory=set)
    depends_on_enums: set[str] = field(default_factory=set)

    @property
    def full_name(self) -> str:
        return self.descriptor.full_name

    @property
    def name(self) -> str:
        return self.descriptor.name

    @property
    def namespace(self) -> str:
        return self.descriptor.namespace

    @property
    def is_root(self) -> bool:
        return self.root_message is None

    @property
    def root(self) -> str:
        """Full name of the root message owning this message (itself if root)."""
        return self.root_message or self.full_name

    def all_fields(self) -> list[Field]:
        """Regular fields followed by oneof members."""
        return self.fields + [member for oneof in self.oneofs for member in oneof.members]


@dataclass(eq=False)
class Module:
    """A group of root types destined for one output file.

    Edges to other modules are held as module ids; a module that has been
    merged away is marked removed and dropped from the context.
    """

    id: int
    namespace: str
    root_messages: set[str] = field(default_factory=set)
    root_enums: set[str] = field(default_factory=set)
    depends_on_root_messages: set[str] = field(default_factory=set)
    depends_on_root_enums: set[str] = field(default_factory=set)
    depends_on: set[int] = field(default_factory=set)
    depended_on_by: set[int] = field(default_factory=set)
    removed: bool = False

    def __repr__(self) -> str:
        return (
            f"Module({self.id}, {self.namespace!r}, removed={self.removed}, "
            f"messages={len(self.root_messages)}, enums={len(self.root_enums)}, "
            f"depends_on={sorted(self.depends_on)}, depended_on_by={sorted(self.depended_on_by)})"
        )

    def add_depends_on_message(self, root: str) -> None:
        """Record a dependency on the message family rooted at ``root``."""
        assert root not in self.root_messages, f"{root} is already a root message of this module"
        self.depends_on_root_messages.add(root)

    def add_depends_on_enum(self, enum: EnumType) -> None:
        """Record a dependency on an enum.

        Enums nested in a message are not dependency targets on their own;
        the dependency collapses to the owning root message.
        """
        if enum.root_message is not None:
            self.add_depends_on_message(enum.root_message)
        else:
            self.depends_on_root_enums.add(enum.full_name)

    def populate_module_lookup(self, ctx: RebuildContext) -> None:
        for name in self.root_messages:
            ctx.message_module[name] = self.id
        for name in self.root_enums:
            ctx.enum_module[name] = self.id

    def merge(self, ctx: RebuildContext, other: Module) -> None:
        """Merge ``other`` into this module and remove it from the context."""
        if self.namespace != other.namespace:
            raise InvariantViolation(
                f"Cannot merge modules with different namespaces: "
                f"'{self.namespace}' and '{other.namespace}'"
            )
        if self is other or self.id == other.id:
            raise InvariantViolation(f"Cannot merge module {self.id} with itself")

        self.root_messages |= other.root_messages
        self.root_enums |= other.root_enums
        self.depends_on_root_messages |= other.depends_on_root_messages
        self.depends_on_root_enums |= other.depends_on_root_enums
        self.depends_on_root_messages -= self.root_messages
        self.depends_on_root_enums -= self.root_enums

        for dependency_id in other.depends_on:
            dependency = self if dependency_id == self.id else ctx.modules[dependency_id]
            dependency.depended_on_by.discard(other.id)
            dependency.depended_on_by.add(self.id)

        for dependent_id in other.depended_on_by:
            dependent = self if dependent_id == self.id else ctx.modules[dependent_id]
            dependent.depends_on.discard(other.id)
            dependent.depends_on.add(self.id)

        self.depends_on |= other.depends_on
        self.depended_on_by |= other.depended_on_by
        self.depends_on -= {self.id, other.id}
        self.depended_on_by -= {self.id, other.id}

        self.populate_module_lookup(ctx)

        other.removed = True
        ctx.modules.pop(other.id, None)


@dataclass
class OutputFile:
    """A .proto file to be written."""

    file_name: str
    package_name: str
    namespace: str
    imports: list[str]
    messages: list[MessageType]
    enums: list[EnumType]
