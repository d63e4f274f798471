"""Type definitions for assembly metadata."""

from dataclasses import dataclass, field
from enum import StrEnum, auto

from dataclasses_json import DataClassJsonMixin


class MetadataError(RuntimeError):
    """Raised when assembly metadata is malformed or incomplete."""


class MissingDependencyError(MetadataError):
    """Raised when the assembly does not reference a required library."""


class TypeKind(StrEnum):
    """Classification of a type definition."""

    CLASS = auto()
    STATIC_CLASS = auto()  # abstract + sealed, e.g. the generated "Types" holder
    ENUM = auto()
    STRUCT = auto()
    INTERFACE = auto()


@dataclass
class AssemblyReference(DataClassJsonMixin):
    """Represents a referenced assembly."""

    name: str
    version: str | None = None


@dataclass
class FieldDescriptor(DataClassJsonMixin):
    """Represents a field declared on a type.

    Literal (const) fields carry their value in ``constant``; enum values
    are static literal fields of the enum type.
    """

    name: str
    type: str
    constant: int | None = None
    is_static: bool = False

    @property
    def is_literal(self) -> bool:
        return self.constant is not None


@dataclass
class PropertyDescriptor(DataClassJsonMixin):
    """Represents a property declared on a type."""

    name: str
    type: str
    has_getter: bool = True
    has_setter: bool = False
    is_static: bool = False

    @property
    def is_instance_readable(self) -> bool:
        return self.has_getter and not self.is_static


@dataclass
class TypeDescriptor(DataClassJsonMixin):
    """Represents a type definition and its nested types.

    ``full_name`` uses metadata syntax: ``Namespace.Name`` for top-level types
    and ``Namespace.Outer/Inner`` for nested types. It, ``declaring_type`` and
    the namespace of nested types are filled in when the owning
    :class:`Assembly` is constructed. Nested types take the namespace of
    their outermost declaring type.
    """

    name: str
    namespace: str = ""
    kind: TypeKind = TypeKind.CLASS
    interfaces: list[str] = field(default_factory=list)
    fields: list[FieldDescriptor] = field(default_factory=list)
    properties: list[PropertyDescriptor] = field(default_factory=list)
    nested_types: list["TypeDescriptor"] = field(default_factory=list)
    full_name: str = ""
    declaring_type: str | None = None

    @property
    def is_enum(self) -> bool:
        return self.kind == TypeKind.ENUM

    @property
    def is_nested(self) -> bool:
        return self.declaring_type is not None

    def implements(self, interface: str) -> bool:
        return interface in self.interfaces

    def get_property(self, name: str) -> PropertyDescriptor | None:
        """Find a readable instance property by name."""
        for prop in self.properties:
            if prop.name == name and prop.is_instance_readable:
                return prop
        return None


@dataclass
class Assembly(DataClassJsonMixin):
    """Represents the type table of a compiled assembly."""

    name: str
    references: list[AssemblyReference] = field(default_factory=list)
    types: list[TypeDescriptor] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._index: dict[str, TypeDescriptor] = {}
        for t in self.types:
            self._link(t, None)

    def _link(self, t: TypeDescriptor, parent: TypeDescriptor | None) -> None:
        if parent is None:
            t.full_name = f"{t.namespace}.{t.name}" if t.namespace else t.name
            t.declaring_type = None
        else:
            t.full_name = f"{parent.full_name}/{t.name}"
            t.namespace = parent.namespace
            t.declaring_type = parent.full_name

        if t.full_name in self._index:
            raise MetadataError(f"Type {t.full_name} is declared more than once")
        self._index[t.full_name] = t

        for nested in t.nested_types:
            self._link(nested, t)

    def find(self, full_name: str) -> TypeDescriptor | None:
        """Look up a type (top-level or nested) by its full name."""
        return self._index.get(full_name)

    def get_reference(self, name: str) -> AssemblyReference | None:
        return next((ref for ref in self.references if ref.name == name), None)
