"""Map managed types to .proto types."""

import re

from protorebuilder.metadata import MetadataError, TypeReference

from .context import RebuildContext
from .types import InvariantViolation, MappingFailure, TypeMapping

# Map managed scalar types to .proto scalar types
SCALAR_TYPES = {
    "System.Double": "double",
    "System.Single": "float",
    "System.Int32": "int32",
    "System.Int64": "int64",
    "System.UInt32": "uint32",
    "System.UInt64": "uint64",
    "System.Boolean": "bool",
    "System.String": "string",
    "Google.Protobuf.ByteString": "bytes",
}

# Well-known message types shipped with the protobuf runtime
WELL_KNOWN_TYPES = {
    "Google.Protobuf.WellKnownTypes.Timestamp": (
        "google.protobuf.Timestamp",
        "google/protobuf/timestamp.proto",
    ),
    "Google.Protobuf.WellKnownTypes.Duration": (
        "google.protobuf.Duration",
        "google/protobuf/duration.proto",
    ),
    "Google.Protobuf.WellKnownTypes.Empty": ("google.protobuf.Empty", "google/protobuf/empty.proto"),
    "Google.Protobuf.WellKnownTypes.Any": ("google.protobuf.Any", "google/protobuf/any.proto"),
    "Google.Protobuf.WellKnownTypes.FieldMask": (
        "google.protobuf.FieldMask",
        "google/protobuf/field_mask.proto",
    ),
    "Google.Protobuf.WellKnownTypes.Struct": ("google.protobuf.Struct", "google/protobuf/struct.proto"),
    "Google.Protobuf.WellKnownTypes.Value": ("google.protobuf.Value", "google/protobuf/struct.proto"),
    "Google.Protobuf.WellKnownTypes.ListValue": (
        "google.protobuf.ListValue",
        "google/protobuf/struct.proto",
    ),
}

# Nullable scalars are generated for the wrapper well-known types
WRAPPER_TYPES = {
    "bool": "google.protobuf.BoolValue",
    "double": "google.protobuf.DoubleValue",
    "float": "google.protobuf.FloatValue",
    "int32": "google.protobuf.Int32Value",
    "int64": "google.protobuf.Int64Value",
    "uint32": "google.protobuf.UInt32Value",
    "uint64": "google.protobuf.UInt64Value",
}
WRAPPERS_IMPORT = "google/protobuf/wrappers.proto"

NULLABLE_TYPE = "System.Nullable`1"
REPEATED_FIELD_TYPE = "Google.Protobuf.Collections.RepeatedField`1"
MAP_FIELD_TYPE = "Google.Protobuf.Collections.MapField`2"

# Holder class the C# generator nests messages and enums under
TYPES_CONTAINER = "Types"


def pascal_to_lower_snake_case(text: str) -> str:
    return re.sub("([a-z])([A-Z])", r"\1_\2", text).lower()


def pascal_to_upper_snake_case(text: str) -> str:
    return re.sub("([a-z])([A-Z])", r"\1_\2", text).upper()


def proto_type_name(ctx: RebuildContext, full_name: str) -> str:
    """Fully qualified .proto name for a registered message or enum.

    ``Acme.Contacts.Person/Types/PhoneType`` becomes
    ``acme.contacts.Person.PhoneType``.
    """
    entity = ctx.messages.get(full_name) or ctx.enums.get(full_name)
    if entity is None:
        raise InvariantViolation(f"{full_name} is neither a known message nor a known enum")

    # root types are emitted at file level, whatever class holds them
    if entity.root_message is None:
        segments = [entity.name]
    else:
        root = ctx.messages[entity.root_message]
        *path, last = full_name[len(root.full_name) + 1 :].split("/")
        segments = [root.name] + [s for s in path if s != TYPES_CONTAINER] + [last]

    if entity.namespace:
        segments.insert(0, pascal_to_lower_snake_case(entity.namespace))
    return ".".join(segments)


def _expect_arguments(ref: TypeReference, count: int) -> None:
    if len(ref.arguments) != count:
        raise MetadataError(
            f"{ref.name} must have exactly {count} generic argument(s), "
            f"but found {len(ref.arguments)} in {ref.full_name}"
        )


def map_type(ctx: RebuildContext, ref: TypeReference) -> TypeMapping | MappingFailure:
    """Map a managed type reference to a .proto type.

    Returns a :class:`MappingFailure` for types with no .proto equivalent.
    """
    if ref.array_rank:
        return MappingFailure(ref.full_name)

    if not ref.is_generic:
        if ref.name in SCALAR_TYPES:
            return TypeMapping(SCALAR_TYPES[ref.name])

        if ref.name in WELL_KNOWN_TYPES:
            name, import_path = WELL_KNOWN_TYPES[ref.name]
            return TypeMapping(name, external_imports=(import_path,))

        if ref.name in ctx.messages or ref.name in ctx.enums:
            return TypeMapping(proto_type_name(ctx, ref.name), internal_types=(ref.name,))

        return MappingFailure(ref.full_name)

    if ref.name == NULLABLE_TYPE:
        _expect_arguments(ref, 1)
        inner = map_type(ctx, ref.arguments[0])
        if isinstance(inner, TypeMapping) and inner.name in WRAPPER_TYPES:
            return TypeMapping(WRAPPER_TYPES[inner.name], external_imports=(WRAPPERS_IMPORT,))
        return MappingFailure(ref.full_name)

    if ref.name == REPEATED_FIELD_TYPE:
        _expect_arguments(ref, 1)
        element = map_type(ctx, ref.arguments[0])
        if isinstance(element, MappingFailure):
            return MappingFailure(ref.full_name)
        return TypeMapping(
            f"repeated {element.name}",
            external_imports=element.external_imports,
            internal_types=element.internal_types,
        )

    if ref.name == MAP_FIELD_TYPE:
        _expect_arguments(ref, 2)
        key = map_type(ctx, ref.arguments[0])
        value = map_type(ctx, ref.arguments[1])
        if isinstance(key, MappingFailure) or isinstance(value, MappingFailure):
            return MappingFailure(ref.full_name)
        return TypeMapping(
            f"map<{key.name}, {value.name}>",
            external_imports=key.external_imports + value.external_imports,
            internal_types=key.internal_types + value.internal_types,
        )

    return MappingFailure(ref.full_name)
