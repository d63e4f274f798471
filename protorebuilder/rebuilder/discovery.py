"""Discover messages, enums, fields and oneofs from generated C# types.

The C# protobuf generator leaves a recognizable shape behind:

- message classes implement ``Google.Protobuf.IMessage``
- every field has a ``<Name>FieldNumber`` constant and a ``<Name>`` property
- fields with explicit presence get a read-only ``Has<Name>`` property
- every oneof gets a ``<Name>Case`` property typed as a nested
  ``<Name>OneofCase`` enum whose non-zero values name the member fields
"""

import logging

from protorebuilder.metadata import (
    Assembly,
    MetadataError,
    MissingDependencyError,
    TypeDescriptor,
    parse_type_reference,
)

from .context import RebuildContext
from .types import EnumType, Field, MessageType, Oneof

logger = logging.getLogger(__name__)

PROTOBUF_ASSEMBLY = "Google.Protobuf"
MESSAGE_INTERFACE = "Google.Protobuf.IMessage"

FIELD_NUMBER_SUFFIX = "FieldNumber"
CASE_SUFFIX = "Case"
ONEOF_CASE_SUFFIX = "OneofCase"
PRESENCE_PREFIX = "Has"


def check_dependencies(assembly: Assembly) -> None:
    """Ensure the assembly references the protobuf runtime."""
    reference = assembly.get_reference(PROTOBUF_ASSEMBLY)
    if reference is None:
        raise MissingDependencyError(
            f"{PROTOBUF_ASSEMBLY} assembly reference not found in {assembly.name}"
        )

    logger.info("Found %s %s reference.", reference.name, reference.version or "(unknown version)")


def gather_relevant_types(ctx: RebuildContext) -> None:
    """Register every message and enum type in the assembly."""
    for t in sorted(ctx.assembly.types, key=lambda x: x.full_name):
        _gather_relevant_types(ctx, t, root_message=None)


def _gather_relevant_types(ctx: RebuildContext, t: TypeDescriptor, root_message: str | None) -> None:
    message: MessageType | None = None
    if t.implements(MESSAGE_INTERFACE):
        message = MessageType(descriptor=t, root_message=root_message)
        ctx.messages[t.full_name] = message

    if t.is_enum:
        pairs = sorted(
            ((f.name, f.constant) for f in t.fields if f.constant is not None),
            key=lambda pair: pair[1],
        )
        ctx.enums[t.full_name] = EnumType(descriptor=t, root_message=root_message, value_pairs=pairs)

    if root_message is None and message is not None:
        root_message = message.full_name

    for nested in sorted(t.nested_types, key=lambda x: x.full_name):
        _gather_relevant_types(ctx, nested, root_message)


def populate_message_fields(ctx: RebuildContext) -> None:
    """Recover fields and oneofs for every discovered message."""
    for message in ctx.messages.values():
        _populate_message_fields(ctx, message)


def _has_explicit_presence(t: TypeDescriptor, name: str) -> bool:
    return any(
        p.name == f"{PRESENCE_PREFIX}{name}"
        and p.type == "System.Boolean"
        and not p.has_setter
        and p.is_instance_readable
        for p in t.properties
    )


def _populate_message_fields(ctx: RebuildContext, message: MessageType) -> None:
    t = message.descriptor
    number_to_field: dict[int, Field] = {}

    for prop in t.properties:
        if not prop.is_instance_readable or not prop.name.endswith(CASE_SUFFIX):
            continue

        ref = parse_type_reference(prop.type)
        case_enum = ctx.enums.get(ref.name)
        if ref.is_generic or case_enum is None or not ref.simple_name.endswith(ONEOF_CASE_SUFFIX):
            continue

        oneof_name = prop.name[: -len(CASE_SUFFIX)]
        members: list[Field] = []
        for value in case_enum.descriptor.fields:
            if not value.is_static or not value.is_literal or value.constant <= 0:
                continue

            member_property = t.get_property(value.name)
            if member_property is None:
                raise MetadataError(
                    f"No property was found for oneof {oneof_name} field {value.name} "
                    f"on message {t.full_name}"
                )

            member = Field(
                name=value.name,
                number=value.constant,
                value_type=parse_type_reference(member_property.type),
                is_oneof_member=True,
                has_explicit_presence=_has_explicit_presence(t, value.name),
            )
            existing = number_to_field.get(member.number)
            if existing is not None:
                raise MetadataError(
                    f"Field number {member.number} is used by both {existing.name} and "
                    f"{member.name} on message {t.full_name}"
                )
            number_to_field[member.number] = member
            members.append(member)

        message.oneofs.append(Oneof(name=oneof_name, discriminator=case_enum.full_name, members=members))

    for constant in t.fields:
        if (
            not constant.is_literal
            or isinstance(constant.constant, bool)
            or not constant.name.endswith(FIELD_NUMBER_SUFFIX)
            or constant.name == FIELD_NUMBER_SUFFIX
        ):
            continue

        name = constant.name[: -len(FIELD_NUMBER_SUFFIX)]
        prop = t.get_property(name)
        if prop is None:
            raise MetadataError(
                f"No property was found for field {constant.name} on message {t.full_name}"
            )

        field = Field(
            name=name,
            number=constant.constant,
            value_type=parse_type_reference(prop.type),
            is_oneof_member=False,
            has_explicit_presence=_has_explicit_presence(t, name),
        )

        existing = number_to_field.get(field.number)
        if existing is None:
            number_to_field[field.number] = field
            message.fields.append(field)
        elif existing.name != field.name:
            raise MetadataError(
                f"Field number {field.number} is used by both {existing.name} and "
                f"{field.name} on message {t.full_name}"
            )

    logger.debug(
        "%s: %d fields, %d oneofs", t.full_name, len(message.fields), len(message.oneofs)
    )
