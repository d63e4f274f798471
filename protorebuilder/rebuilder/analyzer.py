"""Nesting, dependency and pruning analysis over discovered types."""

import logging

from protorebuilder.metadata import TypeKind

from .context import RebuildContext
from .mapper import TYPES_CONTAINER, map_type
from .types import Field, InvariantViolation, MappingFailure, MessageType

logger = logging.getLogger(__name__)


def connect_child_types(ctx: RebuildContext) -> None:
    """Link nested messages and enums to their parent message.

    Raises :class:`InvariantViolation` if a message cannot be reached from
    any root message by following the links, or if an enum owned by a
    message is not linked to any message.
    """
    for message in ctx.messages.values():
        _connect_child_types(ctx, message)

    remaining = [m.full_name for m in ctx.root_messages()]
    discovered: set[str] = set()
    while remaining:
        current = remaining.pop()
        discovered.add(current)
        remaining.extend(ctx.messages[current].nested_messages)

    disconnected = [name for name in ctx.messages if name not in discovered]
    if disconnected:
        raise InvariantViolation(
            f"{len(disconnected)} messages are not nested under any root message: "
            + ", ".join(disconnected)
        )

    linked = {name for m in ctx.messages.values() for name in m.nested_enums}
    unlinked = [e.full_name for e in ctx.enums.values() if not e.is_root and e.full_name not in linked]
    if unlinked:
        raise InvariantViolation(
            f"{len(unlinked)} enums are not nested under any message: " + ", ".join(unlinked)
        )


def _connect_child_types(ctx: RebuildContext, message: MessageType) -> None:
    t = message.descriptor
    nested_types = list(t.nested_types)
    container = next(
        (n for n in t.nested_types if n.kind == TypeKind.STATIC_CLASS and n.name == TYPES_CONTAINER),
        None,
    )
    if container is not None:
        nested_types += container.nested_types

    for nested in nested_types:
        if nested.full_name in ctx.messages:
            message.nested_messages.append(nested.full_name)
        if nested.full_name in ctx.enums:
            message.nested_enums.append(nested.full_name)


def populate_message_dependencies(ctx: RebuildContext) -> None:
    """Record imports and message/enum dependencies for every message."""
    for message in ctx.root_messages():
        _populate_message_dependencies(ctx, message)


def _populate_message_dependencies(ctx: RebuildContext, message: MessageType) -> None:
    for field in message.all_fields():
        _populate_field_dependencies(ctx, message, field)

    for name in message.nested_messages:
        _populate_message_dependencies(ctx, ctx.messages[name])


def _populate_field_dependencies(ctx: RebuildContext, message: MessageType, field: Field) -> None:
    mapping = map_type(ctx, field.value_type)
    if isinstance(mapping, MappingFailure):
        logger.debug("Field %s of %s has no .proto type", field.name, message.full_name)
        return

    message.imports.update(mapping.external_imports)

    for full_name in mapping.internal_types:
        if full_name in ctx.enums:
            message.depends_on_enums.add(full_name)
        elif full_name in ctx.messages:
            message.depends_on_messages.add(full_name)
        else:
            raise InvariantViolation(
                f"Field {field.name} ({field.number}) of {message.full_name} references "
                f"{full_name}, which is neither a known message nor a known enum"
            )


def remove_unreferenced_enums(ctx: RebuildContext) -> int:
    """Drop enums that no message field depends on.

    Returns the number of enums removed.
    """
    referenced: set[str] = set()
    for message in ctx.messages.values():
        referenced |= message.depends_on_enums

    before = len(ctx.enums)
    ctx.enums = {name: e for name, e in ctx.enums.items() if name in referenced}
    for message in ctx.messages.values():
        message.nested_enums = [name for name in message.nested_enums if name in ctx.enums]

    return before - len(ctx.enums)
