"""Render output files as .proto schema text."""

import logging

from jinja2 import Environment, PackageLoader

from .context import RebuildContext
from .mapper import map_type, pascal_to_lower_snake_case, pascal_to_upper_snake_case
from .types import EnumType, Field, MappingFailure, MessageType, Oneof, OutputFile

logger = logging.getLogger(__name__)

env = Environment(
    loader=PackageLoader("protorebuilder.rebuilder", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("proto.proto.j2")

# Opaque type used for fields whose type cannot be mapped
PLACEHOLDER_TYPE = "bytes"


def _indent(depth: int) -> str:
    return "  " * depth


def _field_line(
    ctx: RebuildContext, message: MessageType, field: Field, oneof: Oneof | None = None
) -> str:
    """Render a single field declaration."""
    name = pascal_to_lower_snake_case(field.name)
    mapping = map_type(ctx, field.value_type)

    if isinstance(mapping, MappingFailure):
        if oneof is None:
            logger.warning(
                "  Using '%s' for unknown type %s (found in field %d of message %s)",
                PLACEHOLDER_TYPE,
                mapping.type_name,
                field.number,
                message.name,
            )
        else:
            logger.warning(
                "  Using '%s' for unknown type %s (found in field %d of message %s, %s oneof)",
                PLACEHOLDER_TYPE,
                mapping.type_name,
                field.number,
                message.name,
                pascal_to_lower_snake_case(oneof.name),
            )
        return f"{PLACEHOLDER_TYPE} {name} = {field.number}; // Unknown type: {mapping.type_name}"

    # proto3 optional; repeated and map fields never have presence
    label = ""
    if (
        field.has_explicit_presence
        and not field.is_oneof_member
        and not mapping.name.startswith(("repeated ", "map<"))
    ):
        label = "optional "

    return f"{label}{mapping.name} {name} = {field.number};"


def _enum_lines(enum: EnumType) -> list[str]:
    """Render enum values, zero first, then ascending by value."""
    prefix = pascal_to_upper_snake_case(enum.name)
    pairs = sorted(enum.value_pairs, key=lambda pair: (pair[1] != 0, pair[1]))
    return [f"{prefix}_{pascal_to_upper_snake_case(name)} = {value};" for name, value in pairs]


def render(ctx: RebuildContext, file: OutputFile) -> str:
    """Render an output file to .proto source text."""
    return template.render(
        file=file,
        indent=_indent,
        to_snake_case=pascal_to_lower_snake_case,
        field_line=lambda message, field, oneof=None: _field_line(ctx, message, field, oneof),
        enum_lines=_enum_lines,
        nested_enums=lambda message: [ctx.enums[name] for name in message.nested_enums],
        nested_messages=lambda message: [ctx.messages[name] for name in message.nested_messages],
    )
