"""Group root types into draft modules and connect them."""

import logging
from collections.abc import Iterator

from .context import RebuildContext
from .types import MessageType, Module

logger = logging.getLogger(__name__)


def gather_enum_modules(ctx: RebuildContext) -> None:
    """Create one module per root enum."""
    for enum in sorted(ctx.root_enums(), key=lambda e: (e.namespace, e.full_name)):
        module = ctx.new_module(enum.namespace)
        module.root_enums.add(enum.full_name)
        module.populate_module_lookup(ctx)
        ctx.add_module(module)


def gather_message_modules(ctx: RebuildContext) -> None:
    """Create one module per root message family.

    Dependencies of nested messages are attributed to their root; references
    within the same family are not module dependencies.
    """
    roots = ctx.root_messages()
    remaining = {root.full_name for root in roots}
    for root in roots:
        if root.full_name not in remaining:
            continue

        module = ctx.new_module(root.namespace)
        module.root_messages.add(root.full_name)

        for message in enumerate_message_family(ctx, root):
            for name in sorted(message.depends_on_messages):
                dependency_root = ctx.messages[name].root
                if dependency_root != root.full_name:
                    module.add_depends_on_message(dependency_root)

            for name in sorted(message.depends_on_enums):
                enum = ctx.enums[name]
                if enum.root_message != root.full_name:
                    module.add_depends_on_enum(enum)

        existing = sorted(
            {ctx.message_module[name] for name in module.root_messages if name in ctx.message_module}
        )
        if existing:
            for module_id in existing:
                module.merge(ctx, ctx.modules[module_id])
        else:
            module.populate_module_lookup(ctx)

        ctx.add_module(module)
        remaining -= module.root_messages


def enumerate_message_family(ctx: RebuildContext, root: MessageType) -> Iterator[MessageType]:
    """Yield a root message and every message nested under it."""
    if not root.is_root:
        raise ValueError(f"{root.full_name} is not a root message")

    remaining = [root]
    while remaining:
        current = remaining.pop()
        yield current
        remaining.extend(ctx.messages[name] for name in current.nested_messages)


def _add_edge(module: Module, other: Module) -> None:
    assert other is not module, f"Module {module.id} ({module.namespace!r}) depends on itself"
    module.depends_on.add(other.id)
    other.depended_on_by.add(module.id)


def add_module_dependencies(ctx: RebuildContext) -> None:
    """Turn root-type dependencies into module edges in both directions."""
    for module in ctx.sorted_modules():
        for name in sorted(module.depends_on_root_messages):
            _add_edge(module, ctx.module_for_message(name))

        for name in sorted(module.depends_on_root_enums):
            _add_edge(module, ctx.module_for_enum(name))


def partition_modules(ctx: RebuildContext) -> None:
    """Build the initial module graph from the analyzed types."""
    gather_enum_modules(ctx)
    gather_message_modules(ctx)
    add_module_dependencies(ctx)

    edges = sum(len(m.depends_on) for m in ctx.modules.values())
    logger.info("Initialized %d modules with %d dependency edges.", len(ctx.modules), edges)
