"""Run the full analysis and generation pipeline."""

import logging

from protorebuilder.metadata import Assembly

from .analyzer import connect_child_types, populate_message_dependencies, remove_unreferenced_enums
from .context import RebuildContext
from .discovery import check_dependencies, gather_relevant_types, populate_message_fields
from .files import generate_proto_files
from .merger import merge_modules
from .modules import partition_modules
from .types import OutputFile
from .writer import render

logger = logging.getLogger(__name__)


def analyze(assembly: Assembly) -> RebuildContext:
    """Discover types, analyze dependencies and build the merged module graph."""
    check_dependencies(assembly)
    ctx = RebuildContext(assembly=assembly)

    logger.info("Gathering message and enum types from the assembly...")
    gather_relevant_types(ctx)
    populate_message_fields(ctx)

    logger.info("Found %d message types.", len(ctx.messages))
    logger.info("Found %d enum types.", len(ctx.enums))
    if not ctx.messages:
        logger.warning("No message types found in the assembly.")

    logger.info("Message type namespaces:")
    for namespace in sorted({m.namespace for m in ctx.messages.values()}):
        logger.info("  '%s'", namespace)

    logger.info("Analyzing nested types and message dependencies...")
    connect_child_types(ctx)
    populate_message_dependencies(ctx)
    pruned = remove_unreferenced_enums(ctx)
    logger.info("Pruned %d enums not referenced by any message.", pruned)

    logger.info("Grouping messages and enums into modules...")
    partition_modules(ctx)
    merge_modules(ctx)

    return ctx


def rebuild(assembly: Assembly) -> tuple[RebuildContext, list[OutputFile]]:
    """Rebuild the output files for an assembly."""
    ctx = analyze(assembly)

    logger.info("Generating .proto files...")
    files = generate_proto_files(ctx)
    logger.info("%d .proto files will be written:", len(files))
    for file in files:
        logger.info("  %s", file.file_name)
        logger.info(
            "    package: %s, namespace: %s, messages: %d, enums: %d",
            file.package_name,
            file.namespace,
            len(file.messages),
            len(file.enums),
        )

    return ctx, files


def render_files(ctx: RebuildContext, files: list[OutputFile]) -> dict[str, str]:
    """Render every output file, keyed by file name."""
    return {file.file_name: render(ctx, file) for file in files}
