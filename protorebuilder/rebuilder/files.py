"""Assign file names, packages and imports to the merged modules."""

from collections import Counter

from .context import RebuildContext
from .mapper import pascal_to_lower_snake_case
from .modules import enumerate_message_family
from .types import Module, OutputFile, RebuildError

PROTO_SUFFIX = ".proto"
FALLBACK_FILE_NAME = "base"


def package_name_and_file_base(namespace: str) -> tuple[str, str]:
    """Return the .proto package and base file name for a namespace.

    The global namespace has no package and uses a fallback file name.
    """
    package_name = pascal_to_lower_snake_case(namespace)
    return package_name, package_name or FALLBACK_FILE_NAME


def _module_order(module: Module) -> tuple[bool, int, int]:
    return (len(module.depends_on) > 0, len(module.root_messages), module.id)


def generate_proto_files(ctx: RebuildContext) -> list[OutputFile]:
    """Create one output file per live module, sorted by file name."""
    used_names: set[str] = set()
    module_files: dict[int, OutputFile] = {}
    imports: dict[int, set[str]] = {}
    namespace_counts = Counter(m.namespace for m in ctx.modules.values())

    for module in sorted(ctx.modules.values(), key=_module_order):
        package_name, file_base = package_name_and_file_base(module.namespace)
        if namespace_counts[module.namespace] > 1:
            index = 1
            while f"{file_base}.{index}{PROTO_SUFFIX}".lower() in used_names:
                index += 1
            file_name = f"{file_base}.{index}{PROTO_SUFFIX}"
        else:
            file_name = f"{file_base}{PROTO_SUFFIX}"

        if file_name.lower() in used_names:
            raise RebuildError(f"File name {file_name} for namespace {module.namespace!r} was already used")
        used_names.add(file_name.lower())

        messages = sorted(
            (ctx.messages[name] for name in module.root_messages),
            key=lambda m: (m.name, m.full_name),
        )
        enums = sorted(
            (ctx.enums[name] for name in module.root_enums),
            key=lambda e: (e.name, e.full_name),
        )

        imports[module.id] = set()
        for root in messages:
            for message in enumerate_message_family(ctx, root):
                imports[module.id] |= message.imports

        module_files[module.id] = OutputFile(
            file_name=file_name,
            package_name=package_name,
            namespace=module.namespace,
            imports=[],
            messages=messages,
            enums=enums,
        )

    for module_id, output_file in module_files.items():
        for dependency in ctx.modules[module_id].depends_on:
            imports[module_id].add(module_files[dependency].file_name)
        output_file.imports = sorted(imports[module_id])

    return sorted(module_files.values(), key=lambda f: f.file_name)
