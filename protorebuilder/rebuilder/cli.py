"""Command-line interface for rebuilding .proto files."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from protorebuilder.metadata import MetadataError, read_assembly
from protorebuilder.rebuilder.pipeline import rebuild, render_files
from protorebuilder.rebuilder.types import RebuildError

if TYPE_CHECKING:
    from protorebuilder.rebuilder.types import OutputFile

logger = logging.getLogger("protorebuilder")

# Windows-style help flag, translated to --help before click parses arguments
WINDOWS_HELP_FLAG = "/?"


def _configure_logging(verbose: bool) -> None:
    handler = RichHandler(console=Console(stderr=True), show_path=False, show_time=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument(
    "assembly_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument(
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Show debug output")
def cli(assembly_path: Path, output_dir: Path, verbose: bool) -> None:
    """Rebuild .proto files from an assembly containing Google.Protobuf messages.

    ASSEMBLY_PATH is the metadata document of a .NET assembly with a
    Google.Protobuf reference and IMessage implementations. OUTPUT_DIR is
    the directory where the generated .proto files will be saved.
    """
    _configure_logging(verbose)

    try:
        logger.info("Analyzing assembly: %s", assembly_path.resolve())
        assembly = read_assembly(assembly_path)
        ctx, files = rebuild(assembly)
        contents = render_files(ctx, files)
    except (RebuildError, MetadataError) as e:
        logger.error("Error: %s", e)
        sys.exit(1)

    directory = output_dir.resolve()
    logger.info("Writing .proto files to %s...", directory)
    if not directory.exists():
        logger.warning("Directory does not exist, creating: %s", directory)
        directory.mkdir(parents=True)

    for file_name, content in contents.items():
        path = directory / file_name
        logger.info("Writing %s...", path)
        path.write_text(content, encoding="utf-8")

    _output_summary(files)
    logger.info("Done.")


def _output_summary(files: list[OutputFile]) -> None:
    """Print the written files using rich text formatting."""
    console = Console()

    console.print("[bold cyan]Files[/bold cyan]")
    table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    table.add_column("File", style="white")
    table.add_column("Package", style="dim")
    table.add_column("Namespace", style="dim")
    table.add_column("Messages", style="yellow", justify="right")
    table.add_column("Enums", style="green", justify="right")

    for file in files:
        table.add_row(
            file.file_name,
            file.package_name,
            file.namespace,
            str(len(file.messages)),
            str(len(file.enums)),
        )

    console.print(table)


def main() -> None:
    """Main entry point."""
    try:
        args = ["--help" if arg == WINDOWS_HELP_FLAG else arg for arg in sys.argv[1:]]
        exit_code = cli.main(args=args, standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(1)
    except click.Abort:
        sys.exit(1)
    except Exception:
        logger.exception("Unhandled error")
        sys.exit(1)

    sys.exit(exit_code or 0)


if __name__ == "__main__":
    main()
