"""Assembly metadata reader."""

import json
import logging
from pathlib import Path

from .types import Assembly, MetadataError

__all__ = ["load_assembly", "read_assembly"]

logger = logging.getLogger(__name__)


def load_assembly(text: str) -> Assembly:
    """Load assembly metadata from a JSON document."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MetadataError(f"Assembly metadata is not valid JSON: {e}") from e

    if not isinstance(data, dict) or "name" not in data:
        raise MetadataError("Assembly metadata must be an object with a 'name' key")

    try:
        return Assembly.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise MetadataError(f"Assembly metadata is malformed: {e}") from e


def read_assembly(path: str | Path) -> Assembly:
    """Read assembly metadata from a file."""
    with open(path, encoding="utf-8") as f:
        assembly = load_assembly(f.read())

    logger.debug("Loaded %d top-level types from %s", len(assembly.types), path)
    return assembly
