"""Rebuild .proto schemas from protobuf types found in an assembly."""

from .context import RebuildContext as RebuildContext
from .mapper import map_type as map_type
from .pipeline import analyze as analyze
from .pipeline import rebuild as rebuild
from .pipeline import render_files as render_files
from .types import *
from .writer import render as render
