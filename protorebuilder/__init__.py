"""ProtoRebuilder - Rebuild .proto schema files from compiled protobuf assemblies."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("protorebuilder")
except PackageNotFoundError:
    __version__ = "(local)"
