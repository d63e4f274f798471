"""Type reference parser using Lark."""

import os
from dataclasses import dataclass
from typing import Any

from lark import Lark
from lark.exceptions import LarkError
from lark.visitors import Transformer

from .types import MetadataError

_g_parser: Lark | None = None

NESTED_SEPARATOR = "/"


@dataclass(frozen=True)
class TypeReference:
    """A reference to a type as written in assembly metadata.

    Generic instances keep the arity suffix in their name, e.g.
    ``Google.Protobuf.Collections.RepeatedField`1`` with one argument.
    """

    name: str
    arguments: tuple["TypeReference", ...] = ()
    array_rank: int = 0

    @property
    def full_name(self) -> str:
        text = self.name
        if self.arguments:
            text += "<" + ",".join(arg.full_name for arg in self.arguments) + ">"
        return text + "[]" * self.array_rank

    @property
    def simple_name(self) -> str:
        """Name without namespace, declaring types or arity suffix."""
        name = self.name.rsplit(NESTED_SEPARATOR, 1)[-1].rsplit(".", 1)[-1]
        return name.split("`", 1)[0]

    @property
    def is_generic(self) -> bool:
        return len(self.arguments) > 0

    def __str__(self) -> str:
        return self.full_name


@dataclass
class _Name:
    value: str


@dataclass
class _Array:
    pass


class TypeReferenceTransformer(Transformer):
    """Transform parse tree into type references."""

    def start(self, args: list[Any]) -> TypeReference:
        return args[0]

    def name(self, args: list[Any]) -> _Name:
        return _Name(value=str(args[0]))

    def arguments(self, args: list[Any]) -> tuple[TypeReference, ...]:
        return tuple(args)

    def array(self, args: list[Any]) -> _Array:
        return _Array()

    def type(self, args: list[Any]) -> TypeReference:
        name = next(arg.value for arg in args if isinstance(arg, _Name))
        arguments = next((arg for arg in args if isinstance(arg, tuple)), ())
        rank = sum(1 for arg in args if isinstance(arg, _Array))
        return TypeReference(name=name, arguments=arguments, array_rank=rank)


def parse_type_reference(text: str) -> TypeReference:
    """Parse a metadata type name such as ``MapField`2<System.String,Acme.Person>``."""
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/typeref.lark", encoding="utf-8") as f:
            grammar = f.read()

        _g_parser = Lark(grammar, parser="lalr")

    try:
        tree = _g_parser.parse(text)
    except LarkError as e:
        raise MetadataError(f"Invalid type reference '{text}': {e}") from e

    return TypeReferenceTransformer().transform(tree)
