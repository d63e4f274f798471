"""Assembly metadata model and reader."""

from .reader import *
from .typeref import TypeReference as TypeReference
from .typeref import parse_type_reference as parse_type_reference
from .types import *
