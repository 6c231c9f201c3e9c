from .base import DocumentParser
from .models import (
    COLUMN,
    CONTAINER,
    ELEMENT_TYPES,
    SECTION,
    WIDGET,
    Document,
    Node,
    ParseResult,
    serialize_nodes,
)
from .tree_parser import TreeParser, dumps

__all__ = [
    "COLUMN",
    "CONTAINER",
    "ELEMENT_TYPES",
    "SECTION",
    "WIDGET",
    "Document",
    "DocumentParser",
    "Node",
    "ParseResult",
    "TreeParser",
    "dumps",
    "serialize_nodes",
]
