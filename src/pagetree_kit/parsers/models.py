# src/pagetree_kit/parsers/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pagetree_kit.errors import ErrorKind
from pagetree_kit.traversal import NO_ANCESTORS, Ancestors, TraversalGuard

SECTION = "section"
CONTAINER = "container"
COLUMN = "column"
WIDGET = "widget"

ELEMENT_TYPES = (SECTION, CONTAINER, COLUMN, WIDGET)


@dataclass
class Node:
    """One element of the page tree.

    ``settings`` is opaque and round-tripped verbatim. ``extra`` keeps every
    other top-level key of the wire object (``isInner`` and friends).
    Ownership flows parent to children only; the parent lives in the index.
    """

    id: str | None
    element_type: str
    widget_type: str | None = None
    settings: dict[str, Any] = field(default_factory=dict)
    children: list[Node] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def can_have_children(self) -> bool:
        return self.element_type != WIDGET

    @property
    def type_name(self) -> str:
        return self.widget_type or self.element_type

    def to_dict(self, guard: TraversalGuard | None = None) -> dict[str, Any]:
        return _serialize(self, guard or TraversalGuard(), NO_ANCESTORS, (0,))


def serialize_nodes(
    nodes: list[Node], guard: TraversalGuard | None = None
) -> list[dict[str, Any]]:
    """Serialize nodes to the page-builder wire format."""
    guard = guard or TraversalGuard()
    return [
        _serialize(node, guard, NO_ANCESTORS, (position,))
        for position, node in enumerate(nodes)
    ]


def _serialize(
    node: Node,
    guard: TraversalGuard,
    ancestors: Ancestors,
    path: tuple[int, ...],
) -> dict[str, Any]:
    scope = guard.descend(node, ancestors, path, node_id=node.id)
    data: dict[str, Any] = {
        "id": node.id,
        "elType": node.element_type,
        "settings": node.settings,
        "elements": [
            _serialize(child, guard, scope, path + (position,))
            for position, child in enumerate(node.children)
        ],
    }
    if node.widget_type is not None:
        data["widgetType"] = node.widget_type
    for key, value in node.extra.items():
        data.setdefault(key, value)
    return data


@dataclass
class Document:
    """A parsed page: the ordered top-level nodes plus the original payload."""

    nodes: list[Node]
    raw: Any = None
    document_id: str | None = None
    language: str | None = None

    def to_list(self, guard: TraversalGuard | None = None) -> list[dict[str, Any]]:
        return serialize_nodes(self.nodes, guard)


@dataclass(frozen=True)
class ParseResult:
    success: bool
    nodes: list[Node] | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    error_offset: int | None = None
    raw_text: str | None = None
    debug_info: str | None = None
