# src/pagetree_kit/indexing/query.py

import logging
from collections.abc import Iterator, Sequence
from typing import Union

from pagetree_kit.errors import AmbiguousIdReference, NodeNotFound
from pagetree_kit.parsers.models import COLUMN, CONTAINER, Node

from .builder import IndexEntry, TreeIndex

logger = logging.getLogger(__name__)

# An element id, a path of child positions, or a node already in the index.
NodeRef = Union[str, Sequence[int], Node]


class TypeMatches:
    """Lazy, finite, restartable sequence of entries of one type.

    Every ``iter()`` starts a fresh walk, so the view reflects the tree as
    it is when iterated.
    """

    def __init__(self, index: TreeIndex, type_name: str) -> None:
        self._index = index
        self.type_name = type_name

    def __iter__(self) -> Iterator[IndexEntry]:
        guard = self._index.new_guard()
        for node, _, _ in guard.walk(self._index.document.nodes):
            if self.type_name in (node.element_type, node.widget_type):
                yield self._index.entry_for(node)


class Query:
    def __init__(self, index: TreeIndex) -> None:
        self.index = index

    def find_by_id(self, node_id: str) -> IndexEntry:
        entries = self.index.entries_for_id(node_id)
        if not entries:
            raise NodeNotFound(f"No element with id {node_id!r}", node_id=node_id)
        if len(entries) > 1:
            logger.debug("Refusing ambiguous id lookup for %s", node_id)
            raise AmbiguousIdReference(
                f"Element id {node_id!r} occurs {len(entries)} times; address it by path",
                node_id=node_id,
                details={"paths": [list(e.path) for e in entries]},
            )
        return entries[0]

    def find_by_path(self, path: Sequence[int]) -> IndexEntry:
        steps = tuple(path)
        if not steps:
            raise NodeNotFound("Empty path does not address an element", path=steps)

        container = self.index.document.nodes
        for position in steps:
            if (
                not isinstance(position, int)
                or isinstance(position, bool)
                or not 0 <= position < len(container)
            ):
                raise NodeNotFound(f"Path {list(steps)} does not resolve", path=steps)
            node = container[position]
            container = node.children
        return self.index.entry_for(node)

    def find_all_by_type(self, type_name: str) -> TypeMatches:
        """Matches either the element type or the widget type."""
        return TypeMatches(self.index, type_name)

    def resolve(self, ref: NodeRef) -> IndexEntry:
        """Resolve an id (when unambiguous), a path, or an indexed node."""
        if isinstance(ref, str):
            return self.find_by_id(ref)
        if isinstance(ref, Node):
            return self.index.entry_for(ref)
        if isinstance(ref, Sequence):
            return self.find_by_path(ref)
        raise NodeNotFound(f"Unsupported node reference: {ref!r}")

    def children_of(self, ref: NodeRef | None) -> list[IndexEntry]:
        parent = None if ref is None else self.resolve(ref).node
        return [self.index.entry_for(child) for child in self.index.container_of(parent)]

    def find_first_container(self) -> IndexEntry | None:
        """First column or container in document order."""
        for entry in self.index.entries():
            if entry.element_type in (COLUMN, CONTAINER):
                return entry
        return None
