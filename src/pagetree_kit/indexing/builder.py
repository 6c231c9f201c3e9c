# src/pagetree_kit/indexing/builder.py

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from time import monotonic
from typing import Any

from pagetree_kit.config import EngineConfig
from pagetree_kit.errors import NodeNotFound, StructuralError
from pagetree_kit.observability import names
from pagetree_kit.observability.base import MetricsHook, NoOpMetricsHook
from pagetree_kit.parsers.models import Document, Node
from pagetree_kit.traversal import NO_ANCESTORS, Ancestors, TraversalGuard

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class IndexEntry:
    """Index metadata for one reachable node.

    ``node`` is the node itself, not a copy. ``parent`` is a lookup-only
    association; the node never points back at it.
    """

    node: Node
    path: tuple[int, ...]
    parent: Node | None = None

    @property
    def id(self) -> str | None:
        return self.node.id

    @property
    def element_type(self) -> str:
        return self.node.element_type

    @property
    def widget_type(self) -> str | None:
        return self.node.widget_type

    @property
    def parent_id(self) -> str | None:
        return self.parent.id if self.parent is not None else None

    def to_dict(self, include_data: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "elementType": self.element_type,
            "id": self.id,
            "parentId": self.parent_id,
            "path": list(self.path),
        }
        if include_data:
            data["data"] = self.node.to_dict()
        return data


class TreeIndex:
    """Flattened id -> metadata view over a ``Document``.

    Entries are keyed by node identity, so duplicated ids never collapse
    into one entry. Structural edits update only the siblings and subtrees
    they touch through ``reindex_children`` and ``remove_subtree``.
    """

    def __init__(
        self,
        document: Document,
        guard_factory: Callable[[], TraversalGuard] = TraversalGuard,
    ) -> None:
        self.document = document
        self._guard_factory = guard_factory
        self._entries: dict[int, IndexEntry] = {}
        self._by_id: dict[str, list[IndexEntry]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, node: object) -> bool:
        return id(node) in self._entries

    def new_guard(self) -> TraversalGuard:
        return self._guard_factory()

    @property
    def duplicate_ids(self) -> list[str]:
        return [node_id for node_id, bucket in self._by_id.items() if len(bucket) > 1]

    @property
    def ids(self) -> set[str]:
        return set(self._by_id)

    def entry_for(self, node: Node) -> IndexEntry:
        try:
            return self._entries[id(node)]
        except KeyError:
            raise NodeNotFound("Node is not part of the indexed document", node_id=node.id)

    def entries_for_id(self, node_id: str) -> list[IndexEntry]:
        return list(self._by_id.get(node_id, ()))

    def entries(self) -> Iterator[IndexEntry]:
        """Entries in document order."""
        guard = self.new_guard()
        for node, _, _ in guard.walk(self.document.nodes):
            yield self._entries[id(node)]

    def container_of(self, parent: Node | None) -> list[Node]:
        return self.document.nodes if parent is None else parent.children

    def rebuild(self) -> None:
        self._entries.clear()
        self._by_id.clear()
        self.reindex_children(None, 0)

    def reindex_children(self, parent: Node | None, start: int = 0) -> None:
        """Recompute paths for ``parent``'s children from ``start`` onward.

        New nodes found along the way are added; existing entries are
        updated in place.
        """
        prefix = () if parent is None else self.entry_for(parent).path
        guard = self.new_guard()
        seen: set[int] = set()
        for node, path, node_parent in guard.walk(
            self.container_of(parent),
            prefix=prefix,
            ancestors=self._ancestor_scope(parent),
            parent=parent,
            start=start,
        ):
            if id(node) in seen:
                raise StructuralError(
                    "Node object is attached in more than one place",
                    node_id=node.id,
                    path=path,
                )
            seen.add(id(node))
            self._record(node, path, node_parent)

    def remove_subtree(self, node: Node) -> int:
        """Drop ``node`` and its descendants from the index. Returns the count."""
        entry = self.entry_for(node)
        guard = self.new_guard()
        removed = 0
        for member, _, _ in guard.walk([node], prefix=entry.path[:-1]):
            dropped = self._entries.pop(id(member), None)
            if dropped is None:
                continue
            removed += 1
            if member.id is not None:
                bucket = [e for e in self._by_id.get(member.id, []) if e is not dropped]
                if bucket:
                    self._by_id[member.id] = bucket
                else:
                    self._by_id.pop(member.id, None)
        return removed

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """The external id -> entry map. Duplicated and missing ids are left out."""
        duplicates = set(self.duplicate_ids)
        return {
            entry.id: entry.to_dict()
            for entry in self.entries()
            if entry.id is not None and entry.id not in duplicates
        }

    def _record(self, node: Node, path: tuple[int, ...], parent: Node | None) -> None:
        entry = self._entries.get(id(node))
        if entry is not None:
            entry.path = path
            entry.parent = parent
            return

        entry = IndexEntry(node=node, path=path, parent=parent)
        self._entries[id(node)] = entry
        if node.id is None:
            return
        bucket = self._by_id.setdefault(node.id, [])
        bucket.append(entry)
        if len(bucket) == 2:
            logger.warning("Duplicate element id %s (first seen at %s)", node.id, bucket[0].path)

    def _ancestor_scope(self, parent: Node | None) -> Ancestors:
        scope: set[int] = set()
        current = parent
        while current is not None:
            scope.add(id(current))
            current = self.entry_for(current).parent
        return frozenset(scope) if scope else NO_ANCESTORS


class IndexBuilder:
    def __init__(
        self,
        config: EngineConfig | None = None,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self.config = config or EngineConfig()
        self.metrics_hook = metrics_hook

    def build(
        self,
        document: Document,
        should_cancel: Callable[[], bool] | None = None,
    ) -> TreeIndex:
        start = monotonic()
        index = TreeIndex(
            document,
            guard_factory=lambda: TraversalGuard.from_config(self.config, should_cancel),
        )
        index.rebuild()

        elapsed_ms = 1000 * (monotonic() - start)
        self.metrics_hook.record_latency(names.INDEX_BUILD_DURATION, elapsed_ms)
        self.metrics_hook.record_gauge(names.INDEX_NODE_COUNT, len(index))
        duplicates = index.duplicate_ids
        self.metrics_hook.record_gauge(names.INDEX_DUPLICATE_IDS, len(duplicates))
        logger.info(
            "Indexed %d nodes (%d duplicate ids) in %.1f ms",
            len(index),
            len(duplicates),
            elapsed_ms,
        )
        return index
