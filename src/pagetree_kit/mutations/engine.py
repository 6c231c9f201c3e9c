# src/pagetree_kit/mutations/engine.py

import copy
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, Literal

from pagetree_kit.config import EngineConfig
from pagetree_kit.errors import (
    AmbiguousIdReference,
    CycleError,
    InvalidTargetType,
    SizeLimitError,
    StructuralError,
)
from pagetree_kit.indexing.builder import IndexEntry, TreeIndex
from pagetree_kit.indexing.query import NodeRef, Query
from pagetree_kit.observability import names
from pagetree_kit.observability.base import MetricsHook, NoOpMetricsHook
from pagetree_kit.parsers.models import SECTION, WIDGET, Node
from pagetree_kit.parsers.tree_parser import TreeParser

from .factory import create_column, generate_node_id

logger = logging.getLogger(__name__)

Placement = Literal["before", "after"]

_MAX_ID_ATTEMPTS = 1000


class MutationEngine:
    """Structural edits on an indexed document.

    References resolve through ``Query.resolve``: an id when it is
    unambiguous, otherwise a path. A ``None`` parent reference addresses the
    top-level list. After every edit only the shifted siblings and the
    affected subtree are re-indexed.
    """

    def __init__(
        self,
        index: TreeIndex,
        *,
        config: EngineConfig | None = None,
        id_factory: Callable[[], str] = generate_node_id,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self.index = index
        self.query = Query(index)
        self.config = config or EngineConfig()
        self._parser = TreeParser(self.config)
        self._id_factory = id_factory
        self.metrics_hook = metrics_hook

    def insert_child(
        self,
        parent_ref: NodeRef | None,
        new_node: Node | Mapping[str, Any],
        position: int | None = None,
    ) -> IndexEntry:
        """Insert ``new_node`` under ``parent_ref``; position is clamped."""
        parent = self._resolve_container(parent_ref)
        entry = self._insert(parent, self._coerce(new_node), position)
        self._record("insert_child")
        logger.info("Inserted %s at %s", entry.id, entry.path)
        return entry

    def insert_relative(
        self,
        target_ref: NodeRef,
        new_node: Node | Mapping[str, Any],
        where: Placement = "after",
    ) -> IndexEntry:
        """Insert ``new_node`` as a sibling right before or after ``target_ref``."""
        target = self.query.resolve(target_ref)
        position = _sibling_position(target, where)
        entry = self._insert(target.parent, self._coerce(new_node), position)
        self._record("insert_relative")
        logger.info("Inserted %s %s %s", entry.id, where, target.id)
        return entry

    def move_node(
        self,
        node_ref: NodeRef,
        new_parent_ref: NodeRef | None,
        position: int | None = None,
    ) -> IndexEntry:
        entry = self.query.resolve(node_ref)
        node = entry.node
        new_parent = self._resolve_container(new_parent_ref)

        current = new_parent
        while current is not None:
            if current is node:
                raise CycleError(
                    "Cannot move an element into itself or one of its descendants",
                    node_id=node.id,
                    path=entry.path,
                    details={"target_path": list(self.index.entry_for(new_parent).path)},
                )
            current = self.index.entry_for(current).parent

        old_parent = entry.parent
        old_position = entry.path[-1]
        self.index.container_of(old_parent).pop(old_position)
        self.index.reindex_children(old_parent, old_position)

        container = self.index.container_of(new_parent)
        position = _clamp(position, len(container))
        container.insert(position, node)
        self.index.reindex_children(new_parent, position)

        self._record("move_node")
        logger.info("Moved %s to %s", node.id, entry.path)
        return entry

    def clone_node(
        self,
        node_ref: NodeRef,
        target_ref: NodeRef | None = None,
        where: Placement = "after",
        *,
        position: int | None = None,
        place_in_first_container: bool = False,
    ) -> IndexEntry:
        """Deep-copy a subtree with fresh ids for every cloned node.

        The clone becomes the next sibling of the original unless
        ``target_ref`` names another anchor, ``position`` picks a slot in the
        original's parent, or ``place_in_first_container`` appends it to the
        first column/container of the page.
        """
        entry = self.query.resolve(node_ref)
        clone = copy.deepcopy(entry.node)
        taken = self.index.ids
        guard = self.index.new_guard()
        for member, _, _ in guard.walk([clone]):
            member.id = self._fresh_id(taken)

        if target_ref is not None:
            target = self.query.resolve(target_ref)
            parent, position = target.parent, _sibling_position(target, where)
        elif place_in_first_container:
            first = self.query.find_first_container()
            if first is None:
                raise StructuralError(
                    "No column or container found to place the clone",
                    node_id=entry.id,
                    path=entry.path,
                )
            parent, position = first.node, None
        elif position is None:
            parent, position = entry.parent, entry.path[-1] + 1
        else:
            parent = entry.parent

        cloned = self._insert(parent, clone, position)
        self._record("clone_node")
        logger.info("Cloned %s as %s at %s", entry.id, cloned.id, cloned.path)
        return cloned

    def delete_node(self, node_ref: NodeRef) -> Node:
        """Detach a node and drop its whole subtree from the index."""
        entry = self.query.resolve(node_ref)
        parent, position = entry.parent, entry.path[-1]
        removed = self.index.remove_subtree(entry.node)
        self.index.container_of(parent).pop(position)
        self.index.reindex_children(parent, position)

        self._record("delete_node")
        logger.info("Deleted %s and %d descendants", entry.id, removed - 1)
        return entry.node

    def reorder_children(
        self,
        parent_ref: NodeRef | None,
        ordered_refs: Sequence[str | Sequence[int]],
    ) -> list[IndexEntry]:
        """Reorder children; ``ordered_refs`` must be a permutation of them.

        String references are matched among the parent's own children, so
        an id duplicated elsewhere in the page does not get in the way.
        """
        parent = None if parent_ref is None else self.query.resolve(parent_ref).node
        container = self.index.container_of(parent)
        ordered = [self._resolve_child(ref, parent, container) for ref in ordered_refs]

        current = {id(child) for child in container}
        given = [id(child) for child in ordered]
        if len(given) != len(container) or set(given) != current or len(set(given)) != len(given):
            raise StructuralError(
                "Ordered references are not a permutation of the current children",
                node_id=None if parent is None else parent.id,
                details={
                    "expected": [child.id for child in container],
                    "received": [child.id for child in ordered],
                },
            )

        container[:] = ordered
        self.index.reindex_children(parent, 0)
        self._record("reorder_children")
        return [self.index.entry_for(child) for child in container]

    def update_node_settings(
        self, node_ref: NodeRef, patch: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Shallow-merge ``patch`` into the node's settings; other keys are kept."""
        if not isinstance(patch, Mapping):
            raise StructuralError("Settings patch must be an object")
        entry = self.query.resolve(node_ref)
        entry.node.settings.update(patch)
        self._record("update_node_settings")
        logger.debug("Patched settings of %s: %s", entry.id, sorted(patch))
        return entry.node.settings

    def update_widget_content(self, node_ref: NodeRef, text: str) -> tuple[str, str]:
        """Set the main text field of a widget, chosen by its widget type.

        Returns the field written and the new text.
        """
        if not isinstance(text, str):
            raise StructuralError("Widget content must be a string")
        entry = self.query.resolve(node_ref)
        fields = self.config.text_fields.get(entry.widget_type or "", ())
        if entry.element_type != WIDGET or not fields:
            raise InvalidTargetType(
                f"Element {entry.id!r} has no text field for widget type {entry.widget_type!r}",
                node_id=entry.id,
                path=entry.path,
            )
        entry.node.settings[fields[0]] = text
        self._record("update_widget_content")
        logger.debug("Set %s of %s", fields[0], entry.id)
        return fields[0], text

    def copy_settings(
        self,
        source_ref: NodeRef,
        target_ref: NodeRef,
        keys: Iterable[str] | None = None,
    ) -> tuple[list[str], list[str]]:
        """Copy (deep) settings values between elements.

        Returns the keys copied and the requested keys the source lacked.
        """
        source = self.query.resolve(source_ref).node
        target = self.query.resolve(target_ref).node
        wanted = list(source.settings) if keys is None else list(keys)

        copied = [key for key in wanted if key in source.settings]
        skipped = [key for key in wanted if key not in source.settings]
        target.settings.update(
            {key: copy.deepcopy(source.settings[key]) for key in copied}
        )
        self._record("copy_settings")
        return copied, skipped

    def add_columns(self, section_ref: NodeRef, count: int = 1) -> list[IndexEntry]:
        """Append ``count`` empty columns to a section."""
        if count < 1:
            raise StructuralError("count must be >= 1", details={"count": count})
        section = self.query.resolve(section_ref)
        if section.element_type != SECTION:
            raise InvalidTargetType(
                f"Columns can only be added to sections, not {section.element_type}",
                node_id=section.id,
                path=section.path,
            )
        taken = self.index.ids
        entries = [
            self._insert(
                section.node,
                create_column(id_factory=lambda: self._fresh_id(taken)),
                None,
            )
            for _ in range(count)
        ]
        self._record("add_columns")
        return entries

    def replace_tree(self, nodes: Sequence[Node | Mapping[str, Any]]) -> int:
        """Discard the whole tree and index ``nodes`` in its place."""
        replacement = [self._coerce(node) for node in nodes]
        total = sum(self._validate_detached(node) for node in replacement)
        if total > self.config.max_nodes:
            raise SizeLimitError(
                f"Replacement tree has {total} nodes, limit is {self.config.max_nodes}"
            )
        self.index.document.nodes[:] = replacement
        self.index.rebuild()
        self._record("replace_tree")
        logger.info("Replaced tree with %d top-level nodes", len(replacement))
        return len(self.index)

    def _insert(
        self, parent: Node | None, node: Node, position: int | None
    ) -> IndexEntry:
        count = self._validate_detached(node)
        if len(self.index) + count > self.config.max_nodes:
            raise SizeLimitError(
                f"Insert would grow the document past {self.config.max_nodes} nodes",
                node_id=node.id,
            )
        container = self.index.container_of(parent)
        position = _clamp(position, len(container))
        container.insert(position, node)
        self.index.reindex_children(parent, position)
        return self.index.entry_for(node)

    def _resolve_container(self, ref: NodeRef | None) -> Node | None:
        if ref is None:
            return None
        entry = self.query.resolve(ref)
        if not entry.node.can_have_children:
            raise InvalidTargetType(
                f"Element of type {entry.element_type} cannot hold children",
                node_id=entry.id,
                path=entry.path,
            )
        return entry.node

    def _resolve_child(
        self, ref: str | Sequence[int], parent: Node | None, container: list[Node]
    ) -> Node:
        if isinstance(ref, str):
            matches = [child for child in container if child.id == ref]
            if len(matches) > 1:
                raise AmbiguousIdReference(
                    f"Element id {ref!r} occurs more than once among the children",
                    node_id=ref,
                )
            if not matches:
                raise StructuralError(
                    f"Element {ref!r} is not a child of the target",
                    node_id=ref,
                )
            return matches[0]

        entry = self.query.find_by_path(ref)
        if entry.parent is not parent:
            raise StructuralError(
                f"Path {list(ref)} is not a child of the target", path=ref
            )
        return entry.node

    def _coerce(self, node: Node | Mapping[str, Any]) -> Node:
        if isinstance(node, Node):
            return node
        if isinstance(node, Mapping):
            return self._parser.normalize_node(node)
        raise StructuralError(f"Expected an element object, got {type(node).__name__}")

    def _validate_detached(self, node: Node) -> int:
        """Walk a not-yet-attached subtree; returns its node count."""
        count = 0
        seen: set[int] = set()
        guard = self.index.new_guard()
        for member, _, _ in guard.walk([node]):
            if id(member) in seen:
                raise StructuralError(
                    "Element object appears more than once in the inserted subtree",
                    node_id=member.id,
                )
            seen.add(id(member))
            if member in self.index:
                raise StructuralError(
                    "Element is already attached to the document; use move_node",
                    node_id=member.id,
                )
            if member.children and not member.can_have_children:
                raise InvalidTargetType(
                    "Widget elements cannot hold children", node_id=member.id
                )
            count += 1
        return count

    def _fresh_id(self, taken: set[str]) -> str:
        for _ in range(_MAX_ID_ATTEMPTS):
            candidate = self._id_factory()
            if candidate not in taken:
                taken.add(candidate)
                return candidate
        raise StructuralError("Could not generate a unique element id")

    def _record(self, operation: str) -> None:
        self.metrics_hook.increment(names.MUTATIONS_TOTAL, labels={"operation": operation})


def _clamp(position: int | None, size: int) -> int:
    if position is None:
        return size
    return max(0, min(position, size))


def _sibling_position(target: IndexEntry, where: Placement) -> int:
    if where not in ("before", "after"):
        raise StructuralError(f"where must be 'before' or 'after', got {where!r}")
    return target.path[-1] + (1 if where == "after" else 0)
