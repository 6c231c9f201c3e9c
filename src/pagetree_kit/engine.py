# src/pagetree_kit/engine.py

"""Facade over the page tree engine.

``PageEngine`` wires the parser, index, query, mutation, chunking and
translation components around one document and returns every outcome as a
structured result. Engine exceptions never escape its public methods; they
come back as ``OperationResult(success=False, error=ErrorInfo(...))``.
"""

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from pagetree_kit.chunking import (
    chunk_by_count,
    chunk_document,
    summarize_structure,
)
from pagetree_kit.config import EngineConfig
from pagetree_kit.errors import ErrorInfo, ErrorKind, TreeEngineError
from pagetree_kit.indexing import IndexBuilder, NodeRef, Query, TreeIndex
from pagetree_kit.mutations import MutationEngine, Placement, generate_node_id
from pagetree_kit.observability import names
from pagetree_kit.observability.base import MetricsHook, NoOpMetricsHook
from pagetree_kit.parsers import Document, Node, TreeParser, dumps
from pagetree_kit.translation import (
    FieldMap,
    TextExtractor,
    TranslationApplier,
    coerce_units,
)
from pagetree_kit.translation.applier import TranslationInput

logger = logging.getLogger(__name__)

_PARSE_CODES = {
    ErrorKind.PARSE: "ParseError",
    ErrorKind.STRUCTURAL: "StructuralError",
    ErrorKind.CYCLE: "CycleError",
    ErrorKind.SIZE_LIMIT: "SizeLimitError",
}


@dataclass(frozen=True)
class OperationResult:
    success: bool
    value: Any = None
    error: ErrorInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "value": _plain(self.value),
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass(frozen=True)
class LoadResult:
    success: bool
    engine: "PageEngine | None" = None
    error: ErrorInfo | None = None
    raw_text: str | None = None
    debug_info: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """The parse result in the shape automated callers consume."""
        if self.engine is None:
            return {
                "success": False,
                "data": None,
                "index": None,
                "duplicateIds": [],
                "rawData": self.raw_text,
                "error": self.error.message if self.error else None,
                "debugInfo": self.debug_info,
            }
        return {
            "success": True,
            "data": self.engine.document.to_list(),
            "index": self.engine.index.to_dict(),
            "duplicateIds": self.engine.index.duplicate_ids,
            "rawData": self.raw_text,
            "error": None,
            "debugInfo": self.debug_info,
        }


class PageEngine:
    def __init__(
        self,
        document: Document,
        *,
        config: EngineConfig | None = None,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
        id_factory: Callable[[], str] = generate_node_id,
        should_cancel: Callable[[], bool] | None = None,
    ):
        self.config = config or EngineConfig()
        self.metrics_hook = metrics_hook
        self.document = document
        self.index: TreeIndex = IndexBuilder(self.config, metrics_hook).build(
            document, should_cancel=should_cancel
        )
        self.query = Query(self.index)
        self.mutations = MutationEngine(
            self.index,
            config=self.config,
            id_factory=id_factory,
            metrics_hook=metrics_hook,
        )
        field_map = FieldMap.from_config(self.config)
        self.extractor = TextExtractor(field_map, metrics_hook)
        self.applier = TranslationApplier(field_map, metrics_hook)

    @classmethod
    def load(
        cls,
        source: Any,
        document_id: str | None = None,
        *,
        config: EngineConfig | None = None,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
        should_cancel: Callable[[], bool] | None = None,
    ) -> LoadResult:
        """Parse and index ``source``. Never raises for bad input."""
        config = config or EngineConfig()
        parsed = TreeParser(config, metrics_hook).parse(source)
        if not parsed.success:
            kind = parsed.error_kind or ErrorKind.PARSE
            metrics_hook.increment(names.ENGINE_ERRORS_TOTAL, labels={"kind": kind.value})
            details = {} if parsed.error_offset is None else {"offset": parsed.error_offset}
            return LoadResult(
                success=False,
                error=ErrorInfo(
                    kind=kind,
                    code=_PARSE_CODES.get(kind, "ParseError"),
                    message=parsed.error or "Could not parse document",
                    details=details,
                ),
                raw_text=parsed.raw_text,
                debug_info=parsed.debug_info,
            )

        document = Document(
            nodes=parsed.nodes or [],
            raw=source,
            document_id=document_id,
        )
        try:
            engine = cls(
                document,
                config=config,
                metrics_hook=metrics_hook,
                should_cancel=should_cancel,
            )
        except TreeEngineError as exc:
            logger.error("Indexing failed: %s", exc.message)
            metrics_hook.increment(names.ENGINE_ERRORS_TOTAL, labels={"kind": exc.kind.value})
            return LoadResult(
                success=False,
                error=exc.to_info(),
                raw_text=parsed.raw_text,
                debug_info=parsed.debug_info,
            )

        return LoadResult(
            success=True,
            engine=engine,
            raw_text=parsed.raw_text,
            debug_info=parsed.debug_info,
        )

    # Queries

    def find_by_id(self, node_id: str) -> OperationResult:
        return self._run("find_by_id", self.query.find_by_id, node_id)

    def find_by_path(self, path: Sequence[int]) -> OperationResult:
        return self._run("find_by_path", self.query.find_by_path, path)

    def find_all_by_type(self, type_name: str) -> OperationResult:
        return self._run(
            "find_all_by_type", lambda: list(self.query.find_all_by_type(type_name))
        )

    def children_of(self, ref: NodeRef | None) -> OperationResult:
        return self._run("children_of", self.query.children_of, ref)

    # Mutations

    def insert_child(
        self,
        parent_ref: NodeRef | None,
        new_node: Node | Mapping[str, Any],
        position: int | None = None,
    ) -> OperationResult:
        return self._run(
            "insert_child", self.mutations.insert_child, parent_ref, new_node, position
        )

    def insert_relative(
        self,
        target_ref: NodeRef,
        new_node: Node | Mapping[str, Any],
        where: Placement = "after",
    ) -> OperationResult:
        return self._run(
            "insert_relative", self.mutations.insert_relative, target_ref, new_node, where
        )

    def move_node(
        self,
        node_ref: NodeRef,
        new_parent_ref: NodeRef | None,
        position: int | None = None,
    ) -> OperationResult:
        return self._run(
            "move_node", self.mutations.move_node, node_ref, new_parent_ref, position
        )

    def clone_node(
        self,
        node_ref: NodeRef,
        target_ref: NodeRef | None = None,
        where: Placement = "after",
        *,
        position: int | None = None,
        place_in_first_container: bool = False,
    ) -> OperationResult:
        return self._run(
            "clone_node",
            self.mutations.clone_node,
            node_ref,
            target_ref,
            where,
            position=position,
            place_in_first_container=place_in_first_container,
        )

    def delete_node(self, node_ref: NodeRef) -> OperationResult:
        return self._run("delete_node", self.mutations.delete_node, node_ref)

    def reorder_children(
        self,
        parent_ref: NodeRef | None,
        ordered_refs: Sequence[str | Sequence[int]],
    ) -> OperationResult:
        return self._run(
            "reorder_children", self.mutations.reorder_children, parent_ref, ordered_refs
        )

    def update_node_settings(
        self, node_ref: NodeRef, patch: Mapping[str, Any]
    ) -> OperationResult:
        return self._run(
            "update_node_settings", self.mutations.update_node_settings, node_ref, patch
        )

    def update_widget_content(self, node_ref: NodeRef, text: str) -> OperationResult:
        return self._run(
            "update_widget_content", self.mutations.update_widget_content, node_ref, text
        )

    def copy_settings(
        self,
        source_ref: NodeRef,
        target_ref: NodeRef,
        keys: Iterable[str] | None = None,
    ) -> OperationResult:
        return self._run(
            "copy_settings", self.mutations.copy_settings, source_ref, target_ref, keys
        )

    def add_columns(self, section_ref: NodeRef, count: int = 1) -> OperationResult:
        return self._run("add_columns", self.mutations.add_columns, section_ref, count)

    # Chunking

    def chunk(self, max_bytes: int | None = None) -> OperationResult:
        return self._run(
            "chunk",
            chunk_document,
            self.document,
            max_bytes=self.config.chunk_max_bytes if max_bytes is None else max_bytes,
            metrics_hook=self.metrics_hook,
        )

    def chunk_by_count(self, chunk_size: int = 5) -> OperationResult:
        return self._run(
            "chunk_by_count",
            chunk_by_count,
            self.document,
            chunk_size=chunk_size,
            metrics_hook=self.metrics_hook,
        )

    def structure_summary(self, include_settings: bool = False) -> OperationResult:
        return self._run(
            "structure_summary",
            summarize_structure,
            self.index,
            include_settings=include_settings,
        )

    # Translation

    def extract_text(self) -> OperationResult:
        return self._run("extract_text", self.extractor.extract, self.index)

    def preview(self, length: int = 100) -> OperationResult:
        return self._run("preview", self.extractor.preview, self.index, length)

    def apply_translations(
        self,
        units: TranslationInput,
        *,
        source: Document | None = None,
    ) -> OperationResult:
        """Patch translations in; unresolved units come back in the report."""
        return self._run(
            "apply_translations",
            lambda: self.applier.apply(self.mutations, coerce_units(units), source=source),
        )

    # Serialization

    def serialize(self) -> list[dict[str, Any]]:
        return self.document.to_list(self.index.new_guard())

    def dumps(self, indent: int | None = None) -> str:
        return dumps(self.document.nodes, indent=indent)

    def _run(self, operation: str, fn: Callable[..., Any], *args, **kwargs) -> OperationResult:
        try:
            value = fn(*args, **kwargs)
        except TreeEngineError as exc:
            return self._fail(operation, exc)
        return OperationResult(success=True, value=value)

    def _fail(self, operation: str, exc: TreeEngineError) -> OperationResult:
        logger.error("%s failed: %s", operation, exc.message)
        self.metrics_hook.increment(
            names.ENGINE_ERRORS_TOTAL,
            labels={"kind": exc.kind.value, "operation": operation},
        )
        return OperationResult(success=False, error=exc.to_info())


def _plain(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value
