# src/pagetree_kit/chunking/chunking.py

import json
import logging
from dataclasses import dataclass
from time import monotonic
from typing import Any

from pagetree_kit.errors import ParseError, SizeLimitError
from pagetree_kit.indexing.builder import TreeIndex
from pagetree_kit.observability import names
from pagetree_kit.observability.base import MetricsHook, NoOpMetricsHook
from pagetree_kit.parsers.models import Document, Node, serialize_nodes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Chunk:
    chunk_index: int
    total_chunks: int
    nodes: list[Node]
    continuation_token: str | None = None
    size_bytes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunkIndex": self.chunk_index,
            "totalChunks": self.total_chunks,
            "continuationToken": self.continuation_token,
            "nodes": serialize_nodes(self.nodes),
        }

    def dumps(self) -> str:
        """The chunk's nodes as a standalone JSON array."""
        return _dumps(serialize_nodes(self.nodes))


def chunk_document(
    document: Document,
    *,
    max_bytes: int,
    source_id: str | None = None,
    metrics_hook: MetricsHook = NoOpMetricsHook(),
) -> list[Chunk]:
    """Split a document on top-level node boundaries.

    Each chunk's node list serializes to a JSON array of at most
    ``max_bytes`` UTF-8 bytes. A top-level node that cannot fit on its own
    raises ``SizeLimitError``; nodes are never split. An empty document
    yields a single empty chunk.
    """
    start = monotonic()
    if max_bytes <= 2:
        raise ParseError("max_bytes must be > 2", details={"max_bytes": max_bytes})

    groups: list[list[Node]] = []
    sizes: list[int] = []
    current: list[Node] = []
    current_size = 2  # "[]"

    for position, node in enumerate(document.nodes):
        node_size = len(_dumps(node.to_dict()).encode("utf-8"))
        if node_size + 2 > max_bytes:
            raise SizeLimitError(
                f"Top-level element of {node_size} bytes does not fit in a "
                f"{max_bytes}-byte chunk",
                node_id=node.id,
                path=(position,),
                details={"size_bytes": node_size},
            )
        separator = 1 if current else 0
        if current and current_size + separator + node_size > max_bytes:
            groups.append(current)
            sizes.append(current_size)
            current, current_size, separator = [], 2, 0
        current.append(node)
        current_size += separator + node_size

    groups.append(current)
    sizes.append(current_size)

    chunks = _assemble(groups, sizes, source_id or document.document_id or "unknown")

    elapsed_ms = 1000 * (monotonic() - start)
    metrics_hook.record_latency(names.CHUNKING_DURATION, elapsed_ms)
    metrics_hook.increment(names.CHUNKING_CHUNKS_CREATED, len(chunks))
    logger.info("Split %d top-level nodes into %d chunks", len(document.nodes), len(chunks))
    return chunks


def chunk_by_count(
    document: Document,
    *,
    chunk_size: int = 5,
    source_id: str | None = None,
    metrics_hook: MetricsHook = NoOpMetricsHook(),
) -> list[Chunk]:
    """Fixed number of top-level nodes per chunk."""
    start = monotonic()
    if chunk_size <= 0:
        raise ParseError("chunk_size must be > 0", details={"chunk_size": chunk_size})

    nodes = document.nodes
    groups = [nodes[i : i + chunk_size] for i in range(0, len(nodes), chunk_size)] or [[]]
    sizes = [len(_dumps(serialize_nodes(group)).encode("utf-8")) for group in groups]
    chunks = _assemble(groups, sizes, source_id or document.document_id or "unknown")

    elapsed_ms = 1000 * (monotonic() - start)
    metrics_hook.record_latency(names.CHUNKING_DURATION, elapsed_ms)
    metrics_hook.increment(names.CHUNKING_CHUNKS_CREATED, len(chunks))
    return chunks


def decode_continuation_token(token: str) -> tuple[str, int, int]:
    """Split a token into ``(source_id, next_index, total_chunks)``."""
    source_id, sep, rest = token.rpartition(":")
    prefix, sep2, next_index = source_id.rpartition(":")
    try:
        if not sep or not sep2:
            raise ValueError
        return prefix, int(next_index), int(rest)
    except ValueError:
        raise ParseError(f"Malformed continuation token {token!r}") from None


def summarize_structure(
    index: TreeIndex, *, include_settings: bool = False
) -> list[dict[str, Any]]:
    """One lightweight record per node, in document order."""
    summary = []
    for entry in index.entries():
        record: dict[str, Any] = {
            "id": entry.id,
            "elementType": entry.element_type,
            "widgetType": entry.widget_type,
            "path": list(entry.path),
            "childCount": len(entry.node.children),
        }
        if include_settings:
            record["settings"] = entry.node.settings
        summary.append(record)
    return summary


def _assemble(groups: list[list[Node]], sizes: list[int], source_id: str) -> list[Chunk]:
    total = len(groups)
    return [
        Chunk(
            chunk_index=i,
            total_chunks=total,
            nodes=list(group),
            continuation_token=f"{source_id}:{i + 1}:{total}" if i + 1 < total else None,
            size_bytes=size,
        )
        for i, (group, size) in enumerate(zip(groups, sizes))
    ]


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
