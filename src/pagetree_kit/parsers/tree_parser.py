# src/pagetree_kit/parsers/tree_parser.py

import json
import logging
import re
from collections.abc import Mapping
from time import monotonic
from typing import Any

from pagetree_kit.config import EngineConfig
from pagetree_kit.errors import (
    ParseError,
    SizeLimitError,
    StructuralError,
    TreeEngineError,
)
from pagetree_kit.observability import names
from pagetree_kit.observability.base import MetricsHook, NoOpMetricsHook
from pagetree_kit.traversal import NO_ANCESTORS, Ancestors, TraversalGuard

from .base import DocumentParser
from .models import ELEMENT_TYPES, WIDGET, Node, ParseResult, serialize_nodes

logger = logging.getLogger(__name__)

_KNOWN_KEYS = frozenset(
    {"id", "elType", "elementType", "widgetType", "settings", "elements", "children"}
)
_FENCE_OPEN = re.compile(r"^```(?:json)?\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")


class TreeParser(DocumentParser):
    """
    Normalizes page payloads into ``Node`` trees.

    Accepts:
    - an already structured value (list of mappings)
    - bytes or a JSON string
    - a text blob with the JSON payload after a known delimiter, or
      embedded somewhere in the text
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self.config = config or EngineConfig()
        self.metrics_hook = metrics_hook

    def parse(self, source: Any) -> ParseResult:
        start = monotonic()
        result = self._parse(source)

        elapsed_ms = 1000 * (monotonic() - start)
        self.metrics_hook.record_latency(names.PARSE_DURATION, elapsed_ms)
        if not result.success:
            self.metrics_hook.increment(
                names.PARSE_FAILURES_TOTAL,
                labels={"kind": result.error_kind.value if result.error_kind else "unknown"},
            )
            logger.info("Parse failed: %s", result.error)
        else:
            logger.debug("Parsed %d top-level nodes", len(result.nodes or []))
        return result

    def normalize(self, payload: Any) -> list[Node]:
        """Convert a decoded payload into nodes.

        Raises:
            ParseError: root is not an array, or an element is malformed.
            StructuralError: a widget carries children.
            CycleError: a structured payload references itself.
            SizeLimitError: more nodes than ``max_nodes``.
        """
        if not isinstance(payload, (list, tuple)):
            raise ParseError(
                f"Expected a JSON array of nodes at the root, found {_describe(payload)}"
            )
        guard = TraversalGuard.from_config(self.config)
        return [
            self._normalize_node(item, guard, NO_ANCESTORS, (position,))
            for position, item in enumerate(payload)
        ]

    def normalize_node(self, raw: Mapping[str, Any]) -> Node:
        """Convert a single element mapping (and its subtree) into a ``Node``."""
        guard = TraversalGuard.from_config(self.config)
        return self._normalize_node(raw, guard, NO_ANCESTORS, (0,))

    def _parse(self, source: Any) -> ParseResult:
        raw_text: str | None = None
        debug_info: str | None = None
        try:
            if isinstance(source, (bytes, bytearray)):
                try:
                    source = bytes(source).decode("utf-8")
                except UnicodeDecodeError as exc:
                    raise ParseError(
                        f"Payload is not valid UTF-8: {exc.reason}",
                        details={"offset": exc.start},
                    ) from exc

            if isinstance(source, str):
                raw_text = source
                size = len(source.encode("utf-8"))
                if size > self.config.max_bytes:
                    raise SizeLimitError(
                        f"Payload of {size} bytes exceeds limit of {self.config.max_bytes}",
                        details={"size_bytes": size},
                    )
                payload, debug_info = self._decode_text(source)
            else:
                payload = source

            nodes = self.normalize(payload)
        except TreeEngineError as exc:
            return ParseResult(
                success=False,
                error=exc.message,
                error_kind=exc.kind,
                error_offset=exc.details.get("offset"),
                raw_text=raw_text,
                debug_info=exc.details.get("debug_info", debug_info),
            )

        return ParseResult(
            success=True,
            nodes=nodes,
            raw_text=raw_text,
            debug_info=debug_info,
        )

    def _decode_text(self, text: str) -> tuple[Any, str | None]:
        stripped = text.strip()
        if stripped.startswith(("[", "{")):
            return _decode_json(stripped, allow_trailing=False), None

        segment, debug_info = self._extract_segment(text)
        if not segment:
            raise ParseError(
                "Empty JSON data in response", details={"debug_info": debug_info}
            )
        if debug_info and any(m in debug_info for m in self.config.error_markers):
            raise ParseError(
                "No valid page data available", details={"debug_info": debug_info}
            )
        try:
            return _decode_json(segment, allow_trailing=True), debug_info
        except ParseError as exc:
            exc.details["debug_info"] = debug_info
            raise

    def _extract_segment(self, text: str) -> tuple[str, str | None]:
        for delimiter in self.config.payload_delimiters:
            if delimiter in text:
                before, _, after = text.partition(delimiter)
                return after.strip(), before.strip() or None

        starts = [i for i in (text.find("["), text.find("{")) if i >= 0]
        if not starts:
            raise ParseError(
                "No JSON data found in response", details={"debug_info": text}
            )
        begin = min(starts)
        return text[begin:].strip(), text[:begin].strip() or None

    def _normalize_node(
        self,
        raw: Any,
        guard: TraversalGuard,
        ancestors: Ancestors,
        path: tuple[int, ...],
    ) -> Node:
        if not isinstance(raw, Mapping):
            raise ParseError(
                f"Expected an element object, found {_describe(raw)}", path=path
            )

        node_id = raw.get("id")
        if node_id is not None and not isinstance(node_id, str):
            node_id = str(node_id)

        scope = guard.descend(raw, ancestors, path, node_id=node_id)
        if guard.steps > self.config.max_nodes:
            raise SizeLimitError(
                f"Document exceeds limit of {self.config.max_nodes} nodes",
                node_id=node_id,
                path=path,
            )

        widget_type = raw.get("widgetType")
        element_type = raw.get("elType", raw.get("elementType"))
        if element_type is None and widget_type:
            element_type = WIDGET
        if element_type not in ELEMENT_TYPES:
            raise ParseError(
                f"Unknown element type {element_type!r}", node_id=node_id, path=path
            )

        settings = raw.get("settings")
        if settings is None or settings == []:
            # empty PHP arrays arrive as []
            settings = {}
        if not isinstance(settings, Mapping):
            raise ParseError(
                f"Settings must be an object, found {_describe(settings)}",
                node_id=node_id,
                path=path,
            )

        children_raw = raw.get("elements", raw.get("children")) or []
        if not isinstance(children_raw, (list, tuple)):
            raise ParseError(
                f"Children must be an array, found {_describe(children_raw)}",
                node_id=node_id,
                path=path,
            )
        if element_type == WIDGET and children_raw:
            raise StructuralError(
                "Widget elements cannot hold children", node_id=node_id, path=path
            )

        extra = {k: v for k, v in raw.items() if k not in _KNOWN_KEYS}
        if "widgetType" in raw and widget_type is None:
            extra["widgetType"] = None

        return Node(
            id=node_id,
            element_type=element_type,
            widget_type=widget_type,
            settings=dict(settings),
            children=[
                self._normalize_node(child, guard, scope, path + (position,))
                for position, child in enumerate(children_raw)
            ],
            extra=extra,
        )


def dumps(nodes: list[Node], *, indent: int | None = None) -> str:
    """Serialize nodes to a JSON string in the page-builder wire format."""
    separators = None if indent is not None else (",", ":")
    return json.dumps(
        serialize_nodes(nodes), ensure_ascii=False, indent=indent, separators=separators
    )


def _decode_json(text: str, *, allow_trailing: bool) -> Any:
    cleaned = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text)).strip()
    try:
        if allow_trailing:
            value, _ = json.JSONDecoder().raw_decode(cleaned)
            return value
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        excerpt = cleaned[max(0, exc.pos - 20) : exc.pos + 20]
        raise ParseError(
            f"Malformed JSON at offset {exc.pos}: {exc.msg} near {excerpt!r}",
            details={"offset": exc.pos, "excerpt": excerpt},
        ) from exc


def _describe(value: Any) -> str:
    if isinstance(value, Mapping):
        keys = sorted(str(k) for k in value)[:10]
        return f"object with keys {keys}"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return f"array of {len(value)} items"
    return type(value).__name__
