# src/pagetree_kit/errors.py

"""Error taxonomy for the page tree engine.

Lower layers raise these exceptions. The ``PageEngine`` facade and the
``TreeParser`` convert them into ``ErrorInfo`` values so automated callers can
branch on ``kind`` instead of parsing messages.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Category of an engine failure."""

    PARSE = "parse_error"
    STRUCTURAL = "structural_error"
    REFERENCE = "reference_error"
    CYCLE = "cycle_error"
    SIZE_LIMIT = "size_limit_error"
    TRANSLATION_RESOLUTION = "translation_resolution_error"
    CAPABILITY = "capability_error"


@dataclass(frozen=True)
class ErrorInfo:
    """Structured, serializable description of a failure."""

    kind: ErrorKind
    code: str
    message: str
    node_id: str | None = None
    path: tuple[int, ...] | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "nodeId": self.node_id,
            "path": list(self.path) if self.path is not None else None,
            "details": dict(self.details),
        }


class TreeEngineError(Exception):
    kind: ErrorKind = ErrorKind.STRUCTURAL

    def __init__(
        self,
        message: str,
        *,
        node_id: str | None = None,
        path: Sequence[int] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.node_id = node_id
        self.path = tuple(path) if path is not None else None
        self.details = details or {}

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(
            kind=self.kind,
            code=type(self).__name__,
            message=self.message,
            node_id=self.node_id,
            path=self.path,
            details=dict(self.details),
        )


class ParseError(TreeEngineError):
    kind = ErrorKind.PARSE


class StructuralError(TreeEngineError):
    kind = ErrorKind.STRUCTURAL


class InvalidTargetType(StructuralError):
    pass


class NodeReferenceError(TreeEngineError):
    kind = ErrorKind.REFERENCE


class NodeNotFound(NodeReferenceError):
    pass


class AmbiguousIdReference(NodeReferenceError):
    pass


class DocumentNotFound(NodeReferenceError):
    pass


class CycleError(TreeEngineError):
    kind = ErrorKind.CYCLE


class TraversalBudgetExceeded(CycleError):
    pass


class SizeLimitError(TreeEngineError):
    kind = ErrorKind.SIZE_LIMIT


class TranslationResolutionError(TreeEngineError):
    kind = ErrorKind.TRANSLATION_RESOLUTION


class CapabilityError(TreeEngineError):
    kind = ErrorKind.CAPABILITY
