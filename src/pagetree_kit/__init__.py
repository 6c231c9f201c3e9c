# Chunking
from .chunking import Chunk, chunk_by_count, chunk_document, summarize_structure

# Configuration
from .config import EngineConfig, load_config

# Facade
from .engine import LoadResult, OperationResult, PageEngine

# Errors
from .errors import (
    AmbiguousIdReference,
    CapabilityError,
    CycleError,
    DocumentNotFound,
    ErrorInfo,
    ErrorKind,
    InvalidTargetType,
    NodeNotFound,
    NodeReferenceError,
    ParseError,
    SizeLimitError,
    StructuralError,
    TranslationResolutionError,
    TraversalBudgetExceeded,
    TreeEngineError,
)

# Indexing
from .indexing import IndexBuilder, IndexEntry, Query, TreeIndex

# Mutations
from .mutations import MutationEngine

# Observability
from .observability import InMemoryMetricsHook, MetricsHook, NoOpMetricsHook

# Parsers
from .parsers import Document, Node, ParseResult, TreeParser

# Translation
from .translation import (
    InMemoryDocumentStore,
    StaticCapabilityProbe,
    TextExtractor,
    TextUnit,
    TranslatedUnit,
    TranslationApplier,
    TranslationService,
)

# Traversal
from .traversal import TraversalGuard

__all__ = [
    # Chunking
    "Chunk",
    "chunk_by_count",
    "chunk_document",
    "summarize_structure",
    # Configuration
    "EngineConfig",
    "load_config",
    # Facade
    "LoadResult",
    "OperationResult",
    "PageEngine",
    # Errors
    "AmbiguousIdReference",
    "CapabilityError",
    "CycleError",
    "DocumentNotFound",
    "ErrorInfo",
    "ErrorKind",
    "InvalidTargetType",
    "NodeNotFound",
    "NodeReferenceError",
    "ParseError",
    "SizeLimitError",
    "StructuralError",
    "TranslationResolutionError",
    "TraversalBudgetExceeded",
    "TreeEngineError",
    # Indexing
    "IndexBuilder",
    "IndexEntry",
    "Query",
    "TreeIndex",
    # Mutations
    "MutationEngine",
    # Observability
    "InMemoryMetricsHook",
    "MetricsHook",
    "NoOpMetricsHook",
    # Parsers
    "Document",
    "Node",
    "ParseResult",
    "TreeParser",
    # Translation
    "InMemoryDocumentStore",
    "StaticCapabilityProbe",
    "TextExtractor",
    "TextUnit",
    "TranslatedUnit",
    "TranslationApplier",
    "TranslationService",
    # Traversal
    "TraversalGuard",
]
