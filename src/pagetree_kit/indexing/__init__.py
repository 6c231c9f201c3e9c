from .builder import IndexBuilder, IndexEntry, TreeIndex
from .query import NodeRef, Query, TypeMatches

__all__ = [
    "IndexBuilder",
    "IndexEntry",
    "NodeRef",
    "Query",
    "TreeIndex",
    "TypeMatches",
]
