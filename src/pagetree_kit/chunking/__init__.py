from .chunking import (
    Chunk,
    chunk_by_count,
    chunk_document,
    decode_continuation_token,
    summarize_structure,
)

__all__ = [
    "Chunk",
    "chunk_by_count",
    "chunk_document",
    "decode_continuation_token",
    "summarize_structure",
]
