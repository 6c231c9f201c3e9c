# src/pagetree_kit/observability/names.py

"""Standard metric names for pagetree-kit observability.

Use these constants instead of hardcoded strings for consistency
across the codebase.

Note: All duration metrics are in milliseconds by convention.
"""

# ============================================================================
# Parsing & Indexing Metrics
# ============================================================================

# Duration
PARSE_DURATION = "pagetree_parse_duration"
INDEX_BUILD_DURATION = "pagetree_index_build_duration"

# Counters
PARSE_FAILURES_TOTAL = "pagetree_parse_failures_total"

# Gauges
INDEX_NODE_COUNT = "pagetree_index_node_count"
INDEX_DUPLICATE_IDS = "pagetree_index_duplicate_ids"


# ============================================================================
# Mutation Metrics
# ============================================================================

# Counters (labelled with operation)
MUTATIONS_TOTAL = "pagetree_mutations_total"

# Counters (labelled with operation and error kind)
ENGINE_ERRORS_TOTAL = "pagetree_engine_errors_total"


# ============================================================================
# Chunking Metrics
# ============================================================================

# Duration
CHUNKING_DURATION = "pagetree_chunking_duration"

# Counters
CHUNKING_CHUNKS_CREATED = "pagetree_chunking_chunks_created"


# ============================================================================
# Translation Metrics
# ============================================================================

# Duration
TEXT_EXTRACTION_DURATION = "pagetree_text_extraction_duration"
TRANSLATION_APPLY_DURATION = "pagetree_translation_apply_duration"

# Counters (labelled with resolution strategy: id, path, fingerprint)
TRANSLATION_UNITS_APPLIED = "pagetree_translation_units_applied"
TRANSLATION_UNITS_UNRESOLVED = "pagetree_translation_units_unresolved"
