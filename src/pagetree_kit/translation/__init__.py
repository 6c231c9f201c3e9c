from .applier import (
    AppliedUnit,
    ApplyReport,
    TranslatedUnit,
    TranslationApplier,
    coerce_units,
)
from .extractor import TextExtractor, TextUnit, TranslationStatus
from .fields import FieldMap, fingerprint
from .service import (
    CapabilityProbe,
    DocumentStore,
    PageText,
    StoredDocument,
    TransientStoreError,
    TranslatedPageResult,
    TranslationService,
)
from .store import InMemoryDocumentStore, StaticCapabilityProbe

__all__ = [
    "AppliedUnit",
    "ApplyReport",
    "CapabilityProbe",
    "DocumentStore",
    "FieldMap",
    "InMemoryDocumentStore",
    "PageText",
    "StaticCapabilityProbe",
    "StoredDocument",
    "TextExtractor",
    "TextUnit",
    "TransientStoreError",
    "TranslatedPageResult",
    "TranslatedUnit",
    "TranslationApplier",
    "TranslationService",
    "TranslationStatus",
    "coerce_units",
    "fingerprint",
]
