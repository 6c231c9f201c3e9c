# src/pagetree_kit/translation/extractor.py

import logging
from dataclasses import dataclass
from enum import Enum
from time import monotonic
from typing import Any

from pagetree_kit.indexing.builder import TreeIndex
from pagetree_kit.observability import names
from pagetree_kit.observability.base import MetricsHook, NoOpMetricsHook

from .fields import FieldMap, fingerprint

logger = logging.getLogger(__name__)


class TranslationStatus(str, Enum):
    UNTRANSLATED = "untranslated"
    TRANSLATED = "translated"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class TextUnit:
    """A translatable text leaf and where it was found."""

    id: str | None
    path: tuple[int, ...]
    element_type: str
    widget_type: str | None
    field: str
    text: str
    content_fingerprint: str
    status: TranslationStatus = TranslationStatus.UNTRANSLATED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": list(self.path),
            "elementType": self.element_type,
            "widgetType": self.widget_type,
            "field": self.field,
            "text": self.text,
            "contentFingerprint": self.content_fingerprint,
            "translationStatus": self.status.value,
        }


class TextExtractor:
    def __init__(
        self,
        field_map: FieldMap | None = None,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self.field_map = field_map or FieldMap()
        self.metrics_hook = metrics_hook

    def extract(self, index: TreeIndex) -> list[TextUnit]:
        start = monotonic()
        units = [
            TextUnit(
                id=entry.id,
                path=entry.path,
                element_type=entry.element_type,
                widget_type=entry.widget_type,
                field=field,
                text=text,
                content_fingerprint=fingerprint(text),
            )
            for entry in index.entries()
            if entry.widget_type in self.field_map
            for field, text in self.field_map.texts(entry.node)
        ]

        elapsed_ms = 1000 * (monotonic() - start)
        self.metrics_hook.record_latency(names.TEXT_EXTRACTION_DURATION, elapsed_ms)
        logger.info("Extracted %d text units", len(units))
        return units

    def preview(self, index: TreeIndex, length: int = 100) -> list[dict[str, Any]]:
        """Flat element listing with a short content preview for text widgets."""
        listing = []
        for entry in index.entries():
            item: dict[str, Any] = {
                "id": entry.id,
                "elementType": entry.element_type,
                "level": len(entry.path) - 1,
            }
            if entry.widget_type:
                item["widgetType"] = entry.widget_type
            texts = self.field_map.texts(entry.node)
            if texts:
                text = texts[0][1]
                item["contentPreview"] = text[:length] + ("..." if len(text) > length else "")
            listing.append(item)
        return listing
