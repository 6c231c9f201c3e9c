# src/pagetree_kit/translation/applier.py

"""Merge translated text back into a page.

Each translated unit is relocated with an ordered fallback chain:

1. its id, when present and unambiguous
2. its path
3. a search over elements of the same widget type for one whose current
   text has the unit's source fingerprint (exact match only)

A unit none of these resolves is reported and skipped; the batch goes on.
"""

import copy
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from time import monotonic
from typing import Any, Literal

from pydantic import BaseModel, ValidationError

from pagetree_kit.errors import (
    ErrorInfo,
    NodeReferenceError,
    ParseError,
    TranslationResolutionError,
)
from pagetree_kit.indexing.builder import IndexEntry
from pagetree_kit.mutations.engine import MutationEngine
from pagetree_kit.observability import names
from pagetree_kit.observability.base import MetricsHook, NoOpMetricsHook
from pagetree_kit.parsers.models import Document

from .extractor import TextUnit
from .fields import FieldMap, fingerprint

logger = logging.getLogger(__name__)

Strategy = Literal["id", "path", "fingerprint"]


class TranslatedUnit(BaseModel):
    id: str | None = None
    path: list[int] | None = None
    widget_type: str | None = None
    field: str | None = None
    source_text: str | None = None
    content_fingerprint: str | None = None
    text: str

    class Config:
        extra = "forbid"

    @classmethod
    def from_text_unit(cls, unit: TextUnit, text: str) -> "TranslatedUnit":
        return cls(
            id=unit.id,
            path=list(unit.path),
            widget_type=unit.widget_type,
            field=unit.field,
            content_fingerprint=unit.content_fingerprint,
            text=text,
        )

    def source_fingerprint(self) -> str | None:
        if self.content_fingerprint is not None:
            return self.content_fingerprint
        if self.source_text is not None:
            return fingerprint(self.source_text)
        return None


TranslationInput = Mapping[str, str] | Iterable[TranslatedUnit | Mapping[str, Any]]


def coerce_units(units: TranslationInput) -> list[TranslatedUnit]:
    """Accept ``{id: text}`` or an iterable of units / unit mappings.

    Raises ``ParseError`` for anything else, before any unit is applied.
    """
    try:
        if isinstance(units, Mapping):
            return [TranslatedUnit(id=key, text=text) for key, text in units.items()]
        coerced = []
        for position, unit in enumerate(units):
            if isinstance(unit, TranslatedUnit):
                coerced.append(unit)
            elif isinstance(unit, Mapping):
                coerced.append(TranslatedUnit(**unit))
            else:
                raise ParseError(
                    f"Translated unit {position} is a {type(unit).__name__}, not an object",
                    details={"position": position},
                )
        return coerced
    except ValidationError as exc:
        raise ParseError(
            "Invalid translated units", details={"errors": exc.errors()}
        ) from exc
    except TypeError as exc:
        raise ParseError(f"Translated units must be a list or an object: {exc}") from exc


@dataclass(frozen=True)
class AppliedUnit:
    id: str | None
    path: tuple[int, ...]
    field: str
    strategy: Strategy


@dataclass
class ApplyReport:
    applied: list[AppliedUnit] = field(default_factory=list)
    unresolved: list[ErrorInfo] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.unresolved

    def to_dict(self) -> dict[str, Any]:
        return {
            "applied": [
                {"id": a.id, "path": list(a.path), "field": a.field, "strategy": a.strategy}
                for a in self.applied
            ],
            "unresolvedUnits": [e.to_dict() for e in self.unresolved],
        }


class TranslationApplier:
    def __init__(
        self,
        field_map: FieldMap | None = None,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self.field_map = field_map or FieldMap()
        self.metrics_hook = metrics_hook

    def apply(
        self,
        engine: MutationEngine,
        units: TranslationInput,
        *,
        source: Document | None = None,
    ) -> ApplyReport:
        """Patch translated text into the engine's document.

        With ``source`` given, the target tree is first replaced by a copy of
        the source tree (full structural update), then units are applied the
        same way.
        """
        start = monotonic()
        if source is not None:
            engine.replace_tree(copy.deepcopy(source.nodes))

        report = ApplyReport()
        for unit in coerce_units(units):
            try:
                entry, key, strategy = self._resolve(engine, unit)
            except TranslationResolutionError as exc:
                logger.warning("Unresolved translation unit (id=%s): %s", unit.id, exc.message)
                report.unresolved.append(exc.to_info())
                self.metrics_hook.increment(names.TRANSLATION_UNITS_UNRESOLVED)
                continue

            engine.update_node_settings(entry.path, {key: unit.text})
            report.applied.append(
                AppliedUnit(id=entry.id, path=entry.path, field=key, strategy=strategy)
            )
            self.metrics_hook.increment(
                names.TRANSLATION_UNITS_APPLIED, labels={"strategy": strategy}
            )

        elapsed_ms = 1000 * (monotonic() - start)
        self.metrics_hook.record_latency(names.TRANSLATION_APPLY_DURATION, elapsed_ms)
        logger.info(
            "Applied %d translated units, %d unresolved",
            len(report.applied),
            len(report.unresolved),
        )
        return report

    def _resolve(
        self, engine: MutationEngine, unit: TranslatedUnit
    ) -> tuple[IndexEntry, str, Strategy]:
        reasons: list[str] = []

        if unit.id is not None:
            try:
                entry = engine.query.find_by_id(unit.id)
            except NodeReferenceError as exc:
                reasons.append(f"id: {exc.message}")
            else:
                key = self._field_for(entry, unit)
                if key is not None:
                    return entry, key, "id"
                reasons.append(f"id: element {unit.id!r} has no matching text field")

        if unit.path is not None:
            try:
                entry = engine.query.find_by_path(unit.path)
            except NodeReferenceError as exc:
                reasons.append(f"path: {exc.message}")
            else:
                key = self._field_for(entry, unit)
                if key is not None:
                    return entry, key, "path"
                reasons.append(f"path: element at {unit.path} has no matching text field")

        expected = unit.source_fingerprint()
        if expected is not None:
            candidates = self._fingerprint_matches(engine, unit, expected)
            if len(candidates) == 1:
                entry, key = candidates[0]
                return entry, key, "fingerprint"
            if candidates:
                reasons.append(f"fingerprint: {len(candidates)} elements match")
            else:
                reasons.append("fingerprint: no element carries the source text")

        raise TranslationResolutionError(
            "Could not locate translated unit: "
            + ("; ".join(reasons) or "no id, path or source text given"),
            node_id=unit.id,
            path=unit.path,
            details={"reasons": reasons},
        )

    def _field_for(self, entry: IndexEntry, unit: TranslatedUnit) -> str | None:
        if unit.widget_type is not None and entry.widget_type != unit.widget_type:
            return None
        fields = self.field_map.fields_for(entry.widget_type)
        if unit.field is not None:
            return unit.field if unit.field in fields else None
        for key in fields:
            if isinstance(entry.node.settings.get(key), str):
                return key
        return fields[0] if fields else None

    def _fingerprint_matches(
        self, engine: MutationEngine, unit: TranslatedUnit, expected: str
    ) -> list[tuple[IndexEntry, str]]:
        widget_types = (
            [unit.widget_type] if unit.widget_type is not None else self.field_map.widget_types
        )
        matches = []
        for widget_type in widget_types:
            for entry in engine.query.find_all_by_type(widget_type):
                for key, text in self.field_map.texts(entry.node):
                    if unit.field is not None and key != unit.field:
                        continue
                    if fingerprint(text) == expected:
                        matches.append((entry, key))
        return matches
