# src/pagetree_kit/translation/service.py

"""Translation-facing operations over an external document store.

The store and the multilingual capability probe are collaborators this
package does not implement. Only their calls are awaited; all tree work runs
synchronously in between.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from pagetree_kit.config import EngineConfig
from pagetree_kit.errors import (
    CapabilityError,
    DocumentNotFound,
    ErrorInfo,
    ParseError,
    TreeEngineError,
)
from pagetree_kit.indexing.builder import IndexBuilder, TreeIndex
from pagetree_kit.mutations.engine import MutationEngine
from pagetree_kit.observability.base import MetricsHook, NoOpMetricsHook
from pagetree_kit.parsers.models import Document
from pagetree_kit.parsers.tree_parser import TreeParser, dumps

from .applier import TranslationApplier, TranslationInput, coerce_units
from .extractor import TextExtractor, TextUnit
from .fields import FieldMap

logger = logging.getLogger(__name__)


class TransientStoreError(Exception):
    """A store call failed in a way worth retrying (timeouts, 5xx, locks)."""


@dataclass(frozen=True)
class StoredDocument:
    document_id: str
    payload: Any
    language: str | None = None
    source_document_id: str | None = None
    title: str | None = None


class DocumentStore(Protocol):
    async def get_document(self, document_id: str) -> StoredDocument:
        """Raises ``DocumentNotFound`` for unknown ids."""
        ...

    async def save_document(self, document_id: str, payload: str) -> None: ...

    async def duplicate_document(self, document_id: str) -> str:
        """Copy a document and return the new document's id."""
        ...

    async def set_document_language(
        self,
        document_id: str,
        language: str,
        *,
        source_document_id: str | None = None,
    ) -> None: ...


class CapabilityProbe(Protocol):
    async def is_multilingual_active(self) -> bool: ...


@dataclass(frozen=True)
class PageText:
    success: bool
    document_id: str
    language: str | None = None
    units: list[TextUnit] = field(default_factory=list)
    error: ErrorInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "documentId": self.document_id,
            "language": self.language,
            "units": [unit.to_dict() for unit in self.units],
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass(frozen=True)
class TranslatedPageResult:
    success: bool
    document_id: str
    new_document_id: str | None = None
    unresolved_units: list[ErrorInfo] = field(default_factory=list)
    error: ErrorInfo | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "documentId": self.document_id,
            "unresolvedUnits": [info.to_dict() for info in self.unresolved_units],
            "error": self.error.to_dict() if self.error else None,
        }
        if self.new_document_id is not None:
            data["newDocumentId"] = self.new_document_id
        return data


class TranslationService:
    def __init__(
        self,
        store: DocumentStore,
        probe: CapabilityProbe,
        *,
        config: EngineConfig | None = None,
        field_map: FieldMap | None = None,
        metrics_hook: MetricsHook = NoOpMetricsHook(),
        max_attempts: int = 3,
        retry_wait: wait_base = wait_exponential(multiplier=0.5, min=0.5, max=5),
    ):
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")
        self.store = store
        self.probe = probe
        self.config = config or EngineConfig()
        self.field_map = field_map or FieldMap.from_config(self.config)
        self.metrics_hook = metrics_hook
        self._max_attempts = max_attempts
        self._retry_wait = retry_wait

        self._parser = TreeParser(self.config, metrics_hook=metrics_hook)
        self._indexer = IndexBuilder(self.config, metrics_hook=metrics_hook)
        self._extractor = TextExtractor(self.field_map, metrics_hook=metrics_hook)
        self._applier = TranslationApplier(self.field_map, metrics_hook=metrics_hook)

    async def get_page_text(self, document_id: str) -> PageText:
        """Every translatable text unit of a page, with its language."""
        try:
            await self._require_multilingual()
            stored = await self._retrying(self.store.get_document, document_id)
            _, index = self._load(stored)
            units = self._extractor.extract(index)
        except TreeEngineError as exc:
            logger.warning("get_page_text(%s) failed: %s", document_id, exc.message)
            return PageText(success=False, document_id=document_id, error=exc.to_info())

        return PageText(
            success=True,
            document_id=document_id,
            language=stored.language,
            units=units,
        )

    async def create_translated_page(
        self,
        document_id: str,
        translated_units: TranslationInput,
        target_language: str,
    ) -> TranslatedPageResult:
        """Duplicate a page, patch in the translations and tag its language."""
        try:
            units = coerce_units(translated_units)
            await self._require_multilingual()
            source = await self._retrying(self.store.get_document, document_id)
            document, index = self._load(source)

            new_id = await self._retrying(self.store.duplicate_document, document_id)
            engine = MutationEngine(index, config=self.config, metrics_hook=self.metrics_hook)
            report = self._applier.apply(engine, units)

            await self._retrying(self.store.save_document, new_id, dumps(document.nodes))
            await self._retrying(
                self.store.set_document_language,
                new_id,
                target_language,
                source_document_id=document_id,
            )
        except TreeEngineError as exc:
            logger.warning("create_translated_page(%s) failed: %s", document_id, exc.message)
            return TranslatedPageResult(
                success=False, document_id=document_id, error=exc.to_info()
            )

        logger.info(
            "Created %s translation %s of %s (%d unresolved units)",
            target_language,
            new_id,
            document_id,
            len(report.unresolved),
        )
        return TranslatedPageResult(
            success=True,
            document_id=document_id,
            new_document_id=new_id,
            unresolved_units=report.unresolved,
        )

    async def update_translated_page(
        self,
        document_id: str,
        translated_units: TranslationInput,
        *,
        full_update: bool = False,
    ) -> TranslatedPageResult:
        """Re-apply translations to an existing translated page.

        With ``full_update`` the page's tree is first replaced by its source
        page's tree, which picks up structural changes made after the page
        was translated.
        """
        try:
            units = coerce_units(translated_units)
            await self._require_multilingual()
            target = await self._retrying(self.store.get_document, document_id)
            document, index = self._load(target)

            source_document: Document | None = None
            if full_update:
                if target.source_document_id is None:
                    raise DocumentNotFound(
                        f"Document {document_id!r} has no recorded source document",
                        details={"document_id": document_id},
                    )
                source = await self._retrying(
                    self.store.get_document, target.source_document_id
                )
                source_document, _ = self._load(source)

            engine = MutationEngine(index, config=self.config, metrics_hook=self.metrics_hook)
            report = self._applier.apply(engine, units, source=source_document)
            await self._retrying(self.store.save_document, document_id, dumps(document.nodes))
        except TreeEngineError as exc:
            logger.warning("update_translated_page(%s) failed: %s", document_id, exc.message)
            return TranslatedPageResult(
                success=False, document_id=document_id, error=exc.to_info()
            )

        return TranslatedPageResult(
            success=True,
            document_id=document_id,
            unresolved_units=report.unresolved,
        )

    async def _require_multilingual(self) -> None:
        if not await self._retrying(self.probe.is_multilingual_active):
            raise CapabilityError("Multilingual extension is not active")

    def _load(self, stored: StoredDocument) -> tuple[Document, TreeIndex]:
        result = self._parser.parse(stored.payload)
        if not result.success:
            raise ParseError(
                result.error or "Could not parse document",
                details={
                    "document_id": stored.document_id,
                    "offset": result.error_offset,
                    "debug_info": result.debug_info,
                },
            )
        document = Document(
            nodes=result.nodes or [],
            raw=stored.payload,
            document_id=stored.document_id,
            language=stored.language,
        )
        return document, self._indexer.build(document)

    async def _retrying(self, fn, *args, **kwargs):
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=self._retry_wait,
            retry=retry_if_exception_type(TransientStoreError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await fn(*args, **kwargs)
