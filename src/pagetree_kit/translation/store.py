# src/pagetree_kit/translation/store.py

import itertools
import json
from dataclasses import replace
from typing import Any

from pagetree_kit.errors import DocumentNotFound

from .service import StoredDocument


class InMemoryDocumentStore:
    """
    Dict-backed DocumentStore.

    Payloads are kept as JSON text, the way a CMS stores page data.
    Duplicates get ids of the form ``<source>-copy-<n>``.
    """

    def __init__(self) -> None:
        self.documents: dict[str, StoredDocument] = {}
        self._copies = itertools.count(1)

    def add(
        self,
        document_id: str,
        payload: Any,
        *,
        language: str | None = None,
        source_document_id: str | None = None,
        title: str | None = None,
    ) -> StoredDocument:
        if not isinstance(payload, str):
            payload = json.dumps(payload, ensure_ascii=False)
        stored = StoredDocument(
            document_id=document_id,
            payload=payload,
            language=language,
            source_document_id=source_document_id,
            title=title,
        )
        self.documents[document_id] = stored
        return stored

    async def get_document(self, document_id: str) -> StoredDocument:
        try:
            return self.documents[document_id]
        except KeyError:
            raise DocumentNotFound(
                f"No document with id {document_id!r}",
                details={"document_id": document_id},
            ) from None

    async def save_document(self, document_id: str, payload: str) -> None:
        stored = await self.get_document(document_id)
        self.documents[document_id] = replace(stored, payload=payload)

    async def duplicate_document(self, document_id: str) -> str:
        stored = await self.get_document(document_id)
        new_id = f"{document_id}-copy-{next(self._copies)}"
        self.documents[new_id] = replace(stored, document_id=new_id)
        return new_id

    async def set_document_language(
        self,
        document_id: str,
        language: str,
        *,
        source_document_id: str | None = None,
    ) -> None:
        stored = await self.get_document(document_id)
        self.documents[document_id] = replace(
            stored,
            language=language,
            source_document_id=source_document_id or stored.source_document_id,
        )

    def payload_of(self, document_id: str) -> Any:
        """Decoded payload; convenient in tests."""
        return json.loads(self.documents[document_id].payload)


class StaticCapabilityProbe:
    def __init__(self, active: bool = True) -> None:
        self.active = active

    async def is_multilingual_active(self) -> bool:
        return self.active
