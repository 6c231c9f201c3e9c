# tests/integration/translation/test_translation_roundtrip.py

import json

import pytest
from tenacity import wait_none

from pagetree_kit import PageEngine
from pagetree_kit.observability import InMemoryMetricsHook, names
from pagetree_kit.translation import (
    InMemoryDocumentStore,
    StaticCapabilityProbe,
    TranslatedUnit,
    TranslationService,
)


@pytest.mark.asyncio
async def test_translate_edit_and_resync(page_raw) -> None:
    """Extract, translate, edit the source, then resync the translation."""
    store = InMemoryDocumentStore()
    store.add("home", "Page: Home\n--- Elementor Data ---\n" + json.dumps(page_raw), language="en")
    hook = InMemoryMetricsHook()
    service = TranslationService(
        store, StaticCapabilityProbe(), metrics_hook=hook, retry_wait=wait_none()
    )

    page_text = await service.get_page_text("home")
    assert page_text.success
    translations = {"Welcome": "Bienvenue", "<p>Intro</p>": "<p>Introduction</p>", "Buy now": "Acheter"}
    units = [TranslatedUnit.from_text_unit(u, translations[u.text]) for u in page_text.units]

    created = await service.create_translated_page("home", units, "fr")
    assert created.success
    assert created.unresolved_units == []

    # The source page gains a heading at the top of the first column.
    loaded = PageEngine.load(store.documents["home"].payload)
    loaded.engine.insert_child("c1", {"id": "h0", "widgetType": "heading", "settings": {"title": "News"}}, 0)
    store.add("home", loaded.engine.dumps(), language="en")

    # Path-based units now point one slot off; ids still resolve them.
    resynced = await service.update_translated_page(
        created.new_document_id, units, full_update=True
    )
    assert resynced.success
    assert resynced.unresolved_units == []

    translated = PageEngine.load(store.documents[created.new_document_id].payload).engine
    titles = [u.text for u in translated.extract_text().value]
    assert titles == ["News", "Bienvenue", "<p>Introduction</p>", "Acheter"]
    assert translated.find_by_id("img1").value.node.settings == {"image": {"url": "a.png"}}
    assert store.documents[created.new_document_id].language == "fr"
    assert hook.count(names.TRANSLATION_UNITS_APPLIED) == 6


@pytest.mark.asyncio
async def test_fingerprint_recovers_renamed_elements(example_raw) -> None:
    store = InMemoryDocumentStore()
    store.add("p", example_raw, language="en")
    service = TranslationService(store, StaticCapabilityProbe(), retry_wait=wait_none())
    unit = (await service.get_page_text("p")).units[0]

    # Builder regenerated ids and moved the heading under a new section.
    example_raw[0]["children"][0]["id"] = "zz9"
    example_raw.insert(0, {"id": "top", "elementType": "section"})
    store.add("p", example_raw, language="en")

    result = await service.update_translated_page(
        "p", [TranslatedUnit.from_text_unit(unit, "Bonjour")]
    )

    assert result.success
    assert result.unresolved_units == []
    engine = PageEngine.load(store.documents["p"].payload).engine
    assert engine.find_by_id("zz9").value.node.settings["title"] == "Bonjour"
