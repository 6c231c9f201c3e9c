import copy

import pytest
from pagetree_kit.errors import ErrorKind, ParseError
from pagetree_kit.indexing import TreeIndex
from pagetree_kit.mutations import MutationEngine
from pagetree_kit.observability import InMemoryMetricsHook, names
from pagetree_kit.parsers import Document, serialize_nodes
from pagetree_kit.translation import (
    TextExtractor,
    TranslatedUnit,
    TranslationApplier,
    coerce_units,
    fingerprint,
)


@pytest.fixture
def applier() -> TranslationApplier:
    return TranslationApplier()


def _settings(engine: MutationEngine, node_id: str) -> dict:
    return engine.query.find_by_id(node_id).node.settings


class TestCoerceUnits:
    def test_mapping_of_id_to_text(self) -> None:
        units = coerce_units({"b1": "Bonjour"})

        assert units == [TranslatedUnit(id="b1", text="Bonjour")]

    def test_mappings_and_models(self) -> None:
        model = TranslatedUnit(path=[0, 0], text="A")
        units = coerce_units([model, {"id": "x", "text": "B"}])

        assert units[0] is model
        assert units[1].id == "x"

    def test_unknown_keys_are_rejected(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            coerce_units([{"id": "x", "text": "B", "lang": "fr"}])

        assert exc_info.value.details["errors"][0]["loc"] == ("lang",)

    @pytest.mark.parametrize("units", [[1], [{"id": "x", "text": "B"}, "B"], 42])
    def test_non_objects_are_rejected(self, units) -> None:
        with pytest.raises(ParseError):
            coerce_units(units)

    def test_from_text_unit(self, example_index: TreeIndex) -> None:
        unit = TextExtractor().extract(example_index)[0]

        translated = TranslatedUnit.from_text_unit(unit, "Bonjour")

        assert translated.path == [0, 0]
        assert translated.source_fingerprint() == fingerprint("Hello")

    def test_source_fingerprint_from_text(self) -> None:
        unit = TranslatedUnit(source_text="Hello", text="Hallo")

        assert unit.source_fingerprint() == fingerprint("Hello")
        assert TranslatedUnit(text="x").source_fingerprint() is None


class TestTranslationApplier:
    def test_apply_by_id(self, example_index: TreeIndex, applier: TranslationApplier) -> None:
        """Only the matched text field changes."""
        engine = MutationEngine(example_index)
        before = copy.deepcopy(serialize_nodes(example_index.document.nodes))

        report = applier.apply(engine, {"b1": "Bonjour"})

        assert report.complete
        assert [(a.id, a.field, a.strategy) for a in report.applied] == [("b1", "title", "id")]
        after = serialize_nodes(example_index.document.nodes)
        before[0]["elements"][0]["settings"]["title"] = "Bonjour"
        assert after == before

    def test_falls_back_to_path(self, page_engine: MutationEngine, applier: TranslationApplier) -> None:
        report = applier.apply(page_engine, [{"id": "renamed", "path": [0, 1, 0], "text": "Acheter"}])

        assert report.applied[0].strategy == "path"
        assert _settings(page_engine, "btn1")["text"] == "Acheter"

    def test_path_with_wrong_widget_type(self, page_engine: MutationEngine, applier: TranslationApplier) -> None:
        report = applier.apply(
            page_engine, [{"path": [0, 1, 0], "widget_type": "heading", "text": "Nope"}]
        )

        assert report.applied == []
        assert len(report.unresolved) == 1
        assert _settings(page_engine, "btn1")["text"] == "Buy now"

    def test_falls_back_to_fingerprint(self, page_engine: MutationEngine, applier: TranslationApplier) -> None:
        """A unit whose id and path no longer match is found by its source text."""
        unit = {
            "id": "old-id",
            "path": [3, 0, 0],
            "widget_type": "heading",
            "content_fingerprint": fingerprint("Welcome"),
            "text": "Bienvenue",
        }

        report = applier.apply(page_engine, [unit])

        assert report.applied[0].strategy == "fingerprint"
        assert report.applied[0].id == "h1"
        assert _settings(page_engine, "h1")["title"] == "Bienvenue"

    def test_ambiguous_fingerprint_is_unresolved(self, index_factory, applier: TranslationApplier) -> None:
        engine = MutationEngine(
            index_factory(
                [
                    {"id": "a", "widgetType": "heading", "settings": {"title": "Same"}},
                    {"id": "b", "widgetType": "heading", "settings": {"title": "Same"}},
                ]
            )
        )

        report = applier.apply(engine, [{"source_text": "Same", "text": "Pareil"}])

        assert report.applied == []
        assert "2 elements match" in report.unresolved[0].message
        assert _settings(engine, "a")["title"] == "Same"

    def test_unresolved_units_do_not_abort_batch(self, page_engine: MutationEngine) -> None:
        hook = InMemoryMetricsHook()
        applier = TranslationApplier(metrics_hook=hook)

        report = applier.apply(page_engine, {"ghost": "x", "h1": "Bienvenue", "s1": "y"})

        assert [a.id for a in report.applied] == ["h1"]
        assert [e.node_id for e in report.unresolved] == ["ghost", "s1"]
        assert all(e.kind is ErrorKind.TRANSLATION_RESOLUTION for e in report.unresolved)
        assert hook.count(names.TRANSLATION_UNITS_APPLIED) == 1
        assert hook.count(names.TRANSLATION_UNITS_UNRESOLVED) == 2
        assert report.to_dict()["unresolvedUnits"][0]["kind"] == "translation_resolution_error"

    def test_duplicate_id_falls_back_to_path(self, index_factory, applier: TranslationApplier) -> None:
        engine = MutationEngine(
            index_factory(
                [
                    {"id": "d", "widgetType": "heading", "settings": {"title": "One"}},
                    {"id": "d", "widgetType": "heading", "settings": {"title": "Two"}},
                ]
            )
        )

        report = applier.apply(engine, [{"id": "d", "path": [1], "text": "Deux"}])

        assert report.applied[0].strategy == "path"
        assert engine.query.find_by_path([1]).node.settings["title"] == "Deux"
        assert engine.query.find_by_path([0]).node.settings["title"] == "One"

    def test_explicit_field(self, index_factory, applier: TranslationApplier) -> None:
        engine = MutationEngine(
            index_factory([{"id": "h", "widgetType": "heading", "settings": {}}])
        )

        ok = applier.apply(engine, [{"id": "h", "field": "title", "text": "T"}])
        bad = applier.apply(engine, [{"id": "h", "field": "link", "text": "L"}])

        assert ok.complete
        assert engine.query.find_by_id("h").node.settings == {"title": "T"}
        assert not bad.complete

    def test_full_replace(self, page_raw, index_factory, applier: TranslationApplier) -> None:
        """The target tree is swapped for the source tree before patching."""
        target_engine = MutationEngine(index_factory(page_raw[:1]))
        source_index = index_factory(page_raw)
        source = source_index.document
        snapshot = copy.deepcopy(serialize_nodes(source.nodes))

        report = applier.apply(
            target_engine, {"h1": "Bienvenue", "btn1": "Acheter"}, source=source
        )

        assert report.complete
        assert len(target_engine.index) == 9
        assert _settings(target_engine, "h1")["title"] == "Bienvenue"
        assert target_engine.query.find_by_id("img1").path == (1, 0, 0)
        assert serialize_nodes(source.nodes) == snapshot
        assert target_engine.index.document.nodes[0] is not source.nodes[0]

    def test_full_replace_accepts_document(self, example_index: TreeIndex, applier: TranslationApplier) -> None:
        engine = MutationEngine(example_index)

        report = applier.apply(engine, [], source=Document(nodes=[]))

        assert report.complete
        assert len(engine.index) == 0
