import re

import pytest

from pagetree_kit.mutations import (
    create_column,
    create_container,
    create_section,
    create_widget,
    generate_node_id,
)


class TestFactories:
    def test_generated_ids(self) -> None:
        ids = {generate_node_id() for _ in range(50)}

        assert len(ids) == 50
        assert all(re.fullmatch(r"[0-9a-f]{8}", i) for i in ids)

    def test_section_with_columns(self) -> None:
        section = create_section(3, {"gap": "wide"})

        assert section.element_type == "section"
        assert section.settings == {"gap": "wide"}
        assert [c.element_type for c in section.children] == ["column"] * 3
        assert {c.settings["_column_size"] for c in section.children} == {33}
        assert len({c.id for c in section.children} | {section.id}) == 4

    def test_section_requires_a_column(self) -> None:
        with pytest.raises(ValueError):
            create_section(0)

    def test_settings_are_copied(self) -> None:
        settings = {"title": "Hi"}
        widget = create_widget("heading", settings)
        widget.settings["title"] = "Changed"

        assert settings == {"title": "Hi"}

    def test_container_and_widget(self) -> None:
        container = create_container(id_factory=lambda: "fixed")
        widget = create_widget("button", {"text": "Go"})

        assert container.id == "fixed"
        assert container.can_have_children
        assert widget.widget_type == "button"
        assert widget.type_name == "button"
        assert not widget.can_have_children

    def test_column_wire_shape(self) -> None:
        column = create_column(50, id_factory=lambda: "col")

        assert column.to_dict() == {
            "id": "col",
            "elType": "column",
            "settings": {"_column_size": 50, "_inline_size": None},
            "elements": [],
            "isInner": False,
        }
