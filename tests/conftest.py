import copy
from typing import Any

import pytest

from pagetree_kit.config import EngineConfig
from pagetree_kit.indexing import IndexBuilder, TreeIndex
from pagetree_kit.mutations import MutationEngine
from pagetree_kit.parsers import Document, TreeParser

EXAMPLE_RAW: list[dict[str, Any]] = [
    {
        "id": "a1",
        "elementType": "section",
        "children": [
            {
                "id": "b1",
                "elementType": "widget",
                "widgetType": "heading",
                "settings": {"title": "Hello"},
            }
        ],
    }
]

PAGE_RAW: list[dict[str, Any]] = [
    {
        "id": "s1",
        "elType": "section",
        "isInner": False,
        "settings": {"layout": "boxed"},
        "elements": [
            {
                "id": "c1",
                "elType": "column",
                "settings": {"_column_size": 50},
                "elements": [
                    {
                        "id": "h1",
                        "elType": "widget",
                        "widgetType": "heading",
                        "settings": {"title": "Welcome"},
                        "elements": [],
                    },
                    {
                        "id": "t1",
                        "elType": "widget",
                        "widgetType": "text-editor",
                        "settings": {"editor": "<p>Intro</p>"},
                        "elements": [],
                    },
                ],
            },
            {
                "id": "c2",
                "elType": "column",
                "settings": {"_column_size": 50},
                "elements": [
                    {
                        "id": "btn1",
                        "elType": "widget",
                        "widgetType": "button",
                        "settings": {"text": "Buy now", "link": {"url": "/shop"}},
                        "elements": [],
                    }
                ],
            },
        ],
    },
    {
        "id": "s2",
        "elType": "section",
        "settings": {"background": "#fff"},
        "elements": [
            {
                "id": "c3",
                "elType": "column",
                "settings": {},
                "elements": [
                    {
                        "id": "img1",
                        "elType": "widget",
                        "widgetType": "image",
                        "settings": {"image": {"url": "a.png"}},
                        "elements": [],
                    }
                ],
            }
        ],
    },
]


def build_index(raw: Any, config: EngineConfig | None = None) -> TreeIndex:
    result = TreeParser(config).parse(copy.deepcopy(raw))
    assert result.success, result.error
    return IndexBuilder(config).build(Document(nodes=result.nodes or []))


@pytest.fixture
def example_raw() -> list[dict[str, Any]]:
    return copy.deepcopy(EXAMPLE_RAW)


@pytest.fixture
def page_raw() -> list[dict[str, Any]]:
    return copy.deepcopy(PAGE_RAW)


@pytest.fixture
def example_index() -> TreeIndex:
    return build_index(EXAMPLE_RAW)


@pytest.fixture
def page_index() -> TreeIndex:
    return build_index(PAGE_RAW)


@pytest.fixture
def page_engine(page_index: TreeIndex) -> MutationEngine:
    """MutationEngine over PAGE_RAW with predictable generated ids."""
    counter = iter(range(1, 10_000))
    return MutationEngine(page_index, id_factory=lambda: f"new{next(counter)}")


@pytest.fixture
def index_factory():
    """Parse and index an arbitrary raw payload."""
    return build_index
