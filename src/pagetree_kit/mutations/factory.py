# src/pagetree_kit/mutations/factory.py

"""Builders for fresh page elements.

Ids are 8 hex characters, the same shape the page builder generates.
"""

import uuid
from collections.abc import Callable
from typing import Any

from pagetree_kit.parsers.models import COLUMN, CONTAINER, SECTION, WIDGET, Node


def generate_node_id() -> str:
    return uuid.uuid4().hex[:8]


def create_column(
    column_size: int = 100,
    *,
    id_factory: Callable[[], str] = generate_node_id,
) -> Node:
    return Node(
        id=id_factory(),
        element_type=COLUMN,
        settings={"_column_size": column_size, "_inline_size": None},
        extra={"isInner": False},
    )


def create_section(
    columns: int = 1,
    settings: dict[str, Any] | None = None,
    *,
    id_factory: Callable[[], str] = generate_node_id,
) -> Node:
    """A section holding ``columns`` equally sized empty columns."""
    if columns < 1:
        raise ValueError("columns must be >= 1")
    column_size = 100 // columns
    return Node(
        id=id_factory(),
        element_type=SECTION,
        settings=dict(settings or {}),
        children=[create_column(column_size, id_factory=id_factory) for _ in range(columns)],
        extra={"isInner": False},
    )


def create_container(
    settings: dict[str, Any] | None = None,
    *,
    id_factory: Callable[[], str] = generate_node_id,
) -> Node:
    return Node(
        id=id_factory(),
        element_type=CONTAINER,
        settings=dict(settings or {}),
        extra={"isInner": False},
    )


def create_widget(
    widget_type: str,
    settings: dict[str, Any] | None = None,
    *,
    id_factory: Callable[[], str] = generate_node_id,
) -> Node:
    return Node(
        id=id_factory(),
        element_type=WIDGET,
        widget_type=widget_type,
        settings=dict(settings or {}),
        extra={"isInner": False},
    )
