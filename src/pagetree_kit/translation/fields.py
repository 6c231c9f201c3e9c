# src/pagetree_kit/translation/fields.py

import hashlib
from collections.abc import Mapping, Sequence

from pagetree_kit.config import DEFAULT_TEXT_FIELDS, EngineConfig
from pagetree_kit.parsers.models import Node


def fingerprint(text: str) -> str:
    """SHA-256 hex digest of ``text``. Matching on it is exact."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class FieldMap:
    """Which settings keys hold visible text, per widget type.

    Everything outside the map passes through unexamined.
    """

    def __init__(self, fields: Mapping[str, Sequence[str]] | None = None) -> None:
        source = DEFAULT_TEXT_FIELDS if fields is None else fields
        self._fields = {widget: tuple(keys) for widget, keys in source.items()}

    @classmethod
    def from_config(cls, config: EngineConfig) -> "FieldMap":
        return cls(config.text_fields)

    def __contains__(self, widget_type: object) -> bool:
        return widget_type in self._fields

    @property
    def widget_types(self) -> list[str]:
        return list(self._fields)

    def fields_for(self, widget_type: str | None) -> tuple[str, ...]:
        if widget_type is None:
            return ()
        return self._fields.get(widget_type, ())

    def texts(self, node: Node) -> list[tuple[str, str]]:
        """``(field, text)`` for each mapped field holding a non-empty string."""
        return [
            (key, node.settings[key])
            for key in self.fields_for(node.widget_type)
            if isinstance(node.settings.get(key), str) and node.settings[key].strip()
        ]
