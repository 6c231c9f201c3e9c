# src/pagetree_kit/config.py

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_PAYLOAD_DELIMITERS = ("--- Elementor Data ---", "--- Raw Elementor Data ---")

DEFAULT_ERROR_MARKERS = (
    "No Elementor data found",
    "does not use Elementor builder",
    "failed to parse JSON",
)

DEFAULT_TEXT_FIELDS: Mapping[str, tuple[str, ...]] = {
    "heading": ("title",),
    "text-editor": ("editor",),
    "html": ("html",),
    "button": ("text",),
}


@dataclass(frozen=True)
class EngineConfig:
    """Limits and field maps for the page tree engine.

    Immutable. Explicit. No magic defaults from environment.
    """

    max_nodes: int = 50_000
    max_bytes: int = 20_000_000
    step_budget: int = 1_000_000
    max_depth: int = 256
    chunk_max_bytes: int = 100_000
    payload_delimiters: tuple[str, ...] = DEFAULT_PAYLOAD_DELIMITERS
    error_markers: tuple[str, ...] = DEFAULT_ERROR_MARKERS
    text_fields: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_TEXT_FIELDS)
    )

    def __post_init__(self) -> None:
        for name in ("max_nodes", "max_bytes", "step_budget", "max_depth"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.chunk_max_bytes <= 2:
            raise ValueError("chunk_max_bytes must be > 2")


class _EngineConfigFile(BaseModel):
    max_nodes: int | None = None
    max_bytes: int | None = None
    step_budget: int | None = None
    max_depth: int | None = None
    chunk_max_bytes: int | None = None
    payload_delimiters: list[str] | None = None
    error_markers: list[str] | None = None
    text_fields: dict[str, list[str]] | None = None

    class Config:
        extra = "forbid"


def load_config(path: str | Path) -> EngineConfig:
    """Load an ``EngineConfig`` from a YAML file.

    Keys left out of the file keep their defaults. Unknown keys are rejected.
    """
    logger.info("Loading engine config from %s", path)
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    parsed = _EngineConfigFile(**data)
    values: dict = {
        key: value
        for key, value in parsed.model_dump().items()
        if value is not None
    }
    for key in ("payload_delimiters", "error_markers"):
        if key in values:
            values[key] = tuple(values[key])
    if "text_fields" in values:
        values["text_fields"] = {
            widget: tuple(fields) for widget, fields in values["text_fields"].items()
        }
    return EngineConfig(**values)
