from pathlib import Path

import pytest
from pydantic import ValidationError

from pagetree_kit.config import DEFAULT_TEXT_FIELDS, EngineConfig, load_config


class TestEngineConfig:
    def test_defaults(self) -> None:
        config = EngineConfig()

        assert config.max_nodes == 50_000
        assert config.text_fields == DEFAULT_TEXT_FIELDS
        assert "--- Elementor Data ---" in config.payload_delimiters

    @pytest.mark.parametrize("field", ["max_nodes", "max_bytes", "step_budget", "max_depth"])
    def test_limits_must_be_positive(self, field: str) -> None:
        with pytest.raises(ValueError, match=field):
            EngineConfig(**{field: 0})

    def test_chunk_size_floor(self) -> None:
        with pytest.raises(ValueError):
            EngineConfig(chunk_max_bytes=2)


class TestLoadConfig:
    def test_partial_file_keeps_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "engine.yaml"
        path.write_text(
            """max_nodes: 100
payload_delimiters:
  - "=== PAGE ==="
text_fields:
  heading: [title, subtitle]
"""
        )

        config = load_config(path)

        assert config.max_nodes == 100
        assert config.max_depth == EngineConfig().max_depth
        assert config.payload_delimiters == ("=== PAGE ===",)
        assert config.text_fields == {"heading": ("title", "subtitle")}

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_config(path) == EngineConfig()

    def test_unknown_keys_are_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("max_nodez: 5\n")

        with pytest.raises(ValidationError):
            load_config(path)

    def test_invalid_values_are_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("max_depth: 0\n")

        with pytest.raises(ValueError):
            load_config(path)
