"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from linear_tui.config import Config, get_config_dir


class TestConfig:
    """Test Config defaults, loading and saving."""

    def test_defaults(self) -> None:
        """Defaults match the dashboard's documented behavior."""
        config = Config()
        assert config.page_size == 20
        assert config.project_overlay_limit == 50
        assert config.cycle_overlay_limit == 10
        assert config.profile == "default"
        assert config.log_file.name == "linear-tui.log"

    def test_config_dir(self, tmp_path: Path) -> None:
        """The config directory lives under the home directory."""
        assert get_config_dir(tmp_path) == tmp_path / ".linear-tui"

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        """A missing config file is not an error."""
        assert Config.load(tmp_path / "nope.yaml") == Config()

    def test_load_yaml(self, tmp_path: Path) -> None:
        """Values from YAML override the defaults."""
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"page_size": 50, "profile": "work", "log_level": "DEBUG"}))
        config = Config.load(path)
        assert config.page_size == 50
        assert config.profile == "work"
        assert config.log_level == "DEBUG"

    def test_empty_yaml(self, tmp_path: Path) -> None:
        """An empty file loads as defaults."""
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert Config.load(path).page_size == 20

    def test_save_round_trip(self, tmp_path: Path) -> None:
        """Saved configuration loads back unchanged."""
        path = tmp_path / "nested" / "config.yaml"
        config = Config(page_size=30, log_file=tmp_path / "app.log")
        config.save(path)
        assert Config.load(path) == config

    @pytest.mark.parametrize("data", [{"page_size": 0}, {"timeout": -1}, {"log_level": "LOUD"}])
    def test_invalid_values(self, tmp_path: Path, data: dict) -> None:
        """Out-of-range values are rejected."""
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump(data))
        with pytest.raises(ValidationError):
            Config.load(path)
