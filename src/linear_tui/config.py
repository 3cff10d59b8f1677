"""Configuration management for linear-tui."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

CONFIG_DIR_NAME = ".linear-tui"


def get_config_dir(home: Path | None = None) -> Path:
    """Get the ~/.linear-tui directory (not created)."""
    return (home or Path.home()) / CONFIG_DIR_NAME


class Config(BaseModel):
    """Dashboard configuration."""

    endpoint: str = Field(default="https://api.linear.app/graphql", description="Linear GraphQL endpoint")
    page_size: int = Field(default=20, ge=1, le=250, description="Issues per page")
    timeout: float = Field(default=30.0, gt=0, description="HTTP request timeout in seconds")
    max_retries: int = Field(default=3, ge=1, description="Attempts per request for transient failures")
    project_overlay_limit: int = Field(default=50, ge=1, description="Projects listed in the projects overlay")
    cycle_overlay_limit: int = Field(default=10, ge=1, description="Cycles listed in the cycles overlay")
    max_in_flight: int = Field(default=8, ge=1, description="Capacity of the fetch completion queue")
    tick_interval: float = Field(default=0.2, gt=0, description="Render tick in seconds (spinner speed)")
    profile: str = Field(default="default", description="Credential profile name")
    log_file: Path = Field(
        default_factory=lambda: get_config_dir() / "linear-tui.log",
        description="Log file; the terminal belongs to the dashboard",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO", description="Log level")

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """Load configuration from file or use defaults."""
        if config_path is None:
            config_path = get_config_dir() / "config.yaml"

        if config_path.exists():
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
            return cls.model_validate(data)

        return cls()

    def save(self, config_path: Path) -> None:
        """Save configuration to file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with config_path.open("w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)
