"""Configuration management with Pydantic and YAML support."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class HabitsConfig(BaseModel):
    """Habit engine configuration."""

    reconcile_rollover: bool = Field(
        default=True,
        description="Clear stale completedToday flags when the calendar day changes",
    )


class TimerConfig(BaseModel):
    """Pomodoro runner configuration."""

    tick_seconds: float = Field(default=1.0, gt=0, description="Seconds between timer ticks")


class WebConfig(BaseModel):
    """Web API configuration."""

    enabled: bool = True
    host: str = Field(default="127.0.0.1", description="Bind to localhost only")
    port: int = Field(default=8765, ge=1024, le=65535)
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STUDY_PLANNER_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/study-planner")
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".local/state/study-planner")
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".config/study-planner")

    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # Key of the persisted document inside the key-value medium
    storage_key: str = Field(default="studyPlannerData", min_length=1)

    habits: HabitsConfig = Field(default_factory=HabitsConfig)
    timer: TimerConfig = Field(default_factory=TimerConfig)
    web: WebConfig = Field(default_factory=WebConfig)

    @property
    def db_path(self) -> Path:
        """Path to the SQLite key-value file."""
        return self.data_dir / "study_planner.db"

    @property
    def backup_dir(self) -> Path:
        """Default directory for exported backups."""
        return self.data_dir / "backups"

    @property
    def config_file(self) -> Path:
        """Path to YAML config file."""
        return self.config_dir / "config.yaml"

    def ensure_directories(self) -> None:
        """Create all required directories."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.config_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """Load configuration from YAML file, environment variables, and defaults.

        Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values
        """
        env_config = cls()
        config_path = config_path or env_config.config_file

        yaml_config: dict[str, Any] = {}
        if config_path.exists():
            with open(config_path) as f:
                yaml_config = yaml.safe_load(f) or {}

        # Init kwargs outrank env vars in pydantic-settings, so layer the
        # env-sourced values over the YAML data explicitly.
        merged = {**yaml_config, **env_config.model_dump(exclude_unset=True)}
        return cls(**merged)

    def save(self, config_path: Path | None = None) -> None:
        """Save current configuration to YAML file."""
        config_path = config_path or self.config_file
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(exclude_none=True)

        for key in ["data_dir", "log_dir", "config_dir"]:
            if key in data:
                data[key] = str(data[key])

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


@lru_cache
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config.load()
