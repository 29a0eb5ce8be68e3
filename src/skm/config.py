"""Configuration models and loading logic."""

from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from skm.errors import ConfigurationError
from skm.models import AutomationLevel

DEFAULT_SETTINGS_FILE = Path("~/.config/skm/settings.yaml")
SETTINGS_FILE_ENV = "SKM_SETTINGS_FILE"


class PriorityWeightsConfig(BaseModel):
    """Weights of the priority score terms."""

    needs_human: float = 40.0
    risk: float = 25.0
    staleness: float = 15.0
    impact: float = 15.0
    confidence: float = 10.0


class ScanConfig(BaseModel):
    """Directory walk and per-project fan-out settings."""

    scan_depth: int = Field(default=5, ge=1)
    max_projects: int | None = Field(default=None, ge=1)
    workers: int = Field(default=1, ge=1)
    timeout_sec: float | None = Field(default=None, gt=0.0)
    watch_interval_secs: int = Field(default=5, ge=1)
    git_timeout_sec: float = Field(default=10.0, gt=0.0)


class AutomationConfig(BaseModel):
    """Automation preferences surfaced to agents and operators."""

    automation_level: AutomationLevel = "L1"
    dry_run_default: bool = True
    agent_priority: list[str] = Field(default_factory=lambda: ["claude", "cursor", "nvim", "bash"])
    default_editor: str = "nvim"


class CacheConfig(BaseModel):
    """Status cache freshness window."""

    freshness_minutes: float = Field(default=5.0, gt=0.0)


class LoggingConfig(BaseModel):
    """Log verbosity and optional log file."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_file: Path | None = None


class AppSettings(BaseSettings):
    """Top-level application settings."""

    _yaml_file_override: ClassVar[Path | None] = None

    weights: PriorityWeightsConfig = Field(default_factory=PriorityWeightsConfig)
    attention_threshold: float = 50.0
    scan: ScanConfig = Field(default_factory=ScanConfig)
    automation: AutomationConfig = Field(default_factory=AutomationConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="SKM_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Use YAML defaults while allowing env vars to override values."""

        yaml_file = resolve_settings_file(cls._yaml_file_override)
        yaml_settings = YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            yaml_settings,
            file_secret_settings,
        )

    def as_dict(self) -> dict[str, object]:
        """Return settings as a standard nested dictionary."""

        return self.model_dump(mode="json")


def resolve_settings_file(override: Path | None = None) -> Path:
    """Resolve settings file from explicit override, env var, or the per-user default."""

    chosen = override
    if chosen is None:
        env_value = os.getenv(SETTINGS_FILE_ENV)
        if env_value:
            chosen = Path(env_value)
    if chosen is None:
        chosen = DEFAULT_SETTINGS_FILE

    chosen = chosen.expanduser()
    if not chosen.is_absolute():
        chosen = (Path.cwd() / chosen).resolve()
    return chosen


def load_settings(config_file: Path | None = None) -> AppSettings:
    """Load settings with YAML defaults and environment variable overrides.

    A missing settings file yields defaults; a malformed one is fatal.
    """

    settings_file = resolve_settings_file(config_file)
    AppSettings._yaml_file_override = settings_file
    try:
        return AppSettings()
    except (yaml.YAMLError, ValidationError, TypeError) as exc:
        raise ConfigurationError(f"Invalid settings file {settings_file}: {exc}") from exc
    finally:
        AppSettings._yaml_file_override = None
