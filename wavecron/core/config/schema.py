"""wavecron configuration: nested sections, YAML file, env override."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from loguru import logger
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

_DEFAULT_CONFIG_FILES = (
    Path("wavecron.yaml"),
    Path("config.yaml"),
    Path("~/.wavecron/config.yaml"),
)


# ════════════════════════════════════════════════════════════
# SUB-CONFIGS (nested BaseModel)
# ════════════════════════════════════════════════════════════


class StorageConfig(BaseModel):
    """Job definitions and run histories (one JSON file each)."""

    path: str = "~/.wavecron/cron-jobs"
    max_runs: int = 100


class SchedulerConfig(BaseModel):
    enabled: bool = True
    shutdown_timeout_s: float = 10.0


class ShellConfig(BaseModel):
    default_timeout_s: int = 300
    extra_path: list[str] = Field(default_factory=list)


class ApiConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8400


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: str | None = None
    rotation: str = "10 MB"


# ════════════════════════════════════════════════════════════
# ROOT CONFIG (BaseSettings — env + .env support)
# ════════════════════════════════════════════════════════════


class Config(BaseSettings):
    """
    Root configuration.

    Priority: env vars > .env > YAML (init kwargs) > defaults

    Env override examples:
        WAVECRON_STORAGE__PATH=/var/lib/wavecron
        WAVECRON_SCHEDULER__SHUTDOWN_TIMEOUT_S=30
        WAVECRON_LOGGING__LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="WAVECRON_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    storage: StorageConfig = Field(default_factory=StorageConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    shell: ShellConfig = Field(default_factory=ShellConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML arrives as init kwargs; env must win over it
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @classmethod
    def from_yaml(cls, path: str | Path | None = None) -> Config:
        """Build the config from a YAML file, with env vars layered on top.

        File lookup: ``path``, then ``$WAVECRON_CONFIG``, then the first of
        ``./wavecron.yaml``, ``./config.yaml`` and ``~/.wavecron/config.yaml``
        that exists. No file at all means defaults + env.
        """
        source = cls._find_config_file(path)
        if source is None:
            return cls()

        data = yaml.safe_load(source.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{source}: top level must be a mapping, got {type(data).__name__}")
        logger.debug(f"Loaded config from {source}")
        return cls(**data)

    @staticmethod
    def _find_config_file(path: str | Path | None) -> Path | None:
        explicit = path or os.environ.get("WAVECRON_CONFIG")
        if explicit:
            candidate = Path(explicit).expanduser()
            return candidate if candidate.is_file() else None
        for candidate in _DEFAULT_CONFIG_FILES:
            candidate = candidate.expanduser()
            if candidate.is_file():
                return candidate
        return None

    @property
    def storage_path(self) -> Path:
        return Path(self.storage.path).expanduser()
