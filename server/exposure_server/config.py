"""Server configuration.

Loads from config.yaml if present, with environment variable overrides.
Environment variables use the pattern: EXPOSURE_<SECTION>_<KEY> (uppercase).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    env: str = "dev"  # "dev" or "prod"


@dataclass
class StorageConfig:
    backend: str = "file"  # "file" or "memory"
    base_dir: str = "data/records"


@dataclass
class SyncConfig:
    # Query fan-out around the requested region, see MessageService.
    extension: int = 0
    precision_count: int = 1
    report_retention_days: int = 14


@dataclass
class LoggingConfig:
    level: str = "info"
    format: str = "console"  # "console" or "json"


@dataclass
class AppConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _apply_env_overrides(config: AppConfig) -> None:
    """Override config values from environment variables."""
    mapping = {
        "EXPOSURE_SERVER_HOST": lambda v: setattr(config.server, "host", v),
        "EXPOSURE_SERVER_PORT": lambda v: setattr(config.server, "port", int(v)),
        "EXPOSURE_SERVER_ENV": lambda v: setattr(config.server, "env", v),
        "EXPOSURE_STORAGE_BACKEND": lambda v: setattr(config.storage, "backend", v),
        "EXPOSURE_STORAGE_BASE_DIR": lambda v: setattr(config.storage, "base_dir", v),
        "EXPOSURE_SYNC_EXTENSION": lambda v: setattr(config.sync, "extension", int(v)),
        "EXPOSURE_SYNC_PRECISION_COUNT": lambda v: setattr(config.sync, "precision_count", int(v)),
        "EXPOSURE_SYNC_REPORT_RETENTION_DAYS": lambda v: setattr(config.sync, "report_retention_days", int(v)),
        "EXPOSURE_LOG_LEVEL": lambda v: setattr(config.logging, "level", v),
        "EXPOSURE_LOG_FORMAT": lambda v: setattr(config.logging, "format", v),
    }
    for env_key, setter in mapping.items():
        val = os.environ.get(env_key)
        if val is not None:
            setter(val)


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load configuration from YAML file + environment overrides."""
    config = AppConfig()

    # Try to load YAML
    if config_path is None:
        config_path = Path(os.environ.get("EXPOSURE_CONFIG", "config.yaml"))
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

        for section in fields(config):
            values = raw.get(section.name) or {}
            target = getattr(config, section.name)
            for k, v in values.items():
                if hasattr(target, k):
                    setattr(target, k, v)

    # Environment overrides always win
    _apply_env_overrides(config)
    return config
