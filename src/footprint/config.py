"""
Configuration loading for footprint.

Reads ``footprint.toml``:

    [footprints.models.options]
    default_limit = 100

    [database]
    backend = "sqlite"          # or "memory"
    path = ".footprint/data.db"

    [logging]
    level = "INFO"
    dir = ".footprint/logs"

    [models.User]
    collection = "users"
    fields = { name = "str", roles = { ref = "Role", cardinality = "array" } }

Environment variables FOOTPRINT_DEFAULT_LIMIT, FOOTPRINT_DB_PATH and
FOOTPRINT_LOG_LEVEL override the file.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from footprint.errors import ConfigError
from footprint.specs.model import ModelSpec, field_from_shorthand

DEFAULT_CONFIG_PATH = Path("footprint.toml")


@dataclass
class DatabaseConfig:
    """Document store configuration."""

    backend: str = "sqlite"  # "sqlite" | "memory"
    path: Path = Path(".footprint/data.db")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    dir: Path | None = None  # JSONL file logging when set


@dataclass
class FootprintConfig:
    """Complete footprint configuration."""

    default_limit: int | None = None
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    models: list[ModelSpec] = field(default_factory=list)


def _parse_models(data: dict[str, Any]) -> list[ModelSpec]:
    models = []
    for name, model_data in data.items():
        if not isinstance(model_data, dict):
            raise ConfigError(f"[models.{name}] must be a table")
        fields = [
            field_from_shorthand(field_name, value)
            for field_name, value in model_data.get("fields", {}).items()
        ]
        models.append(
            ModelSpec(name=name, collection=model_data.get("collection"), fields=fields)
        )
    return models


def _parse_limit(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"default_limit must be an integer, got {value!r}") from None
    if limit < 1:
        raise ConfigError(f"default_limit must be positive, got {limit}")
    return limit


def load_config(path: Path | None = None) -> FootprintConfig:
    """
    Load configuration from a TOML file.

    A missing file yields the defaults (plus environment overrides).

    Raises:
        ConfigError: If the file cannot be parsed or holds invalid values
    """
    path = path or DEFAULT_CONFIG_PATH
    data: dict[str, Any] = {}
    if path.exists():
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    options = data.get("footprints", {}).get("models", {}).get("options", {})
    database_data = data.get("database", {})
    logging_data = data.get("logging", {})

    backend = database_data.get("backend", "sqlite")
    if backend not in ("sqlite", "memory"):
        raise ConfigError(f"Unknown database backend: {backend}")

    log_dir = logging_data.get("dir")
    try:
        models = _parse_models(data.get("models", {}))
    except (ValidationError, ValueError) as e:
        raise ConfigError(f"Invalid model definition in {path}: {e}") from e

    config = FootprintConfig(
        default_limit=_parse_limit(options.get("default_limit")),
        database=DatabaseConfig(
            backend=backend,
            path=Path(database_data.get("path", ".footprint/data.db")),
        ),
        logging=LoggingConfig(
            level=str(logging_data.get("level", "INFO")).upper(),
            dir=Path(log_dir) if log_dir else None,
        ),
        models=models,
    )

    if "FOOTPRINT_DEFAULT_LIMIT" in os.environ:
        config.default_limit = _parse_limit(os.environ["FOOTPRINT_DEFAULT_LIMIT"])
    if os.environ.get("FOOTPRINT_DB_PATH"):
        config.database.path = Path(os.environ["FOOTPRINT_DB_PATH"])
    if os.environ.get("FOOTPRINT_LOG_LEVEL"):
        config.logging.level = os.environ["FOOTPRINT_LOG_LEVEL"].upper()

    return config
