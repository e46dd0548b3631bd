"""Default config generation, loading and validation."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TypedDict

CONFIG_ENV = "MSGTAP_CONFIG"

# Formats the saver can write to disk.
SAVE_FORMATS: frozenset[str] = frozenset({"raw", "json"})

# Formats a saved message can be shown in on stdout.
OUTPUT_FORMATS: frozenset[str] = frozenset({"raw", "json", "json-nobody"})

LOG_LEVELS: frozenset[str] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class MsgtapConfig(TypedDict, total=False):
    save_dir: str
    format: str
    include_body: bool
    log_level: str


class ConfigError(Exception):
    """Raised when a config file is unreadable or invalid."""


def default_config() -> MsgtapConfig:
    """Return the default configuration."""
    return {
        "save_dir": ".",
        "format": "raw",
        "include_body": True,
        "log_level": "WARNING",
    }


def serialize_config(config: MsgtapConfig) -> str:
    """Serialize config as sorted, pretty JSON with trailing newline."""
    return json.dumps(config, sort_keys=True, indent=2) + "\n"


def validate_config(config: dict) -> list[str]:
    """Return a list of problems with *config*; empty when valid."""
    errors: list[str] = []
    unknown = set(config) - set(MsgtapConfig.__annotations__)
    for key in sorted(unknown):
        errors.append(f"Unknown config key: '{key}'")

    if "save_dir" in config and not isinstance(config["save_dir"], str):
        errors.append("'save_dir' must be a string")
    if "format" in config and config["format"] not in SAVE_FORMATS:
        errors.append(
            f"Invalid format '{config['format']}'. Valid: {', '.join(sorted(SAVE_FORMATS))}"
        )
    if "include_body" in config and not isinstance(config["include_body"], bool):
        errors.append("'include_body' must be true or false")
    if "log_level" in config:
        level = config["log_level"]
        if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
            errors.append(
                f"Invalid log_level '{level}'. Valid: {', '.join(sorted(LOG_LEVELS))}"
            )
    return errors


def load_config(path: str | Path | None = None) -> MsgtapConfig:
    """Load *path* over the defaults; no path returns the defaults.

    Raises:
        ConfigError: If the file is missing, is not a JSON object, or fails
            validation.
    """
    config = default_config()
    if path is None:
        return config

    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")

    errors = validate_config(data)
    if errors:
        raise ConfigError("; ".join(errors))

    config.update(data)  # type: ignore[typeddict-item]
    return config


def configure_logging(level: str) -> None:
    """Configure root logging for CLI use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(levelname)s: %(message)s",
    )
