"""Configuration loading and validation for the Orbital coordination core."""

from __future__ import annotations

from copy import deepcopy
import logging
import os
from pathlib import Path
from typing import Any

from platformdirs import user_config_path, user_state_path
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigValidationError

import tomllib  # stdlib since Python 3.11 (project requires >=3.11)

LOGGER = logging.getLogger(__name__)

APP_NAME = "orbital"

CONFIG_DIR = user_config_path(APP_NAME, appauthor=False)
CONFIG_PATH = CONFIG_DIR / "config.toml"
STATE_DIR = user_state_path(APP_NAME, appauthor=False)

DEBUG_ENV_VAR = "ORBITAL_DEBUG"
VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
TRUTHY = {"1", "true", "yes", "on"}


class CoreConfig(BaseModel):
    """Diagnostic mode and user motion preference."""

    debug: bool = False
    motion: bool = True


class TelemetryConfig(BaseModel):
    """Telemetry queue sizing and default record context."""

    capacity: int = Field(default=50, ge=1, le=10_000)
    context: str = "/"

    @field_validator("context", mode="before")
    @classmethod
    def _validate_context(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("context must be a string.")
        return value.strip() or "/"


class LoggingConfig(BaseModel):
    """Logging behavior and output destinations."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = str(STATE_DIR / "orbital.log")

    @field_validator("level", mode="before")
    @classmethod
    def _validate_level(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Logging level must be a string.")
        normalized = value.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"Unsupported log level {normalized!r}.")
        return normalized

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _validate_log_file_path(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("log_file_path must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("log_file_path must not be empty.")
        return normalized


class PersistenceConfig(BaseModel):
    """Persistent key-value store location and the state keys it mirrors."""

    enabled: bool = True
    path: str = str(STATE_DIR / "storage.json")
    prefix: str = "orbital:persist:"
    keys: list[str] = Field(default_factory=lambda: ["theme", "menu:open"])

    @field_validator("path", mode="before")
    @classmethod
    def _validate_path_string(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Path value must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("Path value must not be empty.")
        return normalized

    @field_validator("keys", mode="before")
    @classmethod
    def _validate_keys(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ValueError("keys must be a list of state keys.")
        normalized: list[str] = []
        for item in value:
            if not isinstance(item, str):
                raise ValueError("Each persisted key must be a string.")
            candidate = item.strip()
            if not candidate:
                raise ValueError("Persisted keys must not be empty.")
            if candidate not in normalized:
                normalized.append(candidate)
        return normalized


class Config(BaseModel):
    """Root configuration model for all sections."""

    core: CoreConfig = CoreConfig()
    telemetry: TelemetryConfig = TelemetryConfig()
    logging: LoggingConfig = LoggingConfig()
    persistence: PersistenceConfig = PersistenceConfig()


DEFAULT_CONFIG: dict[str, dict[str, Any]] = Config().model_dump()


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Ensure that the config directory exists and return its path."""
    directory = config_dir or CONFIG_DIR
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning("Unable to create config directory %s: %s", directory, exc)
    return directory


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override values onto base values."""
    merged: dict[str, Any] = deepcopy(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _safe_default_config() -> dict[str, dict[str, Any]]:
    """Return a deep copy of validated default config data."""
    return deepcopy(DEFAULT_CONFIG)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    flag = os.environ.get(DEBUG_ENV_VAR)
    if flag is not None and flag.strip().lower() in TRUTHY:
        core = data.get("core")
        if isinstance(core, dict):
            core["debug"] = True
    return data


def _validate_config(raw: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Validate merged config and fallback to safe defaults when possible."""
    try:
        config = Config.model_validate(raw)
        return config.model_dump()
    except ValidationError as exc:
        LOGGER.warning("Configuration validation failed, using safe defaults: %s", exc)
        return _safe_default_config()
    except Exception as exc:  # noqa: BLE001 - unexpected model construction failure.
        raise ConfigValidationError(f"Unable to validate configuration: {exc}") from exc


def resolve_config(
    overrides: dict[str, Any] | None = None,
) -> dict[str, dict[str, Any]]:
    """Merge programmatic overrides onto defaults; invalid values raise."""
    try:
        config = Config.model_validate(_deep_merge(DEFAULT_CONFIG, overrides or {}))
    except ValidationError as exc:
        raise ConfigValidationError(f"Invalid configuration: {exc}") from exc
    return config.model_dump()


def load_config(config_path: Path | None = None) -> dict[str, dict[str, Any]]:
    """
    Load configuration from TOML, merge with defaults, and validate.

    The optional ``config_path`` argument is intended for tests and tooling.
    Setting ``ORBITAL_DEBUG=1`` in the environment turns diagnostic mode on.
    """
    target_path = config_path or CONFIG_PATH
    ensure_config_dir(target_path.parent)

    raw_data: dict[str, Any] = {}
    if target_path.exists():
        try:
            raw_data = tomllib.loads(target_path.read_text(encoding="utf-8"))
        except (
            Exception
        ) as exc:  # noqa: BLE001 - we must not crash on invalid user config.
            LOGGER.warning("Failed to parse config at %s: %s", target_path, exc)
            raw_data = {}

    merged = (
        _deep_merge(DEFAULT_CONFIG, raw_data)
        if isinstance(raw_data, dict)
        else _safe_default_config()
    )
    return _validate_config(_apply_env_overrides(merged))
