"""Process-wide settings resolved once at startup."""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, cast
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ExposureConfigurationError

DEFAULT_TIMEOUT_SECONDS = 300.0
DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024

# Keep the wrapped CLI quiet and non-interactive when it runs under the server.
DEFAULT_CLI_ENV: dict[str, str] = {
    "SF_AUTOUPDATE_DISABLE": "true",
    "SF_DISABLE_LOG_FILE": "true",
    "SFDX_DISABLE_AUTOUPDATE": "true",
    "SF_SKIP_NEW_VERSION_CHECK": "true",
    "FORCE_COLOR": "0",
}

_ENVIRONMENT_FIELDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("sf_executable", ("SFBRIDGE_SF_BIN",)),
    ("timeout_seconds", ("SFBRIDGE_TIMEOUT",)),
    ("max_output_bytes", ("SFBRIDGE_MAX_OUTPUT_BYTES",)),
    ("host", ("SFBRIDGE_HOST",)),
    ("port", ("SFBRIDGE_PORT", "MCP_PORT")),
    ("drain_timeout_seconds", ("SFBRIDGE_DRAIN_TIMEOUT",)),
    ("environment", ("SFBRIDGE_ENV",)),
    ("log_level", ("SFBRIDGE_LOG_LEVEL",)),
    ("custom_commands_enabled", ("SFBRIDGE_CUSTOM_COMMANDS",)),
    ("custom_command_allowlist", ("SFBRIDGE_CUSTOM_COMMAND_ALLOWLIST",)),
)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _default_cli_env() -> dict[str, str]:
    return dict(DEFAULT_CLI_ENV)


class BridgeSettings(BaseModel):
    """Configuration shared by every transport and the executor."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    sf_executable: str = Field(default="sf", min_length=1)
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    max_output_bytes: int = Field(default=DEFAULT_MAX_OUTPUT_BYTES, gt=0)
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=0, le=65535)
    drain_timeout_seconds: float = Field(default=30.0, ge=0)
    environment: str | None = None
    log_level: str = "INFO"
    custom_commands_enabled: bool = True
    custom_command_allowlist: tuple[str, ...] = ()
    cli_env: dict[str, str] = Field(default_factory=_default_cli_env)

    @field_validator("custom_command_allowlist", mode="before")
    @classmethod
    def _split_allowlist(cls, value: Any) -> Any:
        if isinstance(value, str):
            return tuple(item.strip() for item in value.split(",") if item.strip())
        return value

    @field_validator("cli_env", mode="before")
    @classmethod
    def _merge_cli_env(cls, value: Any) -> Any:
        # Configured variables extend the suppression flags, never replace them.
        if isinstance(value, Mapping):
            return {**DEFAULT_CLI_ENV, **cast("Mapping[str, Any]", value)}
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            message = f"unknown log level: {value}"
            raise ValueError(message)
        return level


def load_settings(
    env: Mapping[str, str] | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
) -> BridgeSettings:
    """Resolve settings from overrides, the environment, and the config file."""
    environment = os.environ if env is None else env
    payload: dict[str, Any] = dict(_load_config_file(environment))

    for field_name, variable_names in _ENVIRONMENT_FIELDS:
        for variable in variable_names:
            value = environment.get(variable)
            if value:
                payload[field_name] = value
                break

    if overrides:
        payload.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return BridgeSettings.model_validate(payload)
    except ValidationError as error:
        message = f"Invalid sfbridge configuration: {error}"
        raise ExposureConfigurationError(message) from error


def _load_config_file(environment: Mapping[str, str]) -> Mapping[str, Any]:
    config_env = environment.get("SFBRIDGE_CONFIG")
    config_path = (
        Path(config_env).expanduser()
        if config_env
        else Path.home() / ".config" / "sfbridge" / "config.json"
    )

    if not config_path.exists():
        if config_env:
            message = f"Configuration file {config_path} does not exist"
            raise ExposureConfigurationError(message)
        return {}

    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as error:
        message = f"Failed to read configuration from {config_path}: {error}"
        raise ExposureConfigurationError(message) from error

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as error:
        message = f"Failed to parse configuration from {config_path}: {error}"
        raise ExposureConfigurationError(message) from error

    if not isinstance(payload, Mapping):
        message = f"Configuration at {config_path} must be a JSON object"
        raise ExposureConfigurationError(message)

    return cast("Mapping[str, Any]", payload)


def configure_logging(level: str = "INFO") -> None:
    """Route log records to stderr; stdout is reserved for the stdio transport."""
    logging.basicConfig(stream=sys.stderr, level=level, format=_LOG_FORMAT, force=True)


__all__ = [
    "DEFAULT_CLI_ENV",
    "DEFAULT_MAX_OUTPUT_BYTES",
    "DEFAULT_TIMEOUT_SECONDS",
    "BridgeSettings",
    "configure_logging",
    "load_settings",
]
