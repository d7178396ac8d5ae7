"""Tests for settings resolution."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

from sfbridge.core.config import (
    DEFAULT_CLI_ENV,
    DEFAULT_MAX_OUTPUT_BYTES,
    DEFAULT_TIMEOUT_SECONDS,
    BridgeSettings,
    configure_logging,
    load_settings,
)
from sfbridge.core.errors import ExposureConfigurationError


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep the user's real configuration file out of the tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


def test_defaults_without_environment() -> None:
    """An empty environment yields the documented defaults."""
    settings = load_settings({})

    assert settings.sf_executable == "sf"
    assert settings.timeout_seconds == DEFAULT_TIMEOUT_SECONDS
    assert settings.max_output_bytes == DEFAULT_MAX_OUTPUT_BYTES
    assert settings.port == 3000
    assert settings.custom_commands_enabled is True
    assert settings.custom_command_allowlist == ()
    assert settings.cli_env == DEFAULT_CLI_ENV


def test_environment_variables_are_applied() -> None:
    """Every SFBRIDGE_* variable maps onto its settings field."""
    settings = load_settings(
        {
            "SFBRIDGE_SF_BIN": "/opt/sf/bin/sf",
            "SFBRIDGE_TIMEOUT": "12.5",
            "SFBRIDGE_MAX_OUTPUT_BYTES": "2048",
            "MCP_PORT": "8080",
            "SFBRIDGE_ENV": "production",
            "SFBRIDGE_LOG_LEVEL": "debug",
            "SFBRIDGE_CUSTOM_COMMANDS": "false",
            "SFBRIDGE_CUSTOM_COMMAND_ALLOWLIST": "org, data query,,",
        },
    )

    assert settings.sf_executable == "/opt/sf/bin/sf"
    assert settings.timeout_seconds == 12.5
    assert settings.max_output_bytes == 2048
    assert settings.port == 8080
    assert settings.environment == "production"
    assert settings.log_level == "DEBUG"
    assert settings.custom_commands_enabled is False
    assert settings.custom_command_allowlist == ("org", "data query")


def test_sfbridge_port_wins_over_mcp_port() -> None:
    """The project specific variable takes precedence over MCP_PORT."""
    settings = load_settings({"SFBRIDGE_PORT": "9000", "MCP_PORT": "8080"})

    assert settings.port == 9000


def test_precedence_file_then_environment_then_overrides(tmp_path: Path) -> None:
    """Overrides beat the environment, which beats the configuration file."""
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps({"timeout_seconds": 10, "port": 4000, "environment": "file"}),
        encoding="utf-8",
    )

    settings = load_settings(
        {"SFBRIDGE_CONFIG": str(config_path), "SFBRIDGE_PORT": "5000"},
        overrides={"port": 6000, "host": None},
    )

    assert settings.timeout_seconds == 10
    assert settings.environment == "file"
    assert settings.port == 6000
    assert settings.host == "0.0.0.0"


def test_default_config_file_is_read_from_home(isolated_home: Path) -> None:
    """Without SFBRIDGE_CONFIG the per-user file is consulted when present."""
    config_dir = isolated_home / ".config" / "sfbridge"
    config_dir.mkdir(parents=True)
    (config_dir / "config.json").write_text(json.dumps({"sf_executable": "sfdx"}), encoding="utf-8")

    settings = load_settings({})

    assert settings.sf_executable == "sfdx"


def test_missing_explicit_config_file_is_rejected(tmp_path: Path) -> None:
    """Pointing SFBRIDGE_CONFIG at a missing file is a configuration error."""
    with pytest.raises(ExposureConfigurationError, match="does not exist"):
        load_settings({"SFBRIDGE_CONFIG": str(tmp_path / "absent.json")})


def test_non_object_config_file_is_rejected(tmp_path: Path) -> None:
    """The configuration file must contain a JSON object."""
    config_path = tmp_path / "config.json"
    config_path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(ExposureConfigurationError, match="must be a JSON object"):
        load_settings({"SFBRIDGE_CONFIG": str(config_path)})


@pytest.mark.parametrize(
    "environment",
    [
        {"SFBRIDGE_TIMEOUT": "0"},
        {"SFBRIDGE_TIMEOUT": "soon"},
        {"SFBRIDGE_MAX_OUTPUT_BYTES": "-1"},
        {"SFBRIDGE_PORT": "70000"},
        {"SFBRIDGE_LOG_LEVEL": "chatty"},
    ],
)
def test_invalid_values_raise_configuration_error(environment: dict[str, str]) -> None:
    """Invalid values surface as ExposureConfigurationError."""
    with pytest.raises(ExposureConfigurationError, match="Invalid sfbridge configuration"):
        load_settings(environment)


def test_settings_are_frozen() -> None:
    """Settings are resolved once and never mutated afterwards."""
    settings = BridgeSettings()

    with pytest.raises(ValueError):
        settings.port = 1  # type: ignore[misc]


def test_configure_logging_targets_stderr(monkeypatch: pytest.MonkeyPatch) -> None:
    """Log records go to stderr so the stdio transport owns stdout."""
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", list(root.handlers))
    monkeypatch.setattr(root, "level", root.level)

    configure_logging("WARNING")

    assert root.level == logging.WARNING
    handler = root.handlers[0]
    assert isinstance(handler, logging.StreamHandler)
    assert handler.stream is sys.stderr


def test_config_file_cli_env_extends_suppression_flags(tmp_path: Path) -> None:
    """Variables from the config file are added on top of the default CLI flags."""
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"cli_env": {"SF_TARGET_ORG": "dev"}}), encoding="utf-8")

    settings = load_settings({"SFBRIDGE_CONFIG": str(config_path)})

    assert settings.cli_env["SF_TARGET_ORG"] == "dev"
    assert settings.cli_env["SF_AUTOUPDATE_DISABLE"] == "true"
    assert settings.cli_env["SF_DISABLE_LOG_FILE"] == "true"
    assert DEFAULT_CLI_ENV.items() <= settings.cli_env.items()


def test_config_file_may_change_a_default_cli_flag(tmp_path: Path) -> None:
    """An explicit value for a default flag wins while the others stay in place."""
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"cli_env": {"FORCE_COLOR": "1"}}), encoding="utf-8")

    settings = load_settings({"SFBRIDGE_CONFIG": str(config_path)})

    assert settings.cli_env["FORCE_COLOR"] == "1"
    assert settings.cli_env["SFDX_DISABLE_AUTOUPDATE"] == "true"
