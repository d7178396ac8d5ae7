"""Tests for the tool registry and built-in definitions."""

from __future__ import annotations

import logging

import pytest
from jsonschema.exceptions import SchemaError

from sfbridge.core.errors import UnknownToolError
from sfbridge.tools.registry import (
    BUILTIN_TOOLS,
    ToolDefinition,
    ToolRegistry,
    custom_command_definition,
    default_registry,
    object_schema,
)


def test_default_registry_lists_builtin_and_custom_tools() -> None:
    """The default registry exposes every built-in tool plus the custom command tool."""
    registry = default_registry(custom_command_allowlist=("org",))

    assert registry.names() == [
        "sf_org_list",
        "sf_org_display",
        "sf_data_query",
        "sf_sobject_list",
        "sf_sobject_describe",
        "sf_project_deploy_start",
        "sf_project_retrieve_start",
        "sf_custom_command",
    ]
    assert len(registry) == len(BUILTIN_TOOLS) + 1
    assert "sf_data_query" in registry


def test_custom_commands_can_be_disabled() -> None:
    """Disabling custom commands removes the pass-through tool."""
    registry = default_registry(custom_commands_enabled=False)

    assert "sf_custom_command" not in registry
    with pytest.raises(UnknownToolError):
        registry.get("sf_custom_command")


def test_unrestricted_custom_command_logs_a_warning(caplog: pytest.LogCaptureFixture) -> None:
    """Enabling the custom command without an allowlist is called out in the logs."""
    with caplog.at_level(logging.WARNING, logger="sfbridge.tools.registry"):
        default_registry()

    assert "without an allowlist" in caplog.text


def test_custom_command_definition_parses_prefixes() -> None:
    """Allowlist entries are split into subcommand token prefixes."""
    definition = custom_command_definition(["org", " data  query ", "  "])

    assert definition.allowed_prefixes == (("org",), ("data", "query"))
    assert definition.json_output is False
    assert definition.raw_command_field == "command"
    assert "allowed subcommands: org, data query" in definition.description


def test_data_query_schema_requires_query() -> None:
    """The SOQL tool declares query as its only required field."""
    definition = default_registry().get("sf_data_query")

    assert definition.command == ("data", "query")
    assert definition.input_schema["required"] == ["query"]
    assert definition.input_schema["additionalProperties"] is False
    assert set(definition.input_schema["properties"]) == {
        "query", "targetOrg", "useToolingApi", "bulk", "wait", "resultFormat",
    }


def test_org_list_takes_no_required_arguments() -> None:
    """Listing orgs needs no arguments at all."""
    definition = default_registry().get("sf_org_list")

    assert "required" not in definition.input_schema
    assert set(definition.input_schema["properties"]) == {"all", "clean", "skipConnectionStatus"}


def test_register_rejects_duplicates() -> None:
    """Tool names are unique within a registry."""
    registry = ToolRegistry.from_definitions(BUILTIN_TOOLS)

    with pytest.raises(ValueError, match="already registered"):
        registry.register(BUILTIN_TOOLS[0])


def test_definition_requires_command_tokens() -> None:
    """A definition must produce some command tokens."""
    with pytest.raises(ValueError, match="must declare command tokens"):
        ToolDefinition(name="sf_empty", description="", input_schema=object_schema({}))


def test_definition_rejects_invalid_schema() -> None:
    """Input schemas are checked against the JSON Schema meta-schema."""
    with pytest.raises(SchemaError):
        ToolDefinition(
            name="sf_broken",
            description="",
            command=("org", "list"),
            input_schema={"type": "object", "properties": {"x": {"type": "nope"}}},
        )
