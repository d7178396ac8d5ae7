"""Declarative definitions of the Salesforce CLI operations exposed as tools."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from jsonschema import Draft202012Validator

from sfbridge.core.errors import UnknownToolError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping, Sequence

logger = logging.getLogger(__name__)

TARGET_ORG_PROPERTY: dict[str, Any] = {
    "type": "string",
    "minLength": 1,
    "description": "Username or alias of the target org",
}
WAIT_PROPERTY: dict[str, Any] = {
    "type": "integer",
    "minimum": 0,
    "description": "Number of minutes to wait for the command to complete",
}
TEST_LEVELS = ("NoTestRun", "RunSpecifiedTests", "RunLocalTests", "RunAllTestsInOrg")


def object_schema(
    properties: Mapping[str, Mapping[str, Any]],
    *,
    required: Sequence[str] = (),
) -> dict[str, Any]:
    """Return a closed JSON Schema object accepting *properties*."""
    schema: dict[str, Any] = {
        "type": "object",
        "properties": {name: dict(value) for name, value in properties.items()},
        "additionalProperties": False,
    }
    if required:
        schema["required"] = list(required)
    return schema


def _string_list(description: str) -> dict[str, Any]:
    return {
        "type": "array",
        "items": {"type": "string", "minLength": 1},
        "minItems": 1,
        "description": description,
    }


@dataclass(frozen=True)
class ToolDefinition:
    """Describe how a tool maps onto an ``sf`` command.

    ``command`` holds the subcommand tokens placed after the executable.
    Tools with ``raw_command_field`` append the caller's text for that field
    instead of building flags; ``allowed_prefixes`` optionally restricts which
    subcommands that text may start with.
    """

    name: str
    description: str
    input_schema: dict[str, Any]
    command: tuple[str, ...] = ()
    json_output: bool = True
    read_only: bool = False
    raw_command_field: str | None = None
    allowed_prefixes: tuple[tuple[str, ...], ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            message = "tool definitions require a name"
            raise ValueError(message)
        if self.raw_command_field is None and not self.command:
            message = f"tool {self.name!r} must declare command tokens or a raw command field"
            raise ValueError(message)
        Draft202012Validator.check_schema(self.input_schema)


@dataclass
class ToolRegistry:
    """Ordered collection of tool definitions keyed by name."""

    _tools: dict[str, ToolDefinition] = field(default_factory=dict)

    @classmethod
    def from_definitions(cls, definitions: Iterable[ToolDefinition]) -> ToolRegistry:
        registry = cls()
        for definition in definitions:
            registry.register(definition)
        return registry

    def register(self, definition: ToolDefinition) -> None:
        """Add *definition*, rejecting duplicate names."""
        if definition.name in self._tools:
            message = f"tool {definition.name!r} is already registered"
            raise ValueError(message)
        self._tools[definition.name] = definition

    def get(self, name: str) -> ToolDefinition:
        """Return the definition registered under *name*."""
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def names(self) -> list[str]:
        return list(self._tools)

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


ORG_LIST = ToolDefinition(
    name="sf_org_list",
    description="List all authorized Salesforce orgs",
    command=("org", "list"),
    input_schema=object_schema(
        {
            "all": {
                "type": "boolean",
                "description": "Show all orgs, including expired and deleted ones",
            },
            "clean": {
                "type": "boolean",
                "description": "Remove all local org authorization files for non-active orgs",
            },
            "skipConnectionStatus": {
                "type": "boolean",
                "description": "Skip retrieving the connection status of each org",
            },
        },
    ),
)

ORG_DISPLAY = ToolDefinition(
    name="sf_org_display",
    description="Display information about an authorized Salesforce org",
    command=("org", "display"),
    read_only=True,
    input_schema=object_schema(
        {
            "targetOrg": TARGET_ORG_PROPERTY,
            "verbose": {
                "type": "boolean",
                "description": "Include the SFDX auth URL and other sensitive details",
            },
        },
    ),
)

DATA_QUERY = ToolDefinition(
    name="sf_data_query",
    description="Execute a SOQL query against a Salesforce org",
    command=("data", "query"),
    read_only=True,
    input_schema=object_schema(
        {
            "query": {"type": "string", "minLength": 1, "description": "SOQL query to execute"},
            "targetOrg": TARGET_ORG_PROPERTY,
            "useToolingApi": {
                "type": "boolean",
                "description": "Use Tooling API instead of standard API",
            },
            "bulk": {"type": "boolean", "description": "Use Bulk API 2.0 for large queries"},
            "wait": WAIT_PROPERTY,
            "resultFormat": {
                "type": "string",
                "enum": ["human", "csv", "json"],
                "description": "Format of the query results",
            },
        },
        required=("query",),
    ),
)

SOBJECT_LIST = ToolDefinition(
    name="sf_sobject_list",
    description="List the standard and custom objects of a Salesforce org",
    command=("sobject", "list"),
    read_only=True,
    input_schema=object_schema(
        {
            "sobject": {
                "type": "string",
                "enum": ["all", "custom", "standard"],
                "description": "Category of objects to list",
            },
            "targetOrg": TARGET_ORG_PROPERTY,
        },
    ),
)

SOBJECT_DESCRIBE = ToolDefinition(
    name="sf_sobject_describe",
    description="Describe the metadata of a standard or custom object",
    command=("sobject", "describe"),
    read_only=True,
    input_schema=object_schema(
        {
            "sobject": {
                "type": "string",
                "minLength": 1,
                "description": "API name of the object to describe",
            },
            "targetOrg": TARGET_ORG_PROPERTY,
            "useToolingApi": {
                "type": "boolean",
                "description": "Describe a Tooling API object",
            },
        },
        required=("sobject",),
    ),
)

PROJECT_DEPLOY_START = ToolDefinition(
    name="sf_project_deploy_start",
    description="Deploy metadata from the local project to a Salesforce org",
    command=("project", "deploy", "start"),
    input_schema=object_schema(
        {
            "sourceDir": _string_list("Paths to local source files to deploy"),
            "metadata": _string_list("Metadata component names to deploy"),
            "manifest": {
                "type": "string",
                "minLength": 1,
                "description": "Path to a package.xml manifest",
            },
            "targetOrg": TARGET_ORG_PROPERTY,
            "testLevel": {
                "type": "string",
                "enum": list(TEST_LEVELS),
                "description": "Deployment Apex testing level",
            },
            "tests": _string_list("Apex tests to run when testLevel is RunSpecifiedTests"),
            "dryRun": {
                "type": "boolean",
                "description": "Validate the deploy without saving changes",
            },
            "ignoreConflicts": {
                "type": "boolean",
                "description": "Ignore conflicts and deploy local files",
            },
            "wait": WAIT_PROPERTY,
        },
    ),
)

PROJECT_RETRIEVE_START = ToolDefinition(
    name="sf_project_retrieve_start",
    description="Retrieve metadata from a Salesforce org into the local project",
    command=("project", "retrieve", "start"),
    input_schema=object_schema(
        {
            "sourceDir": _string_list("Local paths to retrieve"),
            "metadata": _string_list("Metadata component names to retrieve"),
            "manifest": {
                "type": "string",
                "minLength": 1,
                "description": "Path to a package.xml manifest",
            },
            "targetOrg": TARGET_ORG_PROPERTY,
            "ignoreConflicts": {
                "type": "boolean",
                "description": "Ignore conflicts and overwrite local files",
            },
            "wait": WAIT_PROPERTY,
        },
    ),
)

CUSTOM_COMMAND_FIELD = "command"


def custom_command_definition(
    allowed_prefixes: Iterable[str] = (),
) -> ToolDefinition:
    """Return the pass-through tool, optionally restricted to *allowed_prefixes*.

    Each prefix is a space separated run of subcommand tokens such as
    ``"org"`` or ``"data query"``.
    """
    prefixes = tuple(tuple(prefix.split()) for prefix in allowed_prefixes if prefix.strip())
    description = "Execute a custom Salesforce CLI command"
    if prefixes:
        allowed = ", ".join(" ".join(prefix) for prefix in prefixes)
        description = f"{description} (allowed subcommands: {allowed})"
    return ToolDefinition(
        name="sf_custom_command",
        description=description,
        json_output=False,
        raw_command_field=CUSTOM_COMMAND_FIELD,
        allowed_prefixes=prefixes,
        input_schema=object_schema(
            {
                CUSTOM_COMMAND_FIELD: {
                    "type": "string",
                    "minLength": 1,
                    "description": (
                        "Full Salesforce CLI command to execute (without 'sf' prefix)"
                    ),
                },
            },
            required=(CUSTOM_COMMAND_FIELD,),
        ),
    )


BUILTIN_TOOLS: tuple[ToolDefinition, ...] = (
    ORG_LIST,
    ORG_DISPLAY,
    DATA_QUERY,
    SOBJECT_LIST,
    SOBJECT_DESCRIBE,
    PROJECT_DEPLOY_START,
    PROJECT_RETRIEVE_START,
)


def default_registry(
    *,
    custom_commands_enabled: bool = True,
    custom_command_allowlist: Iterable[str] = (),
) -> ToolRegistry:
    """Return the built-in tools plus the custom command tool when enabled."""
    registry = ToolRegistry.from_definitions(BUILTIN_TOOLS)
    if custom_commands_enabled:
        definition = custom_command_definition(custom_command_allowlist)
        if not definition.allowed_prefixes:
            logger.warning(
                "sf_custom_command is enabled without an allowlist; callers may run any sf subcommand",
            )
        registry.register(definition)
    return registry


__all__ = [
    "BUILTIN_TOOLS",
    "CUSTOM_COMMAND_FIELD",
    "ToolDefinition",
    "ToolRegistry",
    "custom_command_definition",
    "default_registry",
    "object_schema",
]
