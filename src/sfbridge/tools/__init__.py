"""Tool registry, argument handling, and CLI execution."""

from .executor import CommandExecutor, CommandRunner
from .flags import build_command_line, build_flag_string, build_flags, flag_name
from .normalize import error_response, normalize_result
from .registry import (
    BUILTIN_TOOLS,
    ToolDefinition,
    ToolRegistry,
    custom_command_definition,
    default_registry,
)
from .validator import validate_arguments

__all__ = [
    "BUILTIN_TOOLS",
    "CommandExecutor",
    "CommandRunner",
    "ToolDefinition",
    "ToolRegistry",
    "build_command_line",
    "build_flag_string",
    "build_flags",
    "custom_command_definition",
    "default_registry",
    "error_response",
    "flag_name",
    "normalize_result",
    "validate_arguments",
]
