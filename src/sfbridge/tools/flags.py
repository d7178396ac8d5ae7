"""Translate validated tool arguments into ``sf`` command lines."""

from __future__ import annotations

import re
import shlex
from typing import TYPE_CHECKING, Any

from sfbridge.core.errors import ToolValidationError
from sfbridge.core.models import CommandLine

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .registry import ToolDefinition

JSON_FLAG = "--json"

_UPPERCASE = re.compile(r"[A-Z]")


def flag_name(field: str) -> str:
    """Return the long option for *field* (``targetOrg`` -> ``--target-org``)."""
    return "--" + _UPPERCASE.sub(lambda match: "-" + match.group(0).lower(), field)


def build_flags(arguments: Mapping[str, Any]) -> list[str]:
    """Convert *arguments* into flag tokens, following the mapping's key order.

    ``True`` emits a bare flag, ``False`` and ``None`` emit nothing, sequences
    emit the flag once with a comma-joined value, and any other value emits
    the flag followed by its string form.
    """
    tokens: list[str] = []
    for field, value in arguments.items():
        if value is None or value is False:
            continue
        flag = flag_name(field)
        if value is True:
            tokens.append(flag)
        elif isinstance(value, (list, tuple)):
            tokens.extend((flag, ",".join(str(item) for item in value)))
        else:
            tokens.extend((flag, str(value)))
    return tokens


def build_flag_string(arguments: Mapping[str, Any]) -> str:
    """Return the flag tokens for *arguments* as one shell-quoted string."""
    return shlex.join(build_flags(arguments))


def build_command_line(
    definition: ToolDefinition,
    arguments: Mapping[str, Any],
    *,
    executable: str,
) -> CommandLine:
    """Assemble the full command line for *definition* and validated *arguments*."""
    if definition.raw_command_field is not None:
        tokens = _split_raw_command(definition, arguments.get(definition.raw_command_field))
        return CommandLine(executable=executable, arguments=tuple(tokens))

    tokens = list(definition.command)
    if definition.json_output:
        tokens.append(JSON_FLAG)
    tokens.extend(build_flags(arguments))
    return CommandLine(executable=executable, arguments=tuple(tokens))


def _split_raw_command(definition: ToolDefinition, raw: object) -> list[str]:
    if not isinstance(raw, str):
        message = f"Invalid arguments for {definition.name}: '{definition.raw_command_field}' must be a string"
        raise ToolValidationError(message, tool=definition.name, field=definition.raw_command_field)
    try:
        tokens = shlex.split(raw)
    except ValueError as error:
        message = f"Invalid arguments for {definition.name}: cannot parse command ({error})"
        raise ToolValidationError(message, tool=definition.name, field=definition.raw_command_field) from error
    if not tokens:
        message = f"Invalid arguments for {definition.name}: command must not be empty"
        raise ToolValidationError(message, tool=definition.name, field=definition.raw_command_field)

    if definition.allowed_prefixes and not any(
        tuple(tokens[: len(prefix)]) == prefix for prefix in definition.allowed_prefixes
    ):
        allowed = ", ".join(" ".join(prefix) for prefix in definition.allowed_prefixes)
        message = (
            f"Invalid arguments for {definition.name}: subcommand "
            f"{' '.join(tokens[:2])!r} is not allowed (allowed: {allowed})"
        )
        raise ToolValidationError(message, tool=definition.name, field=definition.raw_command_field)
    return tokens


__all__ = [
    "JSON_FLAG",
    "build_command_line",
    "build_flag_string",
    "build_flags",
    "flag_name",
]
