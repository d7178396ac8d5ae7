"""Schema-driven validation of raw tool arguments."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast
from collections.abc import Mapping

from jsonschema import Draft202012Validator

from sfbridge.core.errors import ToolValidationError

if TYPE_CHECKING:
    from jsonschema.exceptions import ValidationError as SchemaError

    from .registry import ToolDefinition


def validate_arguments(definition: ToolDefinition, arguments: object) -> dict[str, Any]:
    """Return *arguments* as a plain mapping once they satisfy the tool schema.

    ``None`` is treated as an empty object. The first violated constraint,
    ordered by field path, is reported through :class:`ToolValidationError`.
    Key order of the input is preserved.
    """
    if arguments is None:
        payload: dict[str, Any] = {}
    elif isinstance(arguments, Mapping):
        payload = dict(cast("Mapping[str, Any]", arguments))
    else:
        message = (
            f"Invalid arguments for {definition.name}: expected an object, "
            f"got {type(arguments).__name__}"
        )
        raise ToolValidationError(message, tool=definition.name)

    validator = Draft202012Validator(definition.input_schema)
    errors = sorted(validator.iter_errors(payload), key=_error_sort_key)
    if errors:
        first = errors[0]
        field = _format_path(first)
        location = f" at '{field}'" if field else ""
        message = f"Invalid arguments for {definition.name}{location}: {first.message}"
        raise ToolValidationError(message, tool=definition.name, field=field or None)
    return payload


def _error_sort_key(error: SchemaError) -> tuple[tuple[str, ...], str]:
    return tuple(str(part) for part in error.absolute_path), str(error.validator)


def _format_path(error: SchemaError) -> str:
    return ".".join(str(part) for part in error.absolute_path)


__all__ = ["validate_arguments"]
