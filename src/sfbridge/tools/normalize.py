"""Shape captured CLI output into tool responses."""

from __future__ import annotations

import json
from typing import Any

from sfbridge.core.models import ExecutionResult, ToolResponse

ERROR_PREFIX = "Error: "


def normalize_result(result: ExecutionResult) -> ToolResponse:
    """Return structured JSON re-serialized as text, or the raw output otherwise.

    When stdout is not JSON the text is stdout if non-empty, else stderr.
    """
    stdout = result.stdout_text
    try:
        document: Any = json.loads(stdout)
    except json.JSONDecodeError:
        return ToolResponse.from_text(stdout or result.stderr_text)
    return ToolResponse.from_text(json.dumps(document, indent=2, ensure_ascii=False))


def error_response(error: Exception | str) -> ToolResponse:
    """Return a text-only error response describing *error*."""
    return ToolResponse.from_text(f"{ERROR_PREFIX}{error}", is_error=True)


__all__ = ["ERROR_PREFIX", "error_response", "normalize_result"]
