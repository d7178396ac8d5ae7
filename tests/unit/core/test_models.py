"""Tests for the request-scoped models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sfbridge.core.models import (
    CommandLine,
    ExecutionResult,
    TextContent,
    ToolInvocation,
    ToolResponse,
)


def test_tool_invocation_defaults_to_empty_arguments() -> None:
    """Omitted arguments are represented by an empty object."""
    invocation = ToolInvocation(name="sf_org_list")

    assert invocation.arguments == {}


def test_tool_invocation_requires_a_name() -> None:
    """An empty tool name is rejected."""
    with pytest.raises(ValidationError):
        ToolInvocation(name="")


def test_tool_invocation_rejects_unknown_fields() -> None:
    """Only the name and arguments are part of an invocation."""
    with pytest.raises(ValidationError):
        ToolInvocation.model_validate({"name": "sf_org_list", "extra": 1})


def test_command_line_renders_shell_quoted_argv() -> None:
    """Rendering quotes tokens that contain spaces."""
    command = CommandLine(
        executable="sf",
        arguments=("data", "query", "--json", "--query", "SELECT Id FROM Account"),
    )

    assert command.argv[0] == "sf"
    assert command.render() == "sf data query --json --query 'SELECT Id FROM Account'"


def test_execution_result_decodes_invalid_utf8_with_replacement() -> None:
    """Undecodable bytes never raise while converting output to text."""
    result = ExecutionResult(exit_status=0, stdout=b"ok \xff", stderr=b"")

    assert result.stdout_text == "ok \ufffd"
    assert result.stderr_text == ""


def test_tool_response_payload_omits_is_error_on_success() -> None:
    """Successful responses carry only the content list on the wire."""
    response = ToolResponse.from_text("hello")

    assert response.to_payload() == {"content": [{"type": "text", "text": "hello"}]}


def test_tool_response_payload_marks_errors() -> None:
    """Error responses set isError on the wire."""
    response = ToolResponse.from_text("Error: nope", is_error=True)

    assert response.to_payload() == {
        "content": [{"type": "text", "text": "Error: nope"}],
        "isError": True,
    }


def test_tool_response_accepts_wire_alias() -> None:
    """Responses can be parsed from their wire representation."""
    response = ToolResponse.model_validate(
        {"content": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}], "isError": True},
    )

    assert response.is_error is True
    assert response.text == "ab"
    assert response.content[0] == TextContent(text="a")
