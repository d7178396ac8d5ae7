"""Request-scoped data structures flowing through the tool call pipeline."""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ToolInvocation(BaseModel):
    """A tool name and the raw arguments supplied by the caller."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    arguments: dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class CommandLine:
    """Ordered command tokens derived from validated arguments."""

    executable: str
    arguments: tuple[str, ...] = ()

    @property
    def argv(self) -> tuple[str, ...]:
        """Return the full argument vector including the executable."""
        return (self.executable, *self.arguments)

    def render(self) -> str:
        """Return a shell-quoted rendering suitable for logs and dry runs."""
        return shlex.join(self.argv)


@dataclass(frozen=True)
class ExecutionResult:
    """Captured outcome of a finished CLI process."""

    exit_status: int
    stdout: bytes = b""
    stderr: bytes = b""
    timed_out: bool = False
    duration_seconds: float = 0.0

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


class TextContent(BaseModel):
    """A single text block of a tool response."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ToolResponse(BaseModel):
    """Response envelope returned to the transport layer."""

    model_config = ConfigDict(populate_by_name=True)

    content: list[TextContent] = Field(default_factory=list)
    is_error: bool = Field(default=False, alias="isError")

    @classmethod
    def from_text(cls, text: str, *, is_error: bool = False) -> ToolResponse:
        """Build a response holding a single text block."""
        return cls(content=[TextContent(text=text)], is_error=is_error)

    @property
    def text(self) -> str:
        """Return the concatenated text of all content blocks."""
        return "".join(block.text for block in self.content)

    def to_payload(self) -> dict[str, Any]:
        """Serialize using wire names, omitting ``isError`` when false."""
        payload: dict[str, Any] = {
            "content": [block.model_dump(mode="json") for block in self.content],
        }
        if self.is_error:
            payload["isError"] = True
        return payload


__all__ = [
    "CommandLine",
    "ExecutionResult",
    "TextContent",
    "ToolInvocation",
    "ToolResponse",
]
