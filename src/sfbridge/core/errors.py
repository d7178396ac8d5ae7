"""Domain-specific exception hierarchy for sfbridge."""

from __future__ import annotations


class SfBridgeError(Exception):
    """Base class for all domain-specific errors raised by sfbridge."""


class SfBridgeValidationError(SfBridgeError):
    """Raised when inputs, configuration, or payloads fail validation rules."""


class ToolValidationError(SfBridgeValidationError):
    """Raised when tool arguments do not satisfy the tool's declared schema."""

    def __init__(self, message: str, *, tool: str | None = None, field: str | None = None) -> None:
        super().__init__(message)
        self.tool = tool
        self.field = field


class UnknownToolError(SfBridgeError):
    """Raised when an invocation names a tool that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ExecutionError(SfBridgeError):
    """Base class for failures while running the wrapped CLI."""


class ExecutionTimeoutError(ExecutionError):
    """Raised when the CLI exceeds its wall-clock budget and is killed."""

    def __init__(
        self,
        message: str,
        *,
        timeout: float,
        stdout: bytes = b"",
        stderr: bytes = b"",
    ) -> None:
        super().__init__(message)
        self.timeout = timeout
        self.stdout = stdout
        self.stderr = stderr


class ExecutionFailedError(ExecutionError):
    """Raised when the CLI exits with a non-zero status or cannot be started."""

    def __init__(
        self,
        message: str,
        *,
        exit_status: int | None,
        stdout: bytes = b"",
        stderr: bytes = b"",
    ) -> None:
        super().__init__(message)
        self.exit_status = exit_status
        self.stdout = stdout
        self.stderr = stderr


class OutputTooLargeError(ExecutionError):
    """Raised when the CLI writes more than the configured output ceiling."""

    def __init__(self, message: str, *, limit: int) -> None:
        super().__init__(message)
        self.limit = limit


class ServerShuttingDownError(SfBridgeError):
    """Raised when an invocation arrives after the server started draining."""


class ExposureError(SfBridgeError):
    """Base class for errors surfaced through CLI or MCP exposures."""


class ExposureConfigurationError(ExposureError, SfBridgeValidationError):
    """Raised when an exposure receives invalid configuration or options."""


class ExposureStateError(ExposureError):
    """Raised when an exposure is invoked while it is in an invalid state."""


class LifecycleStateError(ExposureStateError):
    """Raised on an illegal process lifecycle transition."""


__all__ = [
    "ExecutionError",
    "ExecutionFailedError",
    "ExecutionTimeoutError",
    "ExposureConfigurationError",
    "ExposureError",
    "ExposureStateError",
    "LifecycleStateError",
    "OutputTooLargeError",
    "ServerShuttingDownError",
    "SfBridgeError",
    "SfBridgeValidationError",
    "ToolValidationError",
    "UnknownToolError",
]
