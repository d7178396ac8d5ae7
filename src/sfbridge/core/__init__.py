"""Core domain modules for sfbridge."""

from .config import BridgeSettings, configure_logging, load_settings
from .errors import (
    ExecutionError,
    ExecutionFailedError,
    ExecutionTimeoutError,
    ExposureConfigurationError,
    ExposureError,
    ExposureStateError,
    LifecycleStateError,
    OutputTooLargeError,
    ServerShuttingDownError,
    SfBridgeError,
    SfBridgeValidationError,
    ToolValidationError,
    UnknownToolError,
)
from .lifecycle import Lifecycle, LifecycleState
from .models import CommandLine, ExecutionResult, TextContent, ToolInvocation, ToolResponse
from .safety import mask_secrets, scrub_for_logging

__all__ = [
    "BridgeSettings",
    "CommandLine",
    "ExecutionError",
    "ExecutionFailedError",
    "ExecutionResult",
    "ExecutionTimeoutError",
    "ExposureConfigurationError",
    "ExposureError",
    "ExposureStateError",
    "Lifecycle",
    "LifecycleState",
    "LifecycleStateError",
    "OutputTooLargeError",
    "ServerShuttingDownError",
    "SfBridgeError",
    "SfBridgeValidationError",
    "TextContent",
    "ToolInvocation",
    "ToolResponse",
    "ToolValidationError",
    "UnknownToolError",
    "configure_logging",
    "load_settings",
    "mask_secrets",
    "scrub_for_logging",
]
