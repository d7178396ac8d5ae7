"""Expose the Salesforce CLI as Model Context Protocol tools."""

from .core.models import CommandLine, ExecutionResult, ToolInvocation, ToolResponse
from .pipelines import ToolCallPipeline
from .tools import CommandExecutor, ToolDefinition, ToolRegistry, default_registry

__version__ = "1.0.0"

__all__ = [
    "CommandExecutor",
    "CommandLine",
    "ExecutionResult",
    "ToolCallPipeline",
    "ToolDefinition",
    "ToolInvocation",
    "ToolRegistry",
    "ToolResponse",
    "__version__",
    "default_registry",
]
