"""Pipeline implementations for sfbridge requests."""

from .tool_call import ToolCallPipeline

__all__ = ["ToolCallPipeline"]
