"""Request pipeline from a tool invocation to its response envelope."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sfbridge.core.errors import SfBridgeError
from sfbridge.core.safety import mask_secrets
from sfbridge.tools.flags import build_command_line
from sfbridge.tools.normalize import error_response, normalize_result
from sfbridge.tools.validator import validate_arguments

if TYPE_CHECKING:
    from sfbridge.core.lifecycle import Lifecycle
    from sfbridge.core.models import CommandLine, ToolResponse
    from sfbridge.tools.executor import CommandRunner
    from sfbridge.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class ToolCallPipeline:
    """Validate, translate, execute, and normalize a single tool call."""

    registry: ToolRegistry
    executor: CommandRunner
    executable: str = "sf"
    lifecycle: Lifecycle | None = None

    def build_command(self, name: str, arguments: object) -> CommandLine:
        """Return the command line *name* would run without executing it."""
        definition = self.registry.get(name)
        validated = validate_arguments(definition, arguments)
        return build_command_line(definition, validated, executable=self.executable)

    async def invoke(self, name: str, arguments: object) -> ToolResponse:
        """Run the tool *name*; every failure becomes an error response."""
        try:
            if self.lifecycle is None:
                return await self._invoke(name, arguments)
            async with self.lifecycle.track():
                return await self._invoke(name, arguments)
        except SfBridgeError as error:
            logger.warning("Tool %s failed: %s", name, mask_secrets(str(error)))
            return error_response(error)
        except Exception as error:
            logger.exception("Unexpected failure while running tool %s", name)
            return error_response(f"Unexpected error: {type(error).__name__}")

    async def _invoke(self, name: str, arguments: Any) -> ToolResponse:
        command = self.build_command(name, arguments)
        result = await self.executor.run(command)
        return normalize_result(result)


__all__ = ["ToolCallPipeline"]
