"""FastMCP exposures (stdio and HTTP event stream) for the sf tool pipeline."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any
from collections.abc import Awaitable, Callable, Mapping

import uvicorn
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools.tool import Tool, ToolResult
from mcp.types import TextContent, ToolAnnotations
from pydantic import ValidationError

from sfbridge.core.config import BridgeSettings, configure_logging, load_settings
from sfbridge.core.errors import ExposureConfigurationError, ExposureStateError
from sfbridge.core.lifecycle import Lifecycle, serve_until_signalled
from sfbridge.core.models import ToolResponse
from sfbridge.interfases.http.status import SERVICE_ID, StatusReporter
from sfbridge.pipelines import ToolCallPipeline
from sfbridge.tools.executor import CommandExecutor
from sfbridge.tools.registry import default_registry

if TYPE_CHECKING:
    from types import FrameType

    from sfbridge.tools.executor import CommandRunner
    from sfbridge.tools.registry import ToolDefinition, ToolRegistry

logger = logging.getLogger(__name__)

SSE_PATH = "/mcp"

ToolHandler = Callable[[str, Any], Awaitable[ToolResponse]]


class SfCliTool(Tool):
    """MCP tool whose schema comes from a :class:`ToolDefinition`."""

    handler: ToolHandler

    @classmethod
    def from_definition(cls, definition: ToolDefinition, handler: ToolHandler) -> SfCliTool:
        """Create the MCP tool publishing *definition* and delegating to *handler*."""
        annotations = ToolAnnotations(readOnlyHint=True) if definition.read_only else None
        return cls(
            name=definition.name,
            description=definition.description,
            parameters=definition.input_schema,
            annotations=annotations,
            handler=handler,
        )

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        response = await self.handler(self.name, arguments)
        if response.is_error:
            raise ToolError(response.text)
        return ToolResult(
            content=[TextContent(type="text", text=block.text) for block in response.content],
        )


def build_server(pipeline: ToolCallPipeline, *, name: str = SERVICE_ID) -> FastMCP:
    """Return a FastMCP server publishing every tool of the pipeline's registry."""
    mcp = FastMCP(name)
    # Arguments are validated by the pipeline so callers see its error text.
    mcp.strict_input_validation = False
    for definition in pipeline.registry:
        mcp.add_tool(SfCliTool.from_definition(definition, pipeline.invoke))
    return mcp


def _settings_overrides(config: Mapping[str, Any] | None) -> dict[str, Any]:
    if config is None:
        return {}
    return {key: config[key] for key in BridgeSettings.model_fields if key in config}


class MCPExposure:
    """FastMCP(stdio) exposure that publishes the sf tools."""

    mode = "stdio"

    def __init__(
        self,
        settings: BridgeSettings | None = None,
        *,
        registry: ToolRegistry | None = None,
        executor: CommandRunner | None = None,
    ) -> None:
        """Store optional collaborators; anything omitted is built from settings."""
        self._settings = settings
        self._registry = registry
        self._executor = executor
        self._lifecycle = Lifecycle()
        self._mcp: FastMCP | None = None

    @property
    def lifecycle(self) -> Lifecycle:
        return self._lifecycle

    @property
    def server(self) -> FastMCP:
        return self._require_server()

    def build(self, settings: BridgeSettings) -> FastMCP:
        """Assemble the pipeline and FastMCP server for *settings*."""
        registry = self._registry or default_registry(
            custom_commands_enabled=settings.custom_commands_enabled,
            custom_command_allowlist=settings.custom_command_allowlist,
        )
        executor = self._executor or CommandExecutor(
            timeout=settings.timeout_seconds,
            max_output_bytes=settings.max_output_bytes,
            env=settings.cli_env,
        )
        pipeline = ToolCallPipeline(
            registry=registry,
            executor=executor,
            executable=settings.sf_executable,
            lifecycle=self._lifecycle,
        )
        self._mcp = build_server(pipeline)
        logger.info("Registered %d tools: %s", len(registry), ", ".join(registry.names()))
        return self._mcp

    def resolve_settings(self, config: Mapping[str, Any] | None = None) -> BridgeSettings:
        overrides = _settings_overrides(config)
        if self._settings is None:
            return load_settings(overrides=overrides)
        if not overrides:
            return self._settings
        try:
            return BridgeSettings.model_validate({**self._settings.model_dump(), **overrides})
        except ValidationError as error:
            message = f"Invalid sfbridge configuration: {error}"
            raise ExposureConfigurationError(message) from error

    def serve(self, *, config: Mapping[str, Any] | None = None) -> None:
        """Serve MCP over stdio until stdin closes or a shutdown signal arrives."""
        settings = self.resolve_settings(config)
        configure_logging(settings.log_level)
        mcp = self.build(settings)
        show_banner = True if config is None else bool(config.get("show_banner", True))
        asyncio.run(
            serve_until_signalled(
                mcp.run_async(transport="stdio", show_banner=show_banner),
                self._lifecycle,
                drain_timeout=settings.drain_timeout_seconds,
            ),
        )

    def _require_server(self) -> FastMCP:
        mcp = self._mcp
        if mcp is None:
            message = "FastMCP server has not been built"
            raise ExposureStateError(message)
        return mcp


class HTTPExposure(MCPExposure):
    """MCP over HTTP with a server-sent-event stream plus status endpoints."""

    mode = "http"

    def build(self, settings: BridgeSettings) -> FastMCP:
        mcp = super().build(settings)
        reporter = StatusReporter(
            mode=self.mode,
            environment=settings.environment,
            lifecycle=self._lifecycle,
        )
        for route in reporter.routes():
            mcp.custom_route(route.path, methods=["GET"])(route.endpoint)
        return mcp

    def build_app(self, settings: BridgeSettings) -> Any:
        """Return the ASGI application serving the event stream and endpoints."""
        mcp = self.build(settings)
        return mcp.http_app(path=SSE_PATH, transport="sse")

    def serve(self, *, config: Mapping[str, Any] | None = None) -> None:
        """Serve HTTP until a shutdown signal arrives and in-flight calls drain."""
        settings = self.resolve_settings(config)
        configure_logging(settings.log_level)
        app = self.build_app(settings)
        server = DrainingServer(
            uvicorn.Config(
                app,
                host=settings.host,
                port=settings.port,
                log_level=settings.log_level.lower(),
            ),
            lifecycle=self._lifecycle,
            drain_timeout=settings.drain_timeout_seconds,
        )
        logger.info(
            "Serving MCP on http://%s:%d%s (health: /health, status: /api/status)",
            settings.host, settings.port, SSE_PATH,
        )
        try:
            server.run()
        except KeyboardInterrupt:
            logger.info("Interrupted")


class DrainingServer(uvicorn.Server):
    """Uvicorn server that drains in-flight tool calls before shutting down.

    The first shutdown signal stops new tool calls and waits for running ones
    up to the drain timeout; a second signal exits immediately.
    """

    def __init__(self, config: uvicorn.Config, *, lifecycle: Lifecycle, drain_timeout: float) -> None:
        super().__init__(config)
        self._lifecycle = lifecycle
        self._drain_timeout = drain_timeout
        self._loop: asyncio.AbstractEventLoop | None = None
        self._drain_task: asyncio.Task[None] | None = None

    async def startup(self, sockets: Any = None) -> None:
        self._loop = asyncio.get_running_loop()
        await super().startup(sockets=sockets)
        if not self.should_exit:
            self._lifecycle.mark_serving()

    def handle_exit(self, sig: int, frame: FrameType | None) -> None:
        loop = self._loop
        if loop is None or self._drain_task is not None or not self._lifecycle.accepting:
            super().handle_exit(sig, frame)
            return
        self._lifecycle.begin_draining()
        loop.call_soon_threadsafe(self._start_drain, sig, frame)

    def _start_drain(self, sig: int, frame: FrameType | None) -> None:
        self._drain_task = asyncio.ensure_future(self._drain_then_exit(sig, frame))

    async def _drain_then_exit(self, sig: int, frame: FrameType | None) -> None:
        await self._lifecycle.drain(self._drain_timeout)
        super().handle_exit(sig, frame)


__all__ = ["DrainingServer", "HTTPExposure", "MCPExposure", "SfCliTool", "build_server"]
