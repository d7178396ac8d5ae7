"""Liveness and status endpoints served next to the MCP event stream."""

from __future__ import annotations

import resource
import sys
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from starlette.responses import JSONResponse
from starlette.routing import Route

from sfbridge import __version__

if TYPE_CHECKING:
    from starlette.requests import Request

    from sfbridge.core.lifecycle import Lifecycle

SERVICE_ID = "salesforce-cli-mcp-server"
SERVICE_NAME = "Salesforce CLI MCP Server"
HEALTH_PATH = "/health"
STATUS_PATH = "/api/status"


def _memory_snapshot() -> dict[str, int]:
    usage = resource.getrusage(resource.RUSAGE_SELF)
    # ru_maxrss is reported in bytes on macOS and kilobytes elsewhere.
    scale = 1 if sys.platform == "darwin" else 1024
    return {
        "maxRssBytes": usage.ru_maxrss * scale,
        "minorPageFaults": usage.ru_minflt,
        "majorPageFaults": usage.ru_majflt,
    }


@dataclass
class StatusReporter:
    """Build the introspection payloads; never touches the tool pipeline."""

    mode: str
    environment: str | None = None
    lifecycle: Lifecycle | None = None
    started_at: float = field(default_factory=time.monotonic)

    def health(self) -> dict[str, Any]:
        return {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "service": SERVICE_ID,
        }

    def status(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "service": SERVICE_NAME,
            "version": __version__,
            "mode": self.mode,
            "uptime": round(time.monotonic() - self.started_at, 3),
            "memory": _memory_snapshot(),
            "environment": self.environment,
        }
        if self.lifecycle is not None:
            payload["lifecycle"] = str(self.lifecycle.state)
            payload["inFlight"] = self.lifecycle.in_flight
        return payload

    async def health_endpoint(self, request: Request) -> JSONResponse:
        del request
        return JSONResponse(self.health())

    async def status_endpoint(self, request: Request) -> JSONResponse:
        del request
        return JSONResponse(self.status())

    def routes(self) -> list[Route]:
        """Return Starlette routes for both endpoints."""
        return [
            Route(HEALTH_PATH, self.health_endpoint, methods=["GET"]),
            Route(STATUS_PATH, self.status_endpoint, methods=["GET"]),
        ]


__all__ = [
    "HEALTH_PATH",
    "SERVICE_ID",
    "SERVICE_NAME",
    "STATUS_PATH",
    "StatusReporter",
]
