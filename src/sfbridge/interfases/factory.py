"""Factories for creating exposure entry points."""

from __future__ import annotations

import os
import typing
from typing import TYPE_CHECKING

from sfbridge.core.errors import ExposureConfigurationError
from sfbridge.interfases.cli.app import CLIExposure
from sfbridge.interfases.mcp.server_fastmcp import HTTPExposure, MCPExposure

if TYPE_CHECKING:
    from sfbridge.interfases.types import Exposure

_EXPOSURE_FACTORIES = {
    "cli": CLIExposure,
    "stdio": MCPExposure,
    "mcp": MCPExposure,
    "http": HTTPExposure,
}


def make_exposure(kind: str) -> Exposure:
    """Create an exposure implementation for *kind*."""
    try:
        factory = _EXPOSURE_FACTORIES[kind]
    except KeyError:
        message = f"unknown exposure kind: {kind}"
        raise ExposureConfigurationError(message) from None
    return factory()


def resolve_exposure_from_environment(
    env: typing.Mapping[str, str] | None = None,
    *,
    default: str = "stdio",
) -> Exposure:
    """Resolve the exposure based on the provided environment mapping."""
    environment = os.environ if env is None else env
    kind = environment.get("SFBRIDGE_EXPOSE", default).strip().lower()
    return make_exposure(kind)


__all__ = ["make_exposure", "resolve_exposure_from_environment"]
