"""Command-line interface for inspecting and exercising the sf tools locally."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, cast
from collections.abc import Mapping, Sequence

from sfbridge import __version__
from sfbridge.core.config import BridgeSettings, configure_logging, load_settings
from sfbridge.core.errors import ExposureError, SfBridgeError
from sfbridge.core.safety import mask_secrets, scrub_for_logging
from sfbridge.interfases.mcp.server_fastmcp import HTTPExposure, MCPExposure
from sfbridge.pipelines import ToolCallPipeline
from sfbridge.tools.executor import CommandExecutor
from sfbridge.tools.registry import ToolRegistry, default_registry


class CliError(ExposureError):
    """Exception raised for anticipated CLI failures."""

    def __init__(self, message: str, *, exit_code: int = 1, details: Any | None = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.details = details


def main(argv: Sequence[str] | None = None) -> int:
    """Parse *argv*, execute the requested command and return the exit code."""
    parser = _build_parser()
    args_namespace = parser.parse_args(argv)
    command = getattr(args_namespace, "command", None)
    if command is None:
        parser.print_help()
        return 1
    try:
        exit_code = command(args_namespace)
    except CliError as error:
        _emit_error(error)
        exit_code = error.exit_code
    except KeyboardInterrupt as error:  # pragma: no cover - manual interruption
        cli_error = CliError("Aborted by user", exit_code=130, details=str(error))
        _emit_error(cli_error)
        exit_code = cli_error.exit_code
    except SfBridgeError as error:
        cli_error = CliError(str(error), exit_code=1)
        _emit_error(cli_error)
        exit_code = cli_error.exit_code
    return exit_code


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sfbridge",
        description="Expose the Salesforce CLI as Model Context Protocol tools.",
    )
    parser.add_argument("--version", action="version", version=f"sfbridge {__version__}")
    subparsers = parser.add_subparsers(dest="command_name")

    _configure_tools(subparsers)
    _configure_call(subparsers)
    _configure_serve(subparsers)

    return parser


def _configure_tools(subparsers: Any) -> None:
    parser = subparsers.add_parser(
        "tools",
        help="List the registered tools and their argument schemas.",
    )
    parser.set_defaults(command=_command_tools)
    parser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help="Emit the full tool definitions as JSON.",
    )


def _configure_call(subparsers: Any) -> None:
    parser = subparsers.add_parser(
        "call",
        help="Run a single tool invocation and print the response envelope.",
    )
    parser.set_defaults(command=_command_call)
    parser.add_argument("tool", help="Name of the tool to invoke (e.g. sf_org_list).")
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--args",
        dest="arguments_json",
        help="Tool arguments as an inline JSON object.",
    )
    source.add_argument(
        "--args-file",
        dest="arguments_path",
        help="Path to a JSON file holding the tool arguments ('-' for stdin).",
    )
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        help="Print the command line instead of executing it.",
    )


def _configure_serve(subparsers: Any) -> None:
    parser = subparsers.add_parser(
        "serve",
        help="Start an MCP transport.",
    )
    parser.set_defaults(command=_command_serve)
    parser.add_argument(
        "--transport",
        choices=("stdio", "http"),
        default="stdio",
        help="Transport to serve (default: stdio).",
    )
    parser.add_argument("--host", dest="host", help="Bind address for the HTTP transport.")
    parser.add_argument(
        "--port",
        dest="port",
        type=int,
        help="Port for the HTTP transport (default: $MCP_PORT or 3000).",
    )
    parser.add_argument(
        "--no-banner",
        dest="show_banner",
        action="store_false",
        help="Suppress the FastMCP startup banner.",
    )


def _command_tools(args: argparse.Namespace) -> int:
    registry = _build_registry(_load_settings())
    if args.as_json:
        payload = [
            {
                "name": definition.name,
                "description": definition.description,
                "inputSchema": definition.input_schema,
            }
            for definition in registry
        ]
        _write_json_output(payload)
        return 0
    width = max((len(name) for name in registry.names()), default=0)
    for definition in registry:
        sys.stdout.write(f"{definition.name.ljust(width)}  {definition.description}\n")
    sys.stdout.flush()
    return 0


def _command_call(args: argparse.Namespace) -> int:
    settings = _load_settings()
    configure_logging(settings.log_level)
    arguments = _load_arguments(args)
    pipeline = ToolCallPipeline(
        registry=_build_registry(settings),
        executor=CommandExecutor(
            timeout=settings.timeout_seconds,
            max_output_bytes=settings.max_output_bytes,
            env=settings.cli_env,
        ),
        executable=settings.sf_executable,
    )

    if args.dry_run:
        command = pipeline.build_command(args.tool, arguments)
        sys.stdout.write(command.render() + "\n")
        sys.stdout.flush()
        return 0

    response = asyncio.run(pipeline.invoke(args.tool, arguments))
    _write_json_output(response.to_payload())
    return 1 if response.is_error else 0


def _command_serve(args: argparse.Namespace) -> int:
    exposure = HTTPExposure() if args.transport == "http" else MCPExposure()
    config: dict[str, Any] = {"show_banner": args.show_banner}
    if args.host:
        config["host"] = args.host
    if args.port is not None:
        config["port"] = args.port
    exposure.serve(config=config)
    return 0


def _load_settings() -> BridgeSettings:
    try:
        return load_settings()
    except ExposureError as error:
        raise CliError(str(error), exit_code=2) from error


def _build_registry(settings: BridgeSettings) -> ToolRegistry:
    return default_registry(
        custom_commands_enabled=settings.custom_commands_enabled,
        custom_command_allowlist=settings.custom_command_allowlist,
    )


def _load_arguments(args: argparse.Namespace) -> Mapping[str, object]:
    if args.arguments_json is not None:
        raw = _parse_json(args.arguments_json, source="--args")
    elif args.arguments_path is not None:
        raw = _read_json(Path(args.arguments_path))
    else:
        return {}
    if not isinstance(raw, Mapping):
        message = "Tool arguments must be a JSON object."
        raise CliError(message, exit_code=2)
    return cast("Mapping[str, object]", raw)


def _parse_json(text: str, *, source: str) -> object:
    try:
        return cast("object", json.loads(text))
    except json.JSONDecodeError as error:
        message = f"Failed to parse JSON from {source}: {error}"
        raise CliError(message, exit_code=2) from error


def _read_json(path: Path) -> object:
    if str(path) == "-":
        return _parse_json(sys.stdin.read(), source="stdin")
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as error:
        message = f"File not found: {path}"
        raise CliError(message, exit_code=2) from error
    except OSError as error:
        message = f"Unable to read {path}: {error}"  # pragma: no cover - defensive guard
        raise CliError(message, exit_code=2) from error
    return _parse_json(text, source=str(path))


def _write_json_output(payload: Any) -> None:
    serialized = json.dumps(payload, ensure_ascii=False, indent=2)
    sys.stdout.write(serialized + "\n")
    sys.stdout.flush()


def _emit_error(error: CliError) -> None:
    payload = {
        "status": "error",
        "message": mask_secrets(str(error)),
        "type": type(error).__name__,
    }
    if error.details is not None:
        payload["details"] = scrub_for_logging(error.details)
    serialized = json.dumps(payload, ensure_ascii=False, sort_keys=True)
    sys.stderr.write(serialized + "\n")
    sys.stderr.flush()


__all__ = ["CLIExposure", "CliError", "main"]


class CLIExposure:
    """Exposure adapter that delegates to the CLI entry point."""

    def serve(self, *, config: Mapping[str, Any] | None = None) -> None:
        """Execute the CLI using the provided configuration."""
        argv: Sequence[str] | None = None
        if config is not None and "argv" in config:
            raw_argv = config["argv"]
            if raw_argv is not None:
                if not isinstance(raw_argv, Sequence) or isinstance(raw_argv, (str, bytes)):
                    message = "config['argv'] must be a sequence of strings"
                    raise TypeError(message)
                sequence_candidate = cast("Sequence[Any]", raw_argv)
                validated_arguments: list[str] = []
                for argument in sequence_candidate:
                    if not isinstance(argument, str):
                        message = "config['argv'] must contain only strings"
                        raise TypeError(message)
                    validated_arguments.append(argument)
                argv = list(validated_arguments)
        exit_code = main(argv)
        raise SystemExit(exit_code)


def run() -> None:
    """Console-script entry point."""
    raise SystemExit(main())
