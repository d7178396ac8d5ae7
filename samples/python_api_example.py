"""Example that drives the sfbridge Python API without an MCP client."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from rich.console import Console

from sfbridge import CommandExecutor, ToolCallPipeline, default_registry


def _load_invocations(path: Path) -> list[tuple[str, dict[str, object]]]:
    data = json.loads(path.read_text(encoding="utf-8"))
    return [(item["tool"], item.get("arguments", {})) for item in data]


async def _run_live(pipeline: ToolCallPipeline, console: Console) -> None:
    response = await pipeline.invoke("sf_org_list", {})
    style = "red" if response.is_error else "green"
    console.print(f"[{style}]sf_org_list[/{style}]")
    console.print(response.text)


def main(*, live: bool = False) -> None:
    """Print the command lines for the bundled invocations, optionally running one."""
    console = Console()
    base_dir = Path(__file__).resolve().parent
    invocations = _load_invocations(base_dir / "invocations.json")

    pipeline = ToolCallPipeline(
        registry=default_registry(custom_command_allowlist=("org", "data", "sobject")),
        executor=CommandExecutor(timeout=60),
    )

    for name, arguments in invocations:
        command = pipeline.build_command(name, arguments)
        console.print(f"[bold]{name}[/bold] -> {command.render()}")

    if live:
        asyncio.run(_run_live(pipeline, console))


if __name__ == "__main__":
    main()
