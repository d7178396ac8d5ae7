"""Run the wrapped CLI as a bounded subprocess."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import signal
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sfbridge.core.config import DEFAULT_MAX_OUTPUT_BYTES, DEFAULT_TIMEOUT_SECONDS
from sfbridge.core.errors import (
    ExecutionFailedError,
    ExecutionTimeoutError,
    OutputTooLargeError,
)
from sfbridge.core.models import CommandLine, ExecutionResult
from sfbridge.core.safety import mask_secrets

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

_READ_CHUNK_SIZE = 64 * 1024


@runtime_checkable
class CommandRunner(Protocol):
    """Anything able to execute a :class:`CommandLine`."""

    async def run(self, command: CommandLine) -> ExecutionResult:
        """Execute *command* and return its captured output."""
        ...


@dataclass
class _OutputCapture:
    """Combined stdout/stderr buffers sharing one byte budget."""

    limit: int
    stdout: bytearray = field(default_factory=bytearray)
    stderr: bytearray = field(default_factory=bytearray)

    @property
    def total(self) -> int:
        return len(self.stdout) + len(self.stderr)

    async def drain(self, stream: asyncio.StreamReader | None, sink: bytearray) -> None:
        if stream is None:
            return
        while True:
            chunk = await stream.read(_READ_CHUNK_SIZE)
            if not chunk:
                return
            if self.total + len(chunk) > self.limit:
                message = f"CLI output exceeded the {self.limit} byte limit"
                raise OutputTooLargeError(message, limit=self.limit)
            sink.extend(chunk)


class CommandExecutor:
    """Spawn one CLI process per call with a timeout and an output ceiling."""

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
    ) -> None:
        """Configure limits and the environment overlay for child processes."""
        if timeout <= 0:
            error_message = "timeout must be positive"
            raise ValueError(error_message)
        if max_output_bytes <= 0:
            error_message = "max_output_bytes must be positive"
            raise ValueError(error_message)
        self._timeout = timeout
        self._max_output_bytes = max_output_bytes
        self._env = os.environ.copy()
        if env:
            self._env.update(env)
        self._cwd = cwd

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def max_output_bytes(self) -> int:
        return self._max_output_bytes

    async def run(self, command: CommandLine) -> ExecutionResult:
        """Execute *command*, raising an :class:`ExecutionError` on any failure."""
        program = Path(command.executable).name
        logger.info("Executing %s", mask_secrets(command.render()))
        started = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                *command.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._env,
                cwd=self._cwd,
                start_new_session=True,
            )
        except OSError as error:
            message = (
                f"Unable to start {program}: {error.strerror or error}. "
                "Is the Salesforce CLI installed and on PATH?"
            )
            logger.warning(message)
            raise ExecutionFailedError(message, exit_status=None) from error

        capture = _OutputCapture(limit=self._max_output_bytes)
        tasks = [
            asyncio.ensure_future(capture.drain(process.stdout, capture.stdout)),
            asyncio.ensure_future(capture.drain(process.stderr, capture.stderr)),
            asyncio.ensure_future(process.wait()),
        ]
        try:
            await asyncio.wait_for(asyncio.gather(*tasks), timeout=self._timeout)
        except TimeoutError as error:
            await _terminate(process, tasks)
            message = f"{program} command timed out after {self._timeout:g} seconds"
            logger.warning(message, extra={"pid": process.pid})
            raise ExecutionTimeoutError(
                message,
                timeout=self._timeout,
                stdout=bytes(capture.stdout),
                stderr=bytes(capture.stderr),
            ) from error
        except OutputTooLargeError:
            await _terminate(process, tasks)
            logger.warning("Killed %s after exceeding %d output bytes", program, self._max_output_bytes)
            raise
        except asyncio.CancelledError:
            await _terminate(process, tasks)
            raise

        duration = time.monotonic() - started
        exit_status = process.returncode if process.returncode is not None else -1
        logger.debug(
            "%s exited with status %d", program, exit_status,
            extra={"duration_seconds": duration},
        )
        result = ExecutionResult(
            exit_status=exit_status,
            stdout=bytes(capture.stdout),
            stderr=bytes(capture.stderr),
            timed_out=False,
            duration_seconds=duration,
        )
        if exit_status != 0:
            detail = _failure_detail(result)
            message = f"{program} exited with status {exit_status}"
            if detail:
                message = f"{message}: {detail}"
            logger.warning(mask_secrets(message))
            raise ExecutionFailedError(
                message,
                exit_status=exit_status,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        return result


async def _terminate(process: asyncio.subprocess.Process, tasks: list[asyncio.Future[Any]]) -> None:
    """Kill the process group, stop the readers, and reap the child."""
    if process.returncode is None:
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            with contextlib.suppress(ProcessLookupError):
                process.kill()
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    # Read whatever is left in the pipes so the transport sees EOF and reaps the child.
    await process.communicate()


def _failure_detail(result: ExecutionResult) -> str:
    """Prefer stderr, then the ``message`` of a ``--json`` error document, then stdout."""
    stderr = result.stderr_text.strip()
    if stderr:
        return stderr
    stdout = result.stdout_text.strip()
    try:
        payload = json.loads(stdout)
    except json.JSONDecodeError:
        return stdout
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message:
            return message
    return stdout


__all__ = ["CommandExecutor", "CommandRunner"]
