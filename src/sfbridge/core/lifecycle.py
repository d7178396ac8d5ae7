"""Process lifecycle tracking with in-flight request draining."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from enum import StrEnum
from typing import TYPE_CHECKING

from .errors import LifecycleStateError, ServerShuttingDownError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Sequence

logger = logging.getLogger(__name__)

DEFAULT_SHUTDOWN_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGTERM, signal.SIGINT)


class LifecycleState(StrEnum):
    """Phases a server process moves through."""

    STARTING = "starting"
    SERVING = "serving"
    DRAINING = "draining"
    STOPPED = "stopped"


_TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.STARTING: frozenset({LifecycleState.SERVING, LifecycleState.DRAINING}),
    LifecycleState.SERVING: frozenset({LifecycleState.DRAINING}),
    LifecycleState.DRAINING: frozenset({LifecycleState.STOPPED}),
    LifecycleState.STOPPED: frozenset(),
}


class Lifecycle:
    """Single coordination point for lifecycle state and in-flight invocations."""

    def __init__(self) -> None:
        self._state = LifecycleState.STARTING
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def accepting(self) -> bool:
        """Return whether new invocations may start."""
        return self._state in (LifecycleState.STARTING, LifecycleState.SERVING)

    def mark_serving(self) -> None:
        """Record that the transport is ready to accept requests."""
        self._transition(LifecycleState.SERVING)

    def begin_draining(self) -> bool:
        """Stop accepting new invocations; return ``False`` if already draining."""
        if not self.accepting:
            return False
        self._transition(LifecycleState.DRAINING)
        return True

    @contextlib.asynccontextmanager
    async def track(self) -> AsyncIterator[None]:
        """Count the enclosed block as an in-flight invocation."""
        if not self.accepting:
            message = "Server is shutting down; no new tool calls are accepted"
            raise ServerShuttingDownError(message)
        self._in_flight += 1
        self._idle.clear()
        try:
            yield
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.set()

    async def drain(self, timeout: float) -> bool:
        """Wait up to *timeout* seconds for in-flight invocations, then stop.

        Returns ``True`` when every in-flight invocation finished in time.
        """
        if self._state is LifecycleState.STOPPED:
            return True
        self.begin_draining()
        completed = True
        if self._in_flight:
            logger.info("Draining %d in-flight tool call(s)", self._in_flight)
            try:
                await asyncio.wait_for(self._idle.wait(), timeout=timeout)
            except TimeoutError:
                completed = False
                logger.warning(
                    "Drain timed out with %d tool call(s) still running",
                    self._in_flight,
                    extra={"timeout": timeout},
                )
        self._transition(LifecycleState.STOPPED)
        return completed

    def _transition(self, target: LifecycleState) -> None:
        if target not in _TRANSITIONS[self._state]:
            message = f"cannot move from {self._state} to {target}"
            raise LifecycleStateError(message)
        logger.debug("Lifecycle %s -> %s", self._state, target)
        self._state = target


async def serve_until_signalled(
    server: Awaitable[None],
    lifecycle: Lifecycle,
    *,
    drain_timeout: float,
    signals: Sequence[signal.Signals] = DEFAULT_SHUTDOWN_SIGNALS,
) -> None:
    """Run *server* until it finishes or a shutdown signal arrives.

    On a signal the lifecycle drains in-flight invocations before the server
    task is cancelled.
    """
    loop = asyncio.get_running_loop()
    server_task = asyncio.ensure_future(server)
    stop_requested = asyncio.Event()
    installed: list[signal.Signals] = []
    for sig in signals:
        try:
            loop.add_signal_handler(sig, stop_requested.set)
        except (NotImplementedError, RuntimeError):  # pragma: no cover - non-POSIX loops
            continue
        installed.append(sig)

    stop_waiter = asyncio.ensure_future(stop_requested.wait())
    lifecycle.mark_serving()
    try:
        done, _ = await asyncio.wait(
            {server_task, stop_waiter}, return_when=asyncio.FIRST_COMPLETED,
        )
        if server_task in done:
            server_task.result()
        else:
            logger.info("Shutdown signal received")
            await lifecycle.drain(drain_timeout)
            server_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await server_task
    finally:
        stop_waiter.cancel()
        for sig in installed:
            loop.remove_signal_handler(sig)
        await lifecycle.drain(0)


__all__ = [
    "DEFAULT_SHUTDOWN_SIGNALS",
    "Lifecycle",
    "LifecycleState",
    "serve_until_signalled",
]
