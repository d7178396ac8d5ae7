"""Tests for lifecycle tracking and in-flight draining."""

from __future__ import annotations

import asyncio
import os
import signal

import pytest

from sfbridge.core.errors import LifecycleStateError, ServerShuttingDownError
from sfbridge.core.lifecycle import Lifecycle, LifecycleState, serve_until_signalled


def test_transitions_follow_the_lifecycle() -> None:
    """A lifecycle moves from starting through serving to draining."""
    lifecycle = Lifecycle()
    assert lifecycle.state is LifecycleState.STARTING
    assert lifecycle.accepting

    lifecycle.mark_serving()
    assert lifecycle.state is LifecycleState.SERVING

    assert lifecycle.begin_draining() is True
    assert lifecycle.begin_draining() is False
    assert lifecycle.state is LifecycleState.DRAINING
    assert not lifecycle.accepting


def test_illegal_transition_is_rejected() -> None:
    """A draining lifecycle cannot go back to serving."""
    lifecycle = Lifecycle()
    lifecycle.begin_draining()

    with pytest.raises(LifecycleStateError, match="cannot move from draining to serving"):
        lifecycle.mark_serving()


def test_drain_waits_for_in_flight_invocations() -> None:
    """Draining completes only after running invocations finish."""

    async def scenario() -> tuple[bool, Lifecycle, list[str]]:
        lifecycle = Lifecycle()
        lifecycle.mark_serving()
        entered = asyncio.Event()
        release = asyncio.Event()
        events: list[str] = []

        async def call() -> None:
            async with lifecycle.track():
                entered.set()
                await release.wait()
                events.append("call finished")

        task = asyncio.create_task(call())
        await entered.wait()
        assert lifecycle.in_flight == 1

        drain = asyncio.create_task(lifecycle.drain(5))
        await asyncio.sleep(0)
        assert lifecycle.state is LifecycleState.DRAINING
        assert not drain.done()

        with pytest.raises(ServerShuttingDownError):
            async with lifecycle.track():
                pass  # pragma: no cover - never reached

        release.set()
        completed = await drain
        events.append("drained")
        await task
        return completed, lifecycle, events

    completed, lifecycle, events = asyncio.run(scenario())

    assert completed is True
    assert events == ["call finished", "drained"]
    assert lifecycle.state is LifecycleState.STOPPED
    assert lifecycle.in_flight == 0


def test_drain_gives_up_after_timeout() -> None:
    """A stuck invocation does not block shutdown past the drain timeout."""

    async def scenario() -> tuple[bool, Lifecycle]:
        lifecycle = Lifecycle()
        entered = asyncio.Event()

        async def stuck() -> None:
            async with lifecycle.track():
                entered.set()
                await asyncio.sleep(30)

        task = asyncio.create_task(stuck())
        await entered.wait()
        completed = await lifecycle.drain(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return completed, lifecycle

    completed, lifecycle = asyncio.run(scenario())

    assert completed is False
    assert lifecycle.state is LifecycleState.STOPPED


def test_drain_is_idempotent_once_stopped() -> None:
    """Calling drain on a stopped lifecycle is a no-op."""

    async def scenario() -> tuple[bool, bool]:
        lifecycle = Lifecycle()
        return await lifecycle.drain(0), await lifecycle.drain(0)

    assert asyncio.run(scenario()) == (True, True)


def test_serve_until_signalled_stops_when_server_finishes() -> None:
    """A server that returns on its own leaves the lifecycle stopped."""
    lifecycle = Lifecycle()

    async def server() -> None:
        assert lifecycle.state is LifecycleState.SERVING

    asyncio.run(serve_until_signalled(server(), lifecycle, drain_timeout=1))

    assert lifecycle.state is LifecycleState.STOPPED


def test_serve_until_signalled_drains_then_cancels_on_signal() -> None:
    """A shutdown signal drains the lifecycle before cancelling the server."""
    lifecycle = Lifecycle()
    observed: list[str] = []

    async def server() -> None:
        os.kill(os.getpid(), signal.SIGUSR1)
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            observed.append(str(lifecycle.state))
            raise

    asyncio.run(
        serve_until_signalled(
            server(), lifecycle, drain_timeout=1, signals=(signal.SIGUSR1,),
        ),
    )

    assert observed == ["stopped"]
    assert lifecycle.state is LifecycleState.STOPPED
