#!/usr/bin/env python3
"""Pytest fixtures for subcoord tests.

Provides a scripted transport, a coordinator wired to it with no-jitter
randomness, and a recorder that replaces the retry loop's timers so
tests control which waits fire immediately.
"""

import asyncio
from collections.abc import Callable
from unittest.mock import MagicMock

import pytest

from subcoord.coordinator import SubscriptionCoordinator
from subcoord.retry_wait import start_wait
from subcoord.scripted_transport import ScriptedTransport

# Delay given to waits past the recorder's immediate budget; tests cancel
# long before it could fire.
PARKED_DELAY: float = 3600.0

FIXED_NOW: float = 1_000_000.0


class WaitRecorder:
    """Stand-in for start_wait that records each requested delay.

    The first `immediate` waits fire on the next loop iteration; later
    waits park until cancelled.
    """

    def __init__(self, immediate: int = 0) -> None:
        self.delays: list[float] = []
        self.immediate = immediate

    def __call__(self, delay: float) -> tuple[asyncio.Future[bool], asyncio.TimerHandle]:
        self.delays.append(delay)
        if len(self.delays) <= self.immediate:
            return start_wait(0)
        return start_wait(PARKED_DELAY)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until predicate holds or timeout passes."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not reached before timeout")
        await asyncio.sleep(0)


@pytest.fixture
def waits(monkeypatch: pytest.MonkeyPatch) -> WaitRecorder:
    """Patch the retry loop's timers with a WaitRecorder."""
    recorder = WaitRecorder()
    monkeypatch.setattr("subcoord.retry_loop.start_wait", recorder)
    return recorder


@pytest.fixture
def transport() -> ScriptedTransport:
    """Create a ScriptedTransport with acc1 bound to open connection 1."""
    transport = ScriptedTransport()
    transport.bind("acc1", 1)
    return transport


@pytest.fixture
def no_jitter() -> MagicMock:
    """Create a random source whose jitter is always zero."""
    rng = MagicMock()
    rng.uniform.return_value = 0.0
    return rng


@pytest.fixture
def coordinator(transport: ScriptedTransport, no_jitter: MagicMock) -> SubscriptionCoordinator:
    """Create a coordinator over the scripted transport with a fixed clock."""
    return SubscriptionCoordinator(transport, clock=lambda: FIXED_NOW, rng=no_jitter)
