#!/usr/bin/env python3
"""Tests for the retry registry."""
import asyncio
import logging

import pytest

from conftest import WaitRecorder, wait_until
from subcoord.retry_registry import RetryRegistry
from subcoord.scripted_transport import ScriptedTransport
from subcoord.subscription_key import SubscriptionKey


@pytest.fixture
def registry(transport: ScriptedTransport) -> RetryRegistry:
    """Create a registry over the scripted transport."""
    return RetryRegistry(transport)


@pytest.mark.asyncio
async def test_subscribe_registers_key_before_returning(
    registry: RetryRegistry, waits: WaitRecorder
) -> None:
    """Test the key is registered synchronously with a live state."""
    task = registry.subscribe("acc1", 2, disconnected_retry_mode=True)

    key = SubscriptionKey("acc1", 2)
    assert task is not None
    assert key in registry
    state = registry.get(key)
    assert state is not None
    assert state.active
    assert state.disconnected_retry_mode
    assert state.task is task
    await registry.close()


@pytest.mark.asyncio
async def test_second_subscribe_joins_existing_loop(
    registry: RetryRegistry, transport: ScriptedTransport, waits: WaitRecorder
) -> None:
    """Test subscribing an already retrying key starts nothing new."""
    transport.subscribe_delay = 0.01
    first = registry.subscribe("acc1")
    second = registry.subscribe("acc1")

    assert first is not None
    assert second is None
    assert len(registry) == 1

    await wait_until(lambda: len(waits.delays) == 1)
    assert transport.calls_for("acc1") == 1
    await registry.close()


@pytest.mark.asyncio
async def test_concurrent_subscribes_start_one_loop(
    registry: RetryRegistry, transport: ScriptedTransport, waits: WaitRecorder
) -> None:
    """Test racing subscribe calls from many tasks yield a single loop."""
    async def racer() -> asyncio.Task[None] | None:
        await asyncio.sleep(0)
        return registry.subscribe("acc1")

    results = await asyncio.gather(*(racer() for _ in range(10)))

    assert sum(result is not None for result in results) == 1
    await wait_until(lambda: len(waits.delays) == 1)
    assert transport.calls_for("acc1") == 1
    await registry.close()


@pytest.mark.asyncio
async def test_cancel_mid_wait_exits_within_one_tick(
    registry: RetryRegistry, waits: WaitRecorder
) -> None:
    """Test cancel during backoff removes the key on the next loop step."""
    task = registry.subscribe("acc1")
    await wait_until(lambda: len(waits.delays) == 1)

    assert registry.cancel("acc1") is True
    await asyncio.sleep(0)

    assert SubscriptionKey("acc1") not in registry
    assert task is not None and task.done()


@pytest.mark.asyncio
async def test_cancel_unknown_key_returns_false(registry: RetryRegistry) -> None:
    """Test cancel on an absent key is a no-op."""
    assert registry.cancel("nobody") is False


@pytest.mark.asyncio
async def test_cancelled_key_joins_until_loop_drains(
    registry: RetryRegistry, waits: WaitRecorder
) -> None:
    """Test a subscribe right after cancel joins the draining loop."""
    task = registry.subscribe("acc1")
    await wait_until(lambda: len(waits.delays) == 1)

    registry.cancel("acc1")
    assert registry.subscribe("acc1") is None
    await task

    again = registry.subscribe("acc1")
    assert again is not None
    await registry.close()


@pytest.mark.asyncio
async def test_cancel_all_matches_entity_exactly(
    registry: RetryRegistry, waits: WaitRecorder
) -> None:
    """Test cancel_all("A") stops every A instance but leaves AB alone."""
    registry.subscribe("A", 0)
    registry.subscribe("A", 1)
    registry.subscribe("AB", 0)
    await wait_until(lambda: len(waits.delays) == 3)

    assert registry.cancel_all("A") == 2
    await wait_until(lambda: len(registry) == 1)

    assert list(registry) == [SubscriptionKey("AB", 0)]
    assert registry.has_entity("AB")
    assert not registry.has_entity("A")
    await registry.close()


@pytest.mark.asyncio
async def test_close_stops_loops_and_refuses_new_ones(
    registry: RetryRegistry, waits: WaitRecorder
) -> None:
    """Test close drains every loop and ignores later subscribes."""
    registry.subscribe("acc1")
    registry.subscribe("acc2")
    await wait_until(lambda: len(waits.delays) == 2)

    await registry.close()

    assert len(registry) == 0
    assert registry.subscribe("acc3") is None


@pytest.mark.asyncio
async def test_spawned_task_failure_is_logged(
    registry: RetryRegistry, caplog: pytest.LogCaptureFixture
) -> None:
    """Test an exception in a spawned task reaches the log, not the caller."""
    async def explode() -> None:
        raise RuntimeError("kaboom")

    with caplog.at_level(logging.ERROR):
        task = registry.spawn(explode(), name="exploder")
        await asyncio.gather(task, return_exceptions=True)
        await asyncio.sleep(0)

    assert "Background task exploder failed" in caplog.text


def test_subscribe_without_running_loop_registers_nothing(registry: RetryRegistry) -> None:
    """Test subscribe outside an event loop raises and leaves no stale key."""
    with pytest.raises(RuntimeError):
        registry.subscribe("acc1")

    assert len(registry) == 0
    assert SubscriptionKey("acc1") not in registry
