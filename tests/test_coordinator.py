#!/usr/bin/env python3
"""Tests for the SubscriptionCoordinator facade."""
import pytest

from conftest import WaitRecorder, wait_until
from subcoord.coordinator import SubscriptionCoordinator
from subcoord.scripted_transport import ScriptedTransport
from subcoord.subscription_key import SubscriptionKey


@pytest.mark.asyncio
async def test_queries_reflect_live_loops(
    coordinator: SubscriptionCoordinator, waits: WaitRecorder
) -> None:
    """Test is_retrying, has_active and active_keys track subscribes."""
    coordinator.subscribe("acc1", 1)

    assert coordinator.is_retrying("acc1", 1)
    assert not coordinator.is_retrying("acc1", 0)
    assert coordinator.has_active("acc1")
    assert coordinator.active_keys() == [SubscriptionKey("acc1", 1)]
    assert coordinator.retry_state("acc1", 0) is None
    await coordinator.close()


@pytest.mark.asyncio
async def test_cancel_and_cancel_all_delegate_to_registry(
    coordinator: SubscriptionCoordinator, waits: WaitRecorder
) -> None:
    """Test cancel reports presence and cancel_all counts instances."""
    coordinator.subscribe("acc1", 0)
    coordinator.subscribe("acc1", 1)
    await wait_until(lambda: len(waits.delays) == 2)

    assert coordinator.cancel("acc1", 5) is False
    assert coordinator.cancel_all("acc1") == 2
    await wait_until(lambda: not coordinator.has_active("acc1"))
    await coordinator.close()


@pytest.mark.asyncio
async def test_close_leaves_nothing_running(
    coordinator: SubscriptionCoordinator, transport: ScriptedTransport, waits: WaitRecorder
) -> None:
    """Test close cancels loops and pending handler tasks."""
    coordinator.subscribe("acc1")
    coordinator.on_disconnected("acc1", 1)

    await coordinator.close()

    assert coordinator.active_keys() == []
    assert coordinator.subscribe("acc1") is None

