#!/usr/bin/env python3
"""Scripted coordinator runs for the CLI.

Wires a SubscriptionCoordinator to a ScriptedTransport, lets the retry
loops run for a fixed time, then closes the coordinator and reports what
happened.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

from subcoord.coordinator import SubscriptionCoordinator
from subcoord.coordinator_constants import INITIAL_BACKOFF, MAX_BACKOFF
from subcoord.errors import RateLimitError, SubscriptionError
from subcoord.scripted_transport import ScriptedTransport
from subcoord.subscription_key import SubscriptionKey

# Connection index every simulated entity is bound to.
SIMULATED_CONNECTION: int = 0


@dataclass
class SimulationResult:
    """
    Outcome of a simulation run.

    Attributes:
        calls: Subscribe calls in the order they were made.
        locks: Connection locks requested by the coordinator.
        retrying: Keys that still had a live loop when the run ended.
    """

    calls: list[SubscriptionKey] = field(default_factory=list)
    locks: list[tuple[int, dict[str, Any]]] = field(default_factory=list)
    retrying: list[SubscriptionKey] = field(default_factory=list)


async def simulate(
    entities: list[str],
    instance_index: int = 0,
    failures: int = 0,
    limit_reason: str | None = None,
    initial_backoff: float = INITIAL_BACKOFF,
    max_backoff: float = MAX_BACKOFF,
    run_for: float = 10.0,
) -> SimulationResult:
    """Subscribe each entity and let the coordinator run for run_for seconds.

    Args:
        entities: Entities to subscribe, all bound to one connection.
        instance_index: Instance index for every entity.
        failures: Generic failures scripted before success.
        limit_reason: If set, the first attempt is rate limited with this
            reason and a retry hint two backoffs away.
        initial_backoff: First delay between attempts.
        max_backoff: Cap on the delay between attempts.
        run_for: Seconds before everything is cancelled.

    Returns:
        The recorded calls, locks and still-retrying keys.
    """
    transport = ScriptedTransport()
    for entity_id in entities:
        transport.bind(entity_id, SIMULATED_CONNECTION)
        if limit_reason is not None:
            retry_at = time.time() + 2 * initial_backoff
            transport.script(entity_id, [RateLimitError(limit_reason, retry_at)], instance_index)
        else:
            outcomes = [SubscriptionError("scripted failure") for _ in range(failures)]
            transport.script(entity_id, outcomes, instance_index)

    coordinator = SubscriptionCoordinator(
        transport,
        initial_backoff=initial_backoff,
        max_backoff=max_backoff,
    )
    for entity_id in entities:
        coordinator.subscribe(entity_id, instance_index)
    await asyncio.sleep(run_for)
    retrying = coordinator.active_keys()
    await coordinator.close()
    return SimulationResult(calls=list(transport.calls), locks=list(transport.locks), retrying=retrying)
