#!/usr/bin/env python3
"""Handlers for transport lifecycle signals.

The transport reports subscribe timeouts, dropped subscriptions and
whole-connection reconnects. Each handler turns its signal into
subscribe or cancel calls on the retry registry. Handlers never raise:
failures are logged and, for reconnects, isolated per entity.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from subcoord.coordinator_constants import (
    DEFAULT_INSTANCE_INDEX,
    DISCONNECT_JITTER_MAX,
    DISCONNECT_JITTER_MIN,
    RECONNECT_JITTER_MAX,
    RECONNECT_POLL_INTERVAL,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from subcoord.coordinator_state import CoordinatorState

logger = logging.getLogger(__name__)


def handle_timeout(
    state: CoordinatorState,
    entity_id: str,
    instance_index: int = DEFAULT_INSTANCE_INDEX,
) -> asyncio.Task[None] | None:
    """Retry a subscribe that timed out, if its connection is still up.

    Args:
        state: The coordinator state.
        entity_id: Entity whose subscribe timed out.
        instance_index: Sub-stream that timed out.

    Returns:
        The new retry loop task, or None if nothing was started.
    """
    connection_index = state.transport.connection_binding_of(entity_id)
    if connection_index is None or not state.transport.is_connected(connection_index):
        logger.debug("Timeout for %s:%s ignored, connection not up", entity_id, instance_index)
        return None
    logger.info("Subscribe timed out for %s:%s, retrying", entity_id, instance_index)
    return state.registry.subscribe(entity_id, instance_index)


async def handle_disconnected(
    state: CoordinatorState,
    entity_id: str,
    instance_index: int = DEFAULT_INSTANCE_INDEX,
) -> None:
    """Resubscribe a dropped stream after a random jitter.

    The jitter spreads out resubscribes when many entities drop at once.
    Nothing is started if the entity lost its connection binding while
    waiting.

    Args:
        state: The coordinator state.
        entity_id: Entity whose stream dropped.
        instance_index: Sub-stream that dropped.
    """
    delay = state.rng.uniform(DISCONNECT_JITTER_MIN, DISCONNECT_JITTER_MAX)
    logger.debug("Disconnect for %s:%s, resubscribing in %.3fs", entity_id, instance_index, delay)
    await asyncio.sleep(delay)
    if state.transport.connection_binding_of(entity_id) is None:
        logger.info("Entity %s no longer bound, skipping resubscribe", entity_id)
        return
    state.registry.subscribe(entity_id, instance_index, disconnected_retry_mode=True)


async def handle_reconnected(
    state: CoordinatorState,
    connection_index: int,
    entity_ids: Iterable[str],
) -> None:
    """Restart subscriptions after a connection was replaced.

    First cancels every loop targeting the replaced connection, then
    resubscribes each listed entity once its stale loops have drained.
    A failure for one entity is logged and does not affect the others.

    Args:
        state: The coordinator state.
        connection_index: Index of the connection that reconnected.
        entity_ids: Entities to resubscribe on the new connection.
    """
    for key in list(state.registry):
        try:
            if state.transport.connection_binding_of(key.entity_id) == connection_index:
                state.registry.cancel(key.entity_id, key.instance_index)
        except Exception:
            logger.exception("Failed to cancel %s on reconnect", key)

    entity_ids = list(entity_ids)
    results = await asyncio.gather(
        *(resubscribe_after_drain(state, entity_id) for entity_id in entity_ids),
        return_exceptions=True,
    )
    for entity_id, result in zip(entity_ids, results):
        if isinstance(result, Exception):
            logger.error("Resubscribe after reconnect failed for %s: %s", entity_id, result)


async def resubscribe_after_drain(state: CoordinatorState, entity_id: str) -> None:
    """Resubscribe entity_id once none of its retry loops remain.

    The entity stays marked as resubscribing from the start of the drain
    until its subscribe has been issued; requests for it in that window
    are dropped.

    Args:
        state: The coordinator state.
        entity_id: Entity to resubscribe at its default instance.
    """
    if entity_id in state.resubscribing:
        logger.debug("Resubscribe for %s already pending", entity_id)
        return
    state.resubscribing.add(entity_id)
    try:
        while state.registry.has_entity(entity_id):
            await asyncio.sleep(RECONNECT_POLL_INTERVAL)
        delay = state.rng.uniform(0, RECONNECT_JITTER_MAX)
        logger.debug("Resubscribing %s after reconnect in %.3fs", entity_id, delay)
        await asyncio.sleep(delay)
        state.registry.subscribe(entity_id)
    finally:
        state.resubscribing.discard(entity_id)
