#!/usr/bin/env python3
"""Subscription coordinator.

This module provides SubscriptionCoordinator, the entry point used by
the transport and by callers. It wraps the retry registry and the
lifecycle handlers:
- retry_registry: one retry loop per key, cancel, cancel_all
- lifecycle_handlers: timeout, disconnect and reconnect signals
- coordinator_state: CoordinatorState shared by the handlers

Lifecycle signals are fire-and-forget: each on_* method returns at once
and runs its work in a tracked task whose failures are logged.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Callable, Iterable

from subcoord.coordinator_constants import DEFAULT_INSTANCE_INDEX, INITIAL_BACKOFF, MAX_BACKOFF
from subcoord.coordinator_state import CoordinatorState
from subcoord.lifecycle_handlers import handle_disconnected, handle_reconnected, handle_timeout
from subcoord.retry_registry import RetryRegistry
from subcoord.retry_state import RetryState
from subcoord.subscription_key import SubscriptionKey
from subcoord.transport import Transport

__all__ = ["CoordinatorState", "SubscriptionCoordinator", "SubscriptionKey"]


class SubscriptionCoordinator:
    """Keeps every requested stream subscribed through transport failures.

    Must be used from a single running event loop.

    Args:
        transport: The transport client.
        initial_backoff: First delay between attempts, in seconds.
        max_backoff: Cap on the delay between attempts, in seconds.
        clock: Wall clock in epoch seconds, used with rate-limit hints.
        rng: Source of jitter delays.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        initial_backoff: float = INITIAL_BACKOFF,
        max_backoff: float = MAX_BACKOFF,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        registry = RetryRegistry(
            transport,
            initial_backoff=initial_backoff,
            max_backoff=max_backoff,
            clock=clock,
        )
        self.state = CoordinatorState(
            transport=transport,
            registry=registry,
            rng=rng if rng is not None else random.Random(),
        )

    @property
    def registry(self) -> RetryRegistry:
        return self.state.registry

    def subscribe(
        self,
        entity_id: str,
        instance_index: int = DEFAULT_INSTANCE_INDEX,
        disconnected_retry_mode: bool = False,
    ) -> asyncio.Task[None] | None:
        """Keep retrying the key's subscribe until cancelled.

        Joins the running loop if the key is already retrying.
        """
        return self.registry.subscribe(entity_id, instance_index, disconnected_retry_mode)

    def cancel(self, entity_id: str, instance_index: int = DEFAULT_INSTANCE_INDEX) -> bool:
        return self.registry.cancel(entity_id, instance_index)

    def cancel_all(self, entity_id: str) -> int:
        return self.registry.cancel_all(entity_id)

    def on_timeout(
        self,
        entity_id: str,
        instance_index: int = DEFAULT_INSTANCE_INDEX,
    ) -> asyncio.Task[None] | None:
        return handle_timeout(self.state, entity_id, instance_index)

    def on_disconnected(
        self,
        entity_id: str,
        instance_index: int = DEFAULT_INSTANCE_INDEX,
    ) -> asyncio.Task[None]:
        return self.registry.spawn(
            handle_disconnected(self.state, entity_id, instance_index),
            name=f"disconnected-{entity_id}:{instance_index}",
        )

    def on_reconnected(
        self,
        connection_index: int,
        entity_ids: Iterable[str],
    ) -> asyncio.Task[None]:
        return self.registry.spawn(
            handle_reconnected(self.state, connection_index, list(entity_ids)),
            name=f"reconnected-{connection_index}",
        )

    def is_retrying(self, entity_id: str, instance_index: int = DEFAULT_INSTANCE_INDEX) -> bool:
        return SubscriptionKey(entity_id, instance_index) in self.registry

    def has_active(self, entity_id: str) -> bool:
        """True if any instance of entity_id is retrying."""
        return self.registry.has_entity(entity_id)

    def retry_state(
        self,
        entity_id: str,
        instance_index: int = DEFAULT_INSTANCE_INDEX,
    ) -> RetryState | None:
        return self.registry.get(SubscriptionKey(entity_id, instance_index))

    def active_keys(self) -> list[SubscriptionKey]:
        return list(self.registry)

    def is_resubscribing(self, entity_id: str) -> bool:
        return entity_id in self.state.resubscribing

    async def close(self) -> None:
        """Stop every loop and wait for pending handler tasks."""
        await self.registry.close()
