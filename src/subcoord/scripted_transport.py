#!/usr/bin/env python3
"""In-memory transport driven by scripted subscribe outcomes.

Each key has a queue of outcomes. A subscribe call pops the next one:
None means success, an exception instance is raised. Once a key's queue
is empty every further subscribe succeeds. All calls are recorded so
callers can inspect what the coordinator did.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict, deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from subcoord.subscription_key import SubscriptionKey

logger = logging.getLogger(__name__)


@dataclass
class ScriptedTransport:
    """
    Transport whose subscribe results come from a script.

    Attributes:
        bindings: Connection index serving each entity.
        connected: Open state of each connection index.
        subscribe_delay: Seconds each subscribe call takes.
        calls: Every subscribe call as a SubscriptionKey, in order.
        unbound: Entities passed to unbind, in order.
        locks: (connection_index, metadata) pairs passed to lock_connection.
    """

    bindings: dict[str, int] = field(default_factory=dict)
    connected: dict[int, bool] = field(default_factory=dict)
    subscribe_delay: float = 0.0
    calls: list[SubscriptionKey] = field(default_factory=list)
    unbound: list[str] = field(default_factory=list)
    locks: list[tuple[int, dict[str, Any]]] = field(default_factory=list)
    _script: defaultdict[SubscriptionKey, deque[BaseException | None]] = field(
        default_factory=lambda: defaultdict(deque)
    )

    def script(
        self,
        entity_id: str,
        outcomes: Iterable[BaseException | None],
        instance_index: int = 0,
    ) -> None:
        """Queue outcomes for the key's next subscribe calls."""
        self._script[SubscriptionKey(entity_id, instance_index)].extend(outcomes)

    def bind(self, entity_id: str, connection_index: int, connected: bool = True) -> None:
        """Bind entity_id to a connection and set the connection's state."""
        self.bindings[entity_id] = connection_index
        self.connected[connection_index] = connected

    def calls_for(self, entity_id: str, instance_index: int = 0) -> int:
        """Return how many subscribe calls the key has received."""
        return self.calls.count(SubscriptionKey(entity_id, instance_index))

    async def subscribe(self, entity_id: str, instance_index: int) -> None:
        key = SubscriptionKey(entity_id, instance_index)
        self.calls.append(key)
        if self.subscribe_delay:
            await asyncio.sleep(self.subscribe_delay)
        queue = self._script[key]
        outcome = queue.popleft() if queue else None
        if outcome is not None:
            logger.debug("Scripted subscribe for %s raises %r", key, outcome)
            raise outcome
        logger.debug("Scripted subscribe for %s succeeds", key)

    def connection_binding_of(self, entity_id: str) -> int | None:
        return self.bindings.get(entity_id)

    def is_connected(self, connection_index: int) -> bool:
        return self.connected.get(connection_index, False)

    def unbind(self, entity_id: str) -> None:
        self.unbound.append(entity_id)
        self.bindings.pop(entity_id, None)

    def lock_connection(self, connection_index: int, metadata: dict[str, Any]) -> None:
        self.locks.append((connection_index, metadata))
