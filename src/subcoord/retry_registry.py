#!/usr/bin/env python3
"""Registry of live retry loops, at most one per key.

subscribe checks membership, registers and spawns in one synchronous
step, so concurrent callers on the same event loop can never start two
loops for a key. Entries are removed by the loop itself when it exits,
which means a cancelled key stays registered until its loop has drained.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine, Iterator
from typing import TYPE_CHECKING, Any

from subcoord.coordinator_constants import DEFAULT_INSTANCE_INDEX, INITIAL_BACKOFF, MAX_BACKOFF
from subcoord.retry_loop import run_retry_loop
from subcoord.retry_state import RetryState, make_backoff
from subcoord.subscription_key import SubscriptionKey

if TYPE_CHECKING:
    from subcoord.transport import Transport

logger = logging.getLogger(__name__)


class RetryRegistry:
    """Owns the per-key retry loops and the tasks running them.

    Attributes:
        transport: Transport the loops subscribe through.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        initial_backoff: float = INITIAL_BACKOFF,
        max_backoff: float = MAX_BACKOFF,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.transport = transport
        self._initial_backoff = initial_backoff
        self._max_backoff = max_backoff
        self._clock = clock
        self._states: dict[SubscriptionKey, RetryState] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False

    def __contains__(self, key: object) -> bool:
        return key in self._states

    def __iter__(self) -> Iterator[SubscriptionKey]:
        return iter(list(self._states))

    def __len__(self) -> int:
        return len(self._states)

    def get(self, key: SubscriptionKey) -> RetryState | None:
        """Return the live state for key, or None."""
        return self._states.get(key)

    def keys_for(self, entity_id: str) -> list[SubscriptionKey]:
        """Return every registered key whose entity is exactly entity_id."""
        return [key for key in self._states if key.entity_id == entity_id]

    def has_entity(self, entity_id: str) -> bool:
        """Return True if any instance of entity_id has a live loop."""
        return any(key.entity_id == entity_id for key in self._states)

    def subscribe(
        self,
        entity_id: str,
        instance_index: int = DEFAULT_INSTANCE_INDEX,
        disconnected_retry_mode: bool = False,
    ) -> asyncio.Task[None] | None:
        """Start a retry loop for the key unless one is already running.

        Must be called from inside a running event loop.

        Args:
            entity_id: Entity to subscribe.
            instance_index: Sub-stream of the entity.
            disconnected_retry_mode: Mark the loop as started by a disconnect.

        Returns:
            The task running the new loop, or None if the key was already
            retrying and this call joined the existing loop, or the
            registry is closed.

        Raises:
            RuntimeError: If no event loop is running. Nothing is registered.
        """
        key = SubscriptionKey(entity_id, instance_index)
        if self._closed:
            logger.debug("Registry closed, not subscribing %s", key)
            return None
        if key in self._states:
            logger.debug("Retry loop already running for %s, joining", key)
            return None
        asyncio.get_running_loop()
        state = RetryState(
            key=key,
            disconnected_retry_mode=disconnected_retry_mode,
            backoff=make_backoff(self._initial_backoff, self._max_backoff),
        )
        state.task = self.spawn(self._run(state), name=f"retry-{key}")
        self._states[key] = state
        return state.task

    def cancel(self, entity_id: str, instance_index: int = DEFAULT_INSTANCE_INDEX) -> bool:
        """Ask the key's loop to stop at its next checkpoint.

        Args:
            entity_id: Entity of the key.
            instance_index: Sub-stream of the key.

        Returns:
            True if a loop was registered for the key.
        """
        state = self._states.get(SubscriptionKey(entity_id, instance_index))
        if state is None:
            return False
        logger.debug("Cancelling retry loop for %s", state.key)
        state.request_stop()
        return True

    def cancel_all(self, entity_id: str) -> int:
        """Cancel every instance of entity_id. Returns how many were cancelled."""
        keys = self.keys_for(entity_id)
        for key in keys:
            self.cancel(key.entity_id, key.instance_index)
        return len(keys)

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        name: str | None = None,
    ) -> asyncio.Task[Any]:
        """Run coro as a tracked background task whose errors get logged."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    async def close(self) -> None:
        """Cancel every loop and wait for all tracked tasks to finish.

        Subscribes made after close are ignored.
        """
        self._closed = True
        for state in list(self._states.values()):
            state.request_stop()
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _run(self, state: RetryState) -> None:
        try:
            await run_retry_loop(state, self.transport, self._clock)
        finally:
            if self._states.get(state.key) is state:
                del self._states[state.key]

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task %s failed", task.get_name(), exc_info=exc)
