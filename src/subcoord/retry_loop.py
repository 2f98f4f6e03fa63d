#!/usr/bin/env python3
"""Per-key subscribe retry loop.

Each retrying key runs one loop: subscribe, interpret the outcome, back
off, repeat. The loop never stops on its own. A successful subscribe is
followed by the same backoff wait as a failure, so the only way out is
a cancel observed at one of the two checkpoints (end of attempt, end of
wait).
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from subcoord.errors import RateLimitError
from subcoord.retry_wait import resolve_handle, start_wait

if TYPE_CHECKING:
    from subcoord.retry_state import RetryState
    from subcoord.transport import Transport

logger = logging.getLogger(__name__)


async def run_retry_loop(
    state: RetryState,
    transport: Transport,
    clock: Callable[[], float] = time.time,
) -> None:
    """Run the retry loop for state.key until it is cancelled.

    Args:
        state: The registered control state for the key.
        transport: Transport used for subscribe calls.
        clock: Wall clock in epoch seconds, compared to rate-limit hints.
    """
    loop = asyncio.get_running_loop()
    key = state.key
    logger.info("Retry loop started for %s (disconnected=%s)", key, state.disconnected_retry_mode)
    try:
        while True:
            state.current_attempt = loop.create_future()
            attempt = asyncio.ensure_future(attempt_subscribe(state, transport, clock))
            await asyncio.wait(
                {attempt, state.current_attempt},
                return_when=asyncio.FIRST_COMPLETED,
            )
            # A cancel may win the race; the transport call then runs on untouched
            attempt.add_done_callback(_log_attempt_failure)
            resolve_handle(state.current_attempt, True)
            state.current_attempt = None
            if not state.active:
                logger.debug("Cancel observed after attempt for %s", key)
                return

            delay = state.advance_backoff()
            state.pending_wait, state.wait_timer = start_wait(delay)
            logger.debug("Waiting %.3fs before next subscribe for %s", delay, key)
            keep_going = await state.pending_wait
            state.clear_wait()
            if not keep_going or not state.active:
                logger.debug("Cancel observed during backoff for %s", key)
                return
    finally:
        state.request_stop()
        state.current_attempt = None
        state.clear_wait()
        logger.info("Retry loop exited for %s", key)


async def attempt_subscribe(
    state: RetryState,
    transport: Transport,
    clock: Callable[[], float] = time.time,
) -> None:
    """Make one subscribe call and act on its outcome.

    Rate limits with a permanent reason unbind the entity and lock its
    connection. Other rate limits wait out whatever part of the
    server-requested delay the next backoff would not already cover. All
    other failures are logged and swallowed.

    Args:
        state: Control state of the calling loop.
        transport: Transport used for the subscribe call.
        clock: Wall clock in epoch seconds.
    """
    key = state.key
    logger.debug("Subscribing %s", key)
    try:
        await transport.subscribe(key.entity_id, key.instance_index)
    except RateLimitError as e:
        if e.is_permanent:
            lock_bound_connection(transport, state, e)
            return
        await _wait_for_retry_hint(state, e, clock)
    except Exception as e:
        logger.warning("Subscribe failed for %s: %s, will retry", key, e)
    else:
        logger.debug("Subscribe succeeded for %s", key)


def lock_bound_connection(
    transport: Transport,
    state: RetryState,
    error: RateLimitError,
) -> None:
    """Unbind the entity and lock the connection that hit a hard limit."""
    key = state.key
    connection_index = transport.connection_binding_of(key.entity_id)
    logger.warning(
        "Subscription limit %s for %s on connection %s, locking it",
        error.reason_code, key, connection_index,
    )
    transport.unbind(key.entity_id)
    if connection_index is None:
        return
    transport.lock_connection(
        connection_index,
        {
            "reason": error.reason_code,
            "entity_id": key.entity_id,
            "instance_index": key.instance_index,
            "retry_at": error.retry_at,
        },
    )


async def _wait_for_retry_hint(
    state: RetryState,
    error: RateLimitError,
    clock: Callable[[], float],
) -> None:
    if not state.active:
        logger.debug("Rate limit for %s arrived after cancel, ignoring", state.key)
        return
    if error.retry_at is None:
        logger.warning("Rate limited for %s (%s), no retry hint", state.key, error.reason_code)
        return
    extra = error.retry_at - clock() - state.backoff_seconds
    if extra <= 0:
        logger.debug("Rate limit hint for %s already covered by backoff", state.key)
        return
    logger.warning(
        "Rate limited for %s (%s), delaying %.3fs beyond backoff",
        state.key, error.reason_code, extra,
    )
    state.pending_wait, state.wait_timer = start_wait(extra)
    try:
        await state.pending_wait
    finally:
        state.clear_wait()


def _log_attempt_failure(attempt: asyncio.Future[None]) -> None:
    if attempt.cancelled():
        return
    exc = attempt.exception()
    if exc is not None:
        logger.error("Subscribe attempt crashed: %s", exc)
