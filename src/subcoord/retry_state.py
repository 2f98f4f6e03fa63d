#!/usr/bin/env python3
"""Live control state of one per-key retry loop.

The registry maps each retrying key to exactly one RetryState. The loop
owns the backoff fields; cancel only touches the flag and the handles.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from tenacity import RetryCallState, wait_exponential

from subcoord.coordinator_constants import BACKOFF_MULTIPLIER, INITIAL_BACKOFF, MAX_BACKOFF
from subcoord.retry_wait import resolve_handle
from subcoord.subscription_key import SubscriptionKey


def make_backoff(
    initial: float = INITIAL_BACKOFF,
    maximum: float = MAX_BACKOFF,
) -> wait_exponential:
    """Build the backoff strategy: initial, doubling, capped at maximum."""
    return wait_exponential(
        multiplier=initial,
        min=initial,
        max=maximum,
        exp_base=BACKOFF_MULTIPLIER,
    )


def _new_call_state() -> RetryCallState:
    return RetryCallState(retry_object=None, fn=None, args=(), kwargs={})


@dataclass
class RetryState:
    """
    Control state for one retrying key.

    Attributes:
        key: The key this loop retries.
        disconnected_retry_mode: True if the loop was started by a
            disconnect. Informational only.
        active: Continue flag. Cleared by cancel; the loop exits at its
            next checkpoint once it is False.
        current_attempt: Handle for the in-flight subscribe attempt, or
            None between attempts.
        pending_wait: Handle for the current backoff or rate-limit wait,
            or None when not waiting.
        wait_timer: Timer that resolves pending_wait naturally.
        backoff: Strategy mapping the attempt counter to a delay.
        backoff_seconds: Delay of the next backoff wait.
        attempts: tenacity call state counting completed waits.
        task: The task running the loop.
    """

    key: SubscriptionKey
    disconnected_retry_mode: bool = False
    active: bool = True
    current_attempt: asyncio.Future[bool] | None = None
    pending_wait: asyncio.Future[bool] | None = None
    wait_timer: asyncio.TimerHandle | None = None
    backoff: wait_exponential = field(default_factory=make_backoff)
    backoff_seconds: float = 0.0
    attempts: RetryCallState = field(default_factory=_new_call_state)
    task: asyncio.Task[None] | None = None

    def __post_init__(self) -> None:
        self.backoff_seconds = self.backoff(self.attempts)

    def advance_backoff(self) -> float:
        """Return the delay to wait now and step to the next, longer one."""
        delay = self.backoff_seconds
        self.attempts.prepare_for_next_attempt()
        self.backoff_seconds = self.backoff(self.attempts)
        return delay

    def clear_wait(self) -> None:
        """Forget the pending wait and its timer."""
        if self.wait_timer is not None:
            self.wait_timer.cancel()
        self.pending_wait = None
        self.wait_timer = None

    def request_stop(self) -> None:
        """Clear the continue flag and force-resolve both handles with False.

        Does not interrupt an in-flight transport call; the loop observes
        the stop at its next checkpoint.
        """
        self.active = False
        if self.wait_timer is not None:
            self.wait_timer.cancel()
        resolve_handle(self.pending_wait, False)
        resolve_handle(self.current_attempt, False)
