#!/usr/bin/env python3
"""Cancellable wait handles for the retry loop.

A handle is a future that resolves True when its timer fires and False
when it is force-resolved by a cancel. The retry loop awaits handles at
its checkpoints; cancel resolves them so the loop wakes and exits.
"""

from __future__ import annotations

import asyncio


def start_wait(delay: float) -> tuple[asyncio.Future[bool], asyncio.TimerHandle]:
    """Start a timer that resolves a fresh handle with True after delay.

    Must be called from inside a running event loop.

    Args:
        delay: Seconds until natural expiry.

    Returns:
        Tuple of (handle, timer). Cancel the timer when force-resolving.
    """
    loop = asyncio.get_running_loop()
    handle: asyncio.Future[bool] = loop.create_future()
    timer = loop.call_later(delay, resolve_handle, handle, True)
    return handle, timer


def resolve_handle(handle: asyncio.Future[bool] | None, value: bool) -> bool:
    """Resolve handle with value unless it is already done.

    Args:
        handle: The handle to resolve, or None.
        value: True to continue the loop, False to stop it.

    Returns:
        True if this call resolved the handle.
    """
    if handle is None or handle.done():
        return False
    handle.set_result(value)
    return True
