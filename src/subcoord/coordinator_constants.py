#!/usr/bin/env python3
"""Constants for subscription retry and lifecycle timing.

These constants control the exponential backoff of the per-key retry
loop and the jitter applied when reacting to transport lifecycle events.
"""

# Retry parameters for exponential backoff between subscribe attempts.
# First delay between attempts in seconds.
INITIAL_BACKOFF: float = 3.0

# Maximum delay between attempts in seconds.
MAX_BACKOFF: float = 300.0

# Multiplier for exponential backoff (delay = initial * multiplier^attempt).
BACKOFF_MULTIPLIER: float = 2.0

# Jitter window before resubscribing after a disconnect, in seconds.
DISCONNECT_JITTER_MIN: float = 1.0
DISCONNECT_JITTER_MAX: float = 5.0

# Upper bound of the jitter before resubscribing after a reconnect.
RECONNECT_JITTER_MAX: float = 5.0

# How often a reconnect resubscribe checks whether stale loops drained.
RECONNECT_POLL_INTERVAL: float = 1.0

# Instance index used when none is given.
DEFAULT_INSTANCE_INDEX: int = 0
