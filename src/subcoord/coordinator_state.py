#!/usr/bin/env python3
"""Subscription coordinator state.

This module provides the CoordinatorState dataclass that groups the
state shared by the lifecycle handlers: the transport, the retry
registry, and the set of entities awaiting a reconnect resubscribe.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from subcoord.retry_registry import RetryRegistry
    from subcoord.transport import Transport


@dataclass
class CoordinatorState:
    """State for subscription coordination.

    Attributes:
        transport: The transport client.
        registry: Live retry loops keyed by subscription key.
        resubscribing: Entities with a reconnect resubscribe in progress.
            An entity leaves the set just before its jitter wait.
        rng: Source of jitter delays.
    """

    transport: Transport
    registry: RetryRegistry
    resubscribing: set[str] = field(default_factory=set)
    rng: random.Random = field(default_factory=random.Random)
