#!/usr/bin/env python3
"""Interface of the transport client the coordinator drives.

The transport owns the websocket connections and the binding of each
entity to one of them. The coordinator only queries bindings and asks
for subscribes, unbinds and connection locks.
"""

from __future__ import annotations

from typing import Any, Protocol


class Transport(Protocol):
    """Transport client collaborator.

    subscribe may raise RateLimitError or any other exception; everything
    else is synchronous and expected not to raise.
    """

    async def subscribe(self, entity_id: str, instance_index: int) -> Any:
        """Subscribe the entity's stream on its bound connection."""
        ...

    def connection_binding_of(self, entity_id: str) -> int | None:
        """Return the index of the connection serving entity_id, or None."""
        ...

    def is_connected(self, connection_index: int) -> bool:
        """Return True if the connection is currently open."""
        ...

    def unbind(self, entity_id: str) -> None:
        """Remove the entity's connection binding."""
        ...

    def lock_connection(self, connection_index: int, metadata: dict[str, Any]) -> None:
        """Stop the connection from accepting new subscriptions."""
        ...
