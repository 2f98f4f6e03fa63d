#!/usr/bin/env python3
"""Identity of one retryable subscription stream.

A key pairs an entity (the account or resource being subscribed to) with
an instance index that distinguishes concurrent sub-streams of the same
entity. Keys render as ``entity:index``.
"""

from __future__ import annotations

from typing import NamedTuple

from subcoord.coordinator_constants import DEFAULT_INSTANCE_INDEX


class SubscriptionKey(NamedTuple):
    """Entity id plus instance index.

    Attributes:
        entity_id: Identifier of the subscribed entity.
        instance_index: Non-negative sub-stream index.
    """

    entity_id: str
    instance_index: int = DEFAULT_INSTANCE_INDEX

    def __str__(self) -> str:
        return f"{self.entity_id}:{self.instance_index}"

    @classmethod
    def parse(cls, text: str) -> SubscriptionKey:
        """Parse a key from its ``entity:index`` rendering.

        The entity id may itself contain colons; the text is split at the
        last one. Text without a colon is treated as an entity at the
        default instance.

        Args:
            text: Rendered key.

        Returns:
            The parsed key.

        Raises:
            ValueError: If the entity is empty or the index is not a
                non-negative integer.
        """
        entity_id, sep, index_text = text.rpartition(":")
        if not sep:
            entity_id, index_text = text, str(DEFAULT_INSTANCE_INDEX)
        if not entity_id:
            raise ValueError(f"Missing entity id in key: {text!r}")
        if not index_text.isdigit():
            raise ValueError(f"Invalid instance index in key: {text!r}")
        return cls(entity_id, int(index_text))
