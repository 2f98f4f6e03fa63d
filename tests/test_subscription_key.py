#!/usr/bin/env python3
"""Tests for subscription key rendering and parsing."""
import pytest

from subcoord.subscription_key import SubscriptionKey


def test_key_renders_entity_colon_index() -> None:
    """Test str() gives entity:index with a default index of 0."""
    assert str(SubscriptionKey("acc1")) == "acc1:0"
    assert str(SubscriptionKey("acc1", 3)) == "acc1:3"


def test_parse_splits_at_last_colon() -> None:
    """Test entity ids containing colons survive parsing."""
    assert SubscriptionKey.parse("user:42:1") == SubscriptionKey("user:42", 1)


def test_parse_without_index_uses_default() -> None:
    """Test a bare entity id parses to instance 0."""
    assert SubscriptionKey.parse("acc1") == SubscriptionKey("acc1", 0)


@pytest.mark.parametrize("text", ["", ":1", "acc1:", "acc1:-1", "acc1:x"])
def test_parse_rejects_malformed_keys(text: str) -> None:
    """Test malformed keys raise ValueError."""
    with pytest.raises(ValueError):
        SubscriptionKey.parse(text)
