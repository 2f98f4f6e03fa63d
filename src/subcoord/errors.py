#!/usr/bin/env python3
"""Subscription failure types raised by transports.

The retry loop only distinguishes rate limiting from everything else.
Rate limits carry a reason code; three of those codes mean the current
connection has hit a hard subscription ceiling and must be locked
instead of retried locally.
"""

from __future__ import annotations

from enum import Enum


class RateLimitReason(str, Enum):
    """Reason codes reported with a rate-limit failure."""

    USER_SUBSCRIPTION_LIMIT = "user_subscription_limit"
    SERVER_SUBSCRIPTION_LIMIT = "server_subscription_limit"
    USER_SERVER_SUBSCRIPTION_LIMIT = "user_server_subscription_limit"
    TOO_MANY_REQUESTS = "too_many_requests"


# Reasons that are permanent for the socket that reported them.
PERMANENT_LIMIT_REASONS: frozenset[str] = frozenset(
    {
        RateLimitReason.USER_SUBSCRIPTION_LIMIT.value,
        RateLimitReason.SERVER_SUBSCRIPTION_LIMIT.value,
        RateLimitReason.USER_SERVER_SUBSCRIPTION_LIMIT.value,
    }
)


def is_permanent_limit(reason_code: str | None) -> bool:
    """Return True if reason_code names a per-connection subscription limit."""
    if reason_code is None:
        return False
    return str(getattr(reason_code, "value", reason_code)) in PERMANENT_LIMIT_REASONS


class SubscriptionError(Exception):
    """
    Exception raised when a transport subscribe call fails.

    Any subclass other than RateLimitError is treated as transient by the
    retry loop: it is logged and the loop backs off and tries again.
    """

    pass


class RateLimitError(SubscriptionError):
    """
    Exception raised when the remote service rate limits a subscribe.

    Attributes:
        reason_code: Reason reported by the service.
        retry_at: Epoch seconds before which the service asks not to
            retry, or None if it gave no hint.
    """

    def __init__(
        self,
        reason_code: str,
        retry_at: float | None = None,
        message: str | None = None,
    ) -> None:
        self.reason_code = str(getattr(reason_code, "value", reason_code))
        self.retry_at = retry_at
        super().__init__(message or f"Rate limited: {self.reason_code}")

    @property
    def is_permanent(self) -> bool:
        """True if this limit applies to the whole connection."""
        return is_permanent_limit(self.reason_code)
