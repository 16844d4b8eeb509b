"""Retry policy applied around a single provider call."""

from .retry import RetryPolicy, StatusCallback

__all__ = ["RetryPolicy", "StatusCallback"]
