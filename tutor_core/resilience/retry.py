"""Bounded retry with fixed backoff around one provider call.

Only rate-limited failures (``FailureKind.RATE_LIMITED``) are retried. Any
other provider error propagates immediately; once the retry budget is spent a
``RetryExhaustedError`` is raised instead of re-raising the last 429, so the
router can tell exhaustion apart from a hard failure in its logs.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from tutor_core.domain.exceptions import ProviderError, RetryExhaustedError
from tutor_core.infrastructure.logging.logger import logger

StatusCallback = Callable[[str], None]


class RetryPolicy:
    def __init__(
        self,
        max_retries: int = 1,
        backoff_seconds: float = 3.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    @classmethod
    def from_settings(cls, cfg, sleep: Callable[[float], None] = time.sleep) -> "RetryPolicy":
        return cls(
            max_retries=getattr(cfg, "max_retries", 1),
            backoff_seconds=getattr(cfg, "retry_backoff_seconds", 3.0),
            sleep=sleep,
        )

    def run(
        self,
        call: Callable[[], str],
        provider: str,
        on_status: Optional[StatusCallback] = None,
    ) -> str:
        """Invoke ``call`` until it succeeds, fails hard, or the budget runs out.

        ``on_status`` is notified twice per retry: before the backoff wait and
        right before the repeated attempt.
        """

        attempt = 0
        while True:
            attempt += 1
            try:
                return call()
            except ProviderError as exc:
                if not exc.retryable:
                    raise
                if attempt > self.max_retries:
                    _log(logging.WARNING, "retry.exhausted", provider=provider, attempts=attempt, error=exc.message)
                    raise RetryExhaustedError(provider=provider, attempts=attempt, last_error=exc) from exc
                _log(logging.WARNING, "retry.rate_limited", provider=provider, attempt=attempt, backoff=self.backoff_seconds)
                _notify(on_status, f"Server busy (High Traffic). Retrying in {self.backoff_seconds:g} seconds...")
                self._sleep(self.backoff_seconds)
                _notify(on_status, "Retrying now...")


def _notify(on_status: Optional[StatusCallback], message: str) -> None:
    if on_status is not None:
        on_status(message)


def _log(level: int, message: str, **fields) -> None:
    logger.log(level, message, extra={"extra": fields})
