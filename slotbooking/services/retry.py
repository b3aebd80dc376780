"""
Bounded retry with exponential backoff for upstream calls.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from ..domain.exceptions import UpstreamUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryPolicy:
    """How often and how patiently to retry an unavailable upstream."""

    def __init__(
        self,
        attempts: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 4.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if attempts < 1:
            raise ValueError(f"attempts must be >= 1, got {attempts}")
        self.attempts = attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.sleep = sleep

    def call(self, func: Callable[..., T], *args, **kwargs) -> T:
        """
        Call ``func``, retrying on ``UpstreamUnavailable``.

        Any other exception propagates immediately. After the last attempt
        the ``UpstreamUnavailable`` is re-raised to the caller.
        """
        attempt = 0
        delay = self.base_delay
        while True:
            try:
                return func(*args, **kwargs)
            except UpstreamUnavailable as exc:
                attempt += 1
                if attempt >= self.attempts:
                    raise
                logger.warning(
                    "Retrying %s after error %s (attempt %s/%s, delay %.1fs)",
                    getattr(func, "__name__", repr(func)),
                    exc,
                    attempt,
                    self.attempts,
                    delay,
                )
                self.sleep(delay)
                delay = min(self.max_delay, delay * 2)


NO_RETRY = RetryPolicy(attempts=1)
