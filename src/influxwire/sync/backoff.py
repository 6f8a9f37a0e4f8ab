"""Consecutive-failure tracking and backoff window."""

import threading
import time
from typing import Callable, Optional

from influxwire.utils.config import BackoffPolicy
from influxwire.utils.logging import get_logger

log = get_logger(__name__)


class BackoffState:
    """Decides whether a send may be attempted and learns from its outcome.

    Open while the failure count is at or below the policy threshold. The
    failure that takes the count past the threshold opens a fixed window
    during which sends are suppressed. Once the window has elapsed, the
    next attempt clears both the window and the count.

    All reads and updates of the (count, window) pair happen under one
    lock, so concurrent callers never lose an update or arm the window
    twice.
    """

    def __init__(
        self,
        policy: BackoffPolicy,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialise backoff state.

        Args:
            policy: Threshold and window length.
            clock: Monotonic clock in seconds.
        """
        self.policy = policy
        self._clock = clock
        self._lock = threading.Lock()
        self._consecutive_failures = 0
        self._backoff_until: Optional[float] = None

    def try_acquire(self) -> bool:
        """Return True if a send may be attempted now."""
        with self._lock:
            if self._backoff_until is None:
                return True

            if self._clock() < self._backoff_until:
                return False

            log.info(
                "influx_backoff_ended",
                consecutive_failures=self._consecutive_failures,
            )
            self._backoff_until = None
            self._consecutive_failures = 0
            return True

    def record_success(self) -> None:
        """Reset the failure count and clear any backoff window."""
        with self._lock:
            self._consecutive_failures = 0
            self._backoff_until = None

    def record_failure(self) -> bool:
        """Count a failed send.

        Failures reported while a window is active are ignored.

        Returns:
            True if this failure opened a backoff window.
        """
        with self._lock:
            now = self._clock()
            if self._backoff_until is not None and now < self._backoff_until:
                return False

            self._consecutive_failures += 1
            if self._consecutive_failures <= self.policy.failures_before_backoff:
                return False

            self._backoff_until = now + self.policy.backoff_period
            failures = self._consecutive_failures

        log.warning(
            "influx_backoff_started",
            consecutive_failures=failures,
            backoff_seconds=self.policy.backoff_period,
        )
        return True

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    @property
    def is_backing_off(self) -> bool:
        """True while a backoff window is active."""
        with self._lock:
            return (
                self._backoff_until is not None
                and self._clock() < self._backoff_until
            )

    def remaining(self) -> float:
        """Seconds left in the current backoff window, 0.0 when open."""
        with self._lock:
            if self._backoff_until is None:
                return 0.0
            return max(0.0, self._backoff_until - self._clock())
