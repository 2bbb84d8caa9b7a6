"""Back-off policy for acquiring database connections."""

from __future__ import annotations

import bisect
import logging
import math
import threading
import time
from typing import Callable, TypeVar

from rendercache.config import DB_ERROR_WINDOW_SEC, DB_MAX_BACKOFF_SEC, DB_MAX_RETRIES
from rendercache.errors import DatabaseBusyError

T = TypeVar("T")

LOGGER = logging.getLogger(__name__)


class ConnectionRetryPolicy:
    """Retries a connection factory, backing off with the recent error rate.

    Every failure is timestamped.  Before computing a back-off, failures
    older than *error_window* seconds are forgotten; the back-off is then
    ``round(sqrt(n))`` seconds for ``n`` remaining failures, capped at
    *max_backoff*.  The history is shared by every caller of the policy, so
    a burst of failures slows all of them down.
    """

    def __init__(
        self,
        max_retries: int = DB_MAX_RETRIES,
        max_backoff: float = DB_MAX_BACKOFF_SEC,
        error_window: float = DB_ERROR_WINDOW_SEC,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._max_retries = max(1, max_retries)
        self._max_backoff = max_backoff
        self._error_window = error_window
        self._sleep = sleep
        self._clock = clock
        self._error_times: list[float] = []
        self._lock = threading.Lock()

    def call(self, connect: Callable[[], T], retry_on: tuple[type[BaseException], ...]) -> T:
        attempts = 0
        while True:
            try:
                return connect()
            except retry_on as exc:
                backoff = self.mark_and_sweep()
                attempts += 1
                if attempts >= self._max_retries:
                    raise DatabaseBusyError(
                        f"Cannot acquire connection: {exc}", backoff
                    ) from exc
                LOGGER.info("Sleeping for %.1fs then retry: %d", backoff, attempts)
                self._sleep(backoff)

    def mark_and_sweep(self) -> float:
        """Forget old failures, register a new one and return the back-off."""
        now = self._clock()
        with self._lock:
            cutoff = bisect.bisect_left(self._error_times, now - self._error_window)
            if cutoff:
                LOGGER.info("Removing %d from error times", cutoff)
                del self._error_times[:cutoff]
            recent = len(self._error_times)
            LOGGER.warning("Registering connection error; recent errors: %d", recent)
            self._error_times.append(now)
        return self.calculate_backoff(recent)

    def calculate_backoff(self, error_count: int) -> float:
        return min(float(round(math.sqrt(error_count))), self._max_backoff)
