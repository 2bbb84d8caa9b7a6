"""Lightweight wall-clock instrumentation for bulk operations."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator

LOGGER = logging.getLogger("rendercache.timing")


@contextmanager
def stopwatch(tag: str, logger: logging.Logger | None = None) -> Iterator[None]:
    """Log the elapsed time of the enclosed block at DEBUG level under *tag*.

    The time is logged even when the block raises.
    """

    log = logger or LOGGER
    start = time.perf_counter()
    try:
        yield
    finally:
        if log.isEnabledFor(logging.DEBUG):
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            log.debug("start[%.0f] time[%.2f] tag[%s]", start * 1000.0, elapsed_ms, tag)
