from __future__ import annotations

import logging
import sys

_INSTALLED_HANDLERS: set[str] = set()

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def ensure_console_logger(
    logger: logging.Logger,
    handler_name: str,
    *,
    level: int = logging.INFO,
    fmt: str = LOG_FORMAT,
) -> None:
    """Attach one named stderr handler to *logger*, at most once per process."""
    if handler_name in _INSTALLED_HANDLERS:
        logger.setLevel(level)
        return
    for handler in logger.handlers:
        if getattr(handler, "name", None) == handler_name:
            _INSTALLED_HANDLERS.add(handler_name)
            logger.setLevel(level)
            return
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.name = handler_name
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)
    logger.setLevel(level)
    _INSTALLED_HANDLERS.add(handler_name)
