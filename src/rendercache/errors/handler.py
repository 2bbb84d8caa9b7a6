import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from rendercache.events.bus import Event, EventBus


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(kw_only=True)
class ErrorOccurredEvent(Event):
    error: Exception
    severity: ErrorSeverity
    context: dict = field(default_factory=dict)


class ErrorHandler:
    """Logs an error, publishes it on the bus and notifies an optional listener.

    Message formatting for end users belongs to whoever registers the
    callback; the engine itself never calls this.
    """

    def __init__(self, logger: logging.Logger, event_bus: EventBus):
        self._logger = logger
        self._events = event_bus
        self._callback: Optional[Callable[[str, ErrorSeverity], None]] = None

    def register_callback(self, callback: Callable[[str, ErrorSeverity], None]):
        self._callback = callback

    def handle(self, error: Exception, severity: ErrorSeverity = ErrorSeverity.ERROR, context: dict = None):
        log_method = getattr(self._logger, severity.value, self._logger.error)
        log_method("%s: %s", error.__class__.__name__, error, extra={"context": context or {}})

        self._events.publish(ErrorOccurredEvent(
            error=error,
            severity=severity,
            context=context or {},
        ))

        if self._callback and severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL):
            self._callback(str(error), severity)
