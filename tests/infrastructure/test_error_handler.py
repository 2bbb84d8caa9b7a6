import logging
from unittest.mock import Mock

from rendercache.errors import ThumbnailStoreError
from rendercache.errors.handler import ErrorHandler, ErrorOccurredEvent, ErrorSeverity
from rendercache.events.bus import EventBus


def test_handle_error_logs_and_publishes():
    logger = Mock(spec=logging.Logger)
    event_bus = Mock(spec=EventBus)
    handler = ErrorHandler(logger, event_bus)

    error = ThumbnailStoreError("disk gone")
    handler.handle(error, ErrorSeverity.ERROR, {"pixels_id": 7})

    logger.error.assert_called_once()
    event = event_bus.publish.call_args[0][0]
    assert isinstance(event, ErrorOccurredEvent)
    assert event.error is error
    assert event.severity == ErrorSeverity.ERROR
    assert event.context == {"pixels_id": 7}


def test_severity_selects_log_level():
    logger = Mock(spec=logging.Logger)
    handler = ErrorHandler(logger, Mock(spec=EventBus))

    handler.handle(ValueError("minor"), ErrorSeverity.WARNING)

    logger.warning.assert_called_once()
    logger.error.assert_not_called()


def test_callback_on_critical():
    handler = ErrorHandler(Mock(spec=logging.Logger), Mock(spec=EventBus))
    callback = Mock()
    handler.register_callback(callback)

    handler.handle(RuntimeError("boom"), ErrorSeverity.CRITICAL)

    callback.assert_called_once_with("boom", ErrorSeverity.CRITICAL)


def test_callback_ignores_info():
    handler = ErrorHandler(Mock(spec=logging.Logger), Mock(spec=EventBus))
    callback = Mock()
    handler.register_callback(callback)

    handler.handle(Exception("info"), ErrorSeverity.INFO)

    callback.assert_not_called()
