import logging
import threading
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Type


@dataclass(kw_only=True)
class Event:
    """Base class for anything published on the :class:`EventBus`."""
    timestamp: datetime = field(default_factory=datetime.now)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass
class Subscription:
    """Handle returned by subscribe(); can be used to unsubscribe."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_type: Type = Event
    handler: Callable = field(default=lambda e: None)
    active: bool = True

    def cancel(self):
        self.active = False


class EventBus:
    """In-process publish/subscribe hub.

    Handlers subscribed to a base class also receive events of its
    subclasses, so a listener on ``DomainEvent`` sees every domain event.
    Handlers run on the publishing thread, in subscription order.
    """

    def __init__(self, logger: logging.Logger = None):
        self._logger = logger or logging.getLogger(__name__)
        self._handlers: Dict[type, List[Subscription]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: type, handler: Callable) -> Subscription:
        sub = Subscription(event_type=event_type, handler=handler)
        with self._lock:
            self._handlers[event_type].append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription):
        subscription.active = False
        with self._lock:
            subs = self._handlers.get(subscription.event_type, [])
            if subscription in subs:
                subs.remove(subscription)

    def _collect(self, event) -> List[Subscription]:
        with self._lock:
            return [
                sub
                for klass in type(event).__mro__
                for sub in self._handlers.get(klass, ())
            ]

    def publish(self, event) -> None:
        for sub in self._collect(event):
            if not sub.active:
                continue
            try:
                sub.handler(event)
            except Exception:
                self._logger.exception("Handler failed for %s", type(event).__name__)
