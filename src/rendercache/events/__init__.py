from .bus import Event, EventBus, Subscription
from .domain_events import DomainEvent
from .thumbnail_events import (
    RenderingSettingsResetEvent,
    ThumbnailMetadataCreatedEvent,
)

__all__ = [
    "DomainEvent",
    "Event",
    "EventBus",
    "RenderingSettingsResetEvent",
    "Subscription",
    "ThumbnailMetadataCreatedEvent",
]
