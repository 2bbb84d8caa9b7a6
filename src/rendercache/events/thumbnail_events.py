from dataclasses import dataclass, field

from .domain_events import DomainEvent


@dataclass(frozen=True)
class RenderingSettingsResetEvent(DomainEvent):
    pixels_ids: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ThumbnailMetadataCreatedEvent(DomainEvent):
    pixels_ids: frozenset[int] = field(default_factory=frozenset)
    pool_count: int = 0
