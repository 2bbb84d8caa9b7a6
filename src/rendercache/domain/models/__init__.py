from .core import (
    Dimensions,
    EntityKind,
    PixelSet,
    PixelSetRef,
    PixelsLike,
    RenderingSettings,
    ThumbnailRecord,
)
from .query import OwnerScope, QueryCriteria

__all__ = [
    "Dimensions",
    "EntityKind",
    "OwnerScope",
    "PixelSet",
    "PixelSetRef",
    "PixelsLike",
    "QueryCriteria",
    "RenderingSettings",
    "ThumbnailRecord",
]
