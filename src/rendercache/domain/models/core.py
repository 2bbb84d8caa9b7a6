from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from rendercache.config import DEFAULT_MIME_TYPE


class EntityKind(str, Enum):
    PIXELS = "pixels"
    RENDERING_SETTINGS = "rendering_settings"
    THUMBNAIL = "thumbnail"


@dataclass(frozen=True, order=True)
class Dimensions:
    """Target thumbnail size; hashable so it can key a dimension pool."""

    width: int
    height: int

    @classmethod
    def of(cls, value: Union[Dimensions, tuple[int, int]]) -> Dimensions:
        if isinstance(value, Dimensions):
            return value
        width, height = value
        return cls(int(width), int(height))

    def as_tuple(self) -> tuple[int, int]:
        return (self.width, self.height)


@dataclass(frozen=True)
class PixelSetRef:
    """Unloaded reference to a pixel set, carrying nothing but its id.

    Used when a record only needs to point at its pixel set (for example a
    freshly built thumbnail record) without dragging the loaded row along.
    """

    id: int

    @property
    def loaded(self) -> bool:
        return False


@dataclass(frozen=True)
class PixelSet:
    """A fully loaded pixel set. Never mutated once loaded."""

    id: int
    size_x: int
    size_y: int
    owner_id: Optional[int] = None
    updated_at: Optional[datetime] = None

    @property
    def loaded(self) -> bool:
        return True

    def ref(self) -> PixelSetRef:
        return PixelSetRef(self.id)


PixelsLike = Union[PixelSet, PixelSetRef]


@dataclass
class RenderingSettings:
    pixels: PixelsLike
    owner_id: int
    id: Optional[int] = None
    updated_at: Optional[datetime] = None
    # Rendering payload; only carried through, never interpreted here.
    model: str = "rgb"
    default_z: int = 0
    default_t: int = 0

    @property
    def pixels_id(self) -> int:
        return self.pixels.id


@dataclass
class ThumbnailRecord:
    pixels: PixelsLike
    size_x: int
    size_y: int
    mime_type: str = DEFAULT_MIME_TYPE
    id: Optional[int] = None
    owner_id: Optional[int] = None
    updated_at: Optional[datetime] = None

    @property
    def pixels_id(self) -> int:
        return self.pixels.id

    @property
    def dimensions(self) -> Dimensions:
        return Dimensions(self.size_x, self.size_y)
