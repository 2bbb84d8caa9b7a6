from abc import ABC, abstractmethod
from typing import Iterable, Set

from rendercache.domain.models import EntityKind, PixelSet, PixelsLike, ThumbnailRecord


class IRenderingSettingsService(ABC):
    """Creates and validates rendering settings."""

    @abstractmethod
    def reset_defaults_for_missing(self, kind: EntityKind, ids: Iterable[int]) -> Set[int]:
        """Create default settings for the *ids* lacking them; return the ids actually reset."""
        pass

    @abstractmethod
    def validate_compatibility(self, pixels: PixelSet, settings_pixels: PixelsLike) -> bool:
        """Whether settings built for *settings_pixels* can be applied to *pixels*."""
        pass


class ISecurityContext(ABC):
    @abstractmethod
    def is_restricted_mode(self) -> bool:
        """True when the acting principal may not create or own settings and metadata."""
        pass


class IThumbnailStore(ABC):
    """Binary store holding rendered thumbnail bytes."""

    @abstractmethod
    def image_exists(self, record: ThumbnailRecord) -> bool:
        """Whether bytes exist for *record*. May raise :class:`OSError`."""
        pass
