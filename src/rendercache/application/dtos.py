from dataclasses import dataclass
from typing import Optional


@dataclass
class ThumbnailStatusDTO:
    pixels_id: int
    has_settings: bool
    has_metadata: bool
    thumbnail_id: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    # ``None`` when staleness is undefined (a timestamp is missing)
    stale: Optional[bool] = None
    cached: bool = False

    @property
    def needs_render(self) -> bool:
        """A record exists but no valid image does."""
        return self.has_metadata and not self.cached
