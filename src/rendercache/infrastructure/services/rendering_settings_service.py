import logging
from typing import Iterable, Set

from rendercache.application.interfaces import IRenderingSettingsService
from rendercache.domain.models import (
    EntityKind,
    PixelSet,
    PixelsLike,
    QueryCriteria,
    RenderingSettings,
)
from rendercache.domain.repositories import IQueryService, IUpdateService

_logger = logging.getLogger(__name__)


class RenderingSettingsService(IRenderingSettingsService):
    """Creates default rendering settings owned by one principal.

    The service is bound to *user_id* the same way a server-side service is
    bound to the session it runs in.
    """

    def __init__(self, query_service: IQueryService, update_service: IUpdateService, user_id: int):
        self._query = query_service
        self._update = update_service
        self._user_id = user_id

    def reset_defaults_for_missing(self, kind: EntityKind, ids: Iterable[int]) -> Set[int]:
        if kind != EntityKind.PIXELS:
            raise ValueError(f"Cannot reset rendering settings for {kind.value}")
        wanted = set(ids)
        if not wanted:
            return set()

        pixels_sets = self._query.find_all_by_ids(EntityKind.PIXELS, QueryCriteria(), wanted)
        existing = {
            settings.pixels_id
            for settings in self._query.find_all_by_ids(
                EntityKind.RENDERING_SETTINGS, QueryCriteria().owned_by(self._user_id), wanted
            )
        }
        defaults = [
            self._defaults_for(pixels) for pixels in pixels_sets if pixels.id not in existing
        ]
        if not defaults:
            return set()
        self._update.save_all(defaults)
        reset = {settings.pixels_id for settings in defaults}
        _logger.info("Created default rendering settings for %d pixel sets", len(reset))
        return reset

    def validate_compatibility(self, pixels: PixelSet, settings_pixels: PixelsLike) -> bool:
        if not isinstance(settings_pixels, PixelSet):
            if settings_pixels.id == pixels.id:
                return True
            settings_pixels = self._query.get(EntityKind.PIXELS, settings_pixels.id)
            if settings_pixels is None:
                return False
        return (settings_pixels.size_x, settings_pixels.size_y) == (pixels.size_x, pixels.size_y)

    def _defaults_for(self, pixels: PixelSet) -> RenderingSettings:
        return RenderingSettings(pixels=pixels.ref(), owner_id=self._user_id)
