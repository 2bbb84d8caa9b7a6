"""Per-session batch cache for rendering settings and thumbnail metadata.

A :class:`ThumbnailContext` is created for one unit of work (for example
"prepare thumbnails for this page of results") on behalf of one user and is
discarded afterwards.  It bulk loads rendering settings and thumbnail
records for many pixel sets at once, creates the ones that are missing and
answers whether a cached thumbnail image is still usable.

Typical use::

    ctx = ThumbnailContext(query, update, settings_service, store, security, user_id)
    ctx.prepare_settings(ids)
    ctx.prepare_missing_settings(ids)
    ctx.prepare_metadata(ids, 96)
    for pixels_id in ids:
        if ctx.has_metadata(pixels_id) and not ctx.is_thumbnail_image_cached(pixels_id):
            ...  # re-render

Instances are not thread-safe and hold no state across sessions.
"""

from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple, Union

from rendercache.application.interfaces import (
    IRenderingSettingsService,
    ISecurityContext,
    IThumbnailStore,
)
from rendercache.config import DEFAULT_MIME_TYPE
from rendercache.domain.models import (
    Dimensions,
    EntityKind,
    PixelSet,
    PixelSetRef,
    QueryCriteria,
    RenderingSettings,
    ThumbnailRecord,
)
from rendercache.domain.repositories import IQueryService, IUpdateService
from rendercache.errors import (
    IncompatibleSettingsError,
    MetadataPreconditionError,
    PixelsNotFoundError,
    SettingsNotFoundError,
    ThumbnailStoreError,
)
from rendercache.events.bus import EventBus
from rendercache.events.thumbnail_events import (
    RenderingSettingsResetEvent,
    ThumbnailMetadataCreatedEvent,
)
from rendercache.utils.timing import stopwatch

from .dimension_pools import (
    DimensionPools,
    add_to_pool,
    build_pools,
    compute_target_dimensions,
    single_pool,
)
from .owner_fallback import load_with_fallback

LOGGER = logging.getLogger(__name__)

ThumbnailSize = Union[int, Dimensions, Tuple[int, int]]


@dataclass
class PixelsEntry:
    """Everything the session knows about one pixel set.

    Timestamps are copied out of their records when the record is attached
    and are only ever set together with it.
    """

    pixels: PixelSet
    settings: Optional[RenderingSettings] = None
    settings_updated: Optional[datetime] = None
    settings_owner_id: Optional[int] = None
    metadata: Optional[ThumbnailRecord] = None
    metadata_updated: Optional[datetime] = None

    def attach_settings(self, settings: RenderingSettings) -> None:
        self.settings = settings
        self.settings_updated = settings.updated_at
        self.settings_owner_id = settings.owner_id

    def attach_metadata(self, metadata: ThumbnailRecord) -> None:
        self.metadata = metadata
        self.metadata_updated = metadata.updated_at


class ThumbnailContext:
    def __init__(
        self,
        query_service: IQueryService,
        update_service: IUpdateService,
        settings_service: IRenderingSettingsService,
        thumbnail_store: IThumbnailStore,
        security_context: ISecurityContext,
        user_id: int,
        *,
        event_bus: Optional[EventBus] = None,
        default_mime_type: str = DEFAULT_MIME_TYPE,
    ):
        self._query = query_service
        self._update = update_service
        self._settings_service = settings_service
        self._store = thumbnail_store
        self._user_id = user_id
        # Snapshot: the security posture cannot change during a session.
        self._restricted = bool(security_context.is_restricted_mode())
        self._events = event_bus
        self._mime_type = default_mime_type
        self._entries: Dict[int, PixelsEntry] = {}

    @property
    def user_id(self) -> int:
        return self._user_id

    @property
    def restricted(self) -> bool:
        return self._restricted

    def pixels_ids(self) -> FrozenSet[int]:
        """Ids of every pixel set known to this session."""
        return frozenset(self._entries)

    # ------------------------------------------------------------------
    # Settings loader
    # ------------------------------------------------------------------

    def prepare_settings(self, pixels_ids, settings_id: Optional[int] = None) -> None:
        """Bulk load rendering settings for *pixels_ids*.

        Every requested pixel set ends up with at least a :class:`PixelSet`
        entry, even when no settings exist for it.

        Called as ``prepare_settings(pixels_id, settings_id)`` it instead
        loads one explicit pixel set and one explicit settings record,
        raising :class:`SettingsNotFoundError` or
        :class:`IncompatibleSettingsError`.
        """

        if settings_id is not None:
            self._prepare_single_settings(int(pixels_ids), int(settings_id))
            return

        ids = set(pixels_ids)
        if not ids:
            return
        with stopwatch("rendercache.prepare_settings"):
            without_settings = load_with_fallback(
                ids,
                fetch_acting=self._bulk_load_settings,
                fetch_owner=self._bulk_load_owner_settings,
                record=self._record_settings,
                is_loaded=self.has_settings,
                restricted=self._restricted,
            )
            # Pools are computed from pixel sets, so those without settings
            # still need their dimensions.
            self._load_missing_pixels(without_settings)

    def _prepare_single_settings(self, pixels_id: int, settings_id: int) -> None:
        pixels = self._query.get(EntityKind.PIXELS, pixels_id)
        if pixels is None:
            raise PixelsNotFoundError(f"No pixel set exists with id = {pixels_id}")
        settings = self._query.get(EntityKind.RENDERING_SETTINGS, settings_id)
        if settings is None:
            raise SettingsNotFoundError(
                f"No rendering settings exist with id = {settings_id}"
            )
        if not self._settings_service.validate_compatibility(pixels, settings.pixels):
            raise IncompatibleSettingsError(
                f"Rendering settings {settings_id} are incompatible with pixel set {pixels_id}"
            )
        self._record_settings(settings, pixels)

    def prepare_missing_settings(self, pixels_ids: Iterable[int]) -> Set[int]:
        """Create default settings where none were found and load them.

        Returns the ids whose settings were created.  Restricted sessions
        may not create settings, so nothing happens there.
        """

        if self._restricted:
            LOGGER.debug("Restricted session: not creating rendering settings")
            return set()
        without_settings = self._without_settings(pixels_ids)
        if not without_settings:
            return set()

        LOGGER.info("%d pixel sets without settings", len(without_settings))
        with stopwatch("rendercache.prepare_missing_settings"):
            reset_ids = set(
                self._settings_service.reset_defaults_for_missing(
                    EntityKind.PIXELS, without_settings
                )
            )
            if reset_ids:
                self.prepare_settings(reset_ids)
        if reset_ids:
            self._publish(RenderingSettingsResetEvent(
                source=type(self).__name__,
                user_id=self._user_id,
                pixels_ids=frozenset(reset_ids),
            ))
        return reset_ids

    def _bulk_load_settings(self, ids: Set[int]) -> List[RenderingSettings]:
        criteria = QueryCriteria().owned_by(self._user_id)
        with stopwatch("rendercache.bulk_load_settings"):
            return self._query.find_all_by_ids(EntityKind.RENDERING_SETTINGS, criteria, ids)

    def _bulk_load_owner_settings(self, ids: Set[int]) -> List[RenderingSettings]:
        criteria = QueryCriteria().owned_by_pixels_owner()
        with stopwatch("rendercache.bulk_load_owner_settings"):
            return self._query.find_all_by_ids(EntityKind.RENDERING_SETTINGS, criteria, ids)

    def _load_missing_pixels(self, ids: Set[int]) -> None:
        unknown = {pixels_id for pixels_id in ids if pixels_id not in self._entries}
        if not unknown:
            return
        with stopwatch("rendercache.load_missing_pixels"):
            found = self._query.find_all_by_ids(EntityKind.PIXELS, QueryCriteria(), unknown)
        for pixels in found:
            self._entries.setdefault(pixels.id, PixelsEntry(pixels))
        if len(found) < len(unknown):
            LOGGER.warning(
                "%d requested pixel sets do not exist", len(unknown) - len(found)
            )

    def _record_settings(
        self, settings: RenderingSettings, pixels: Optional[PixelSet] = None
    ) -> None:
        target = pixels if pixels is not None else settings.pixels
        entry = self._entry_for(target)
        if entry is None:
            LOGGER.warning("Ignoring settings %s for unknown pixel set %s", settings.id, target.id)
            return
        entry.attach_settings(settings)

    def _without_settings(self, pixels_ids: Iterable[int]) -> Set[int]:
        return {pixels_id for pixels_id in pixels_ids if not self.has_settings(pixels_id)}

    # ------------------------------------------------------------------
    # Dimension pools
    # ------------------------------------------------------------------

    @staticmethod
    def compute_target_dimensions(pixels: PixelSet, longest_side: int) -> Dimensions:
        return compute_target_dimensions(pixels, longest_side)

    def build_pools(self, pixels_ids: Iterable[int], longest_side: int) -> DimensionPools:
        pixels_by_id = {pixels_id: entry.pixels for pixels_id, entry in self._entries.items()}
        return build_pools(pixels_ids, longest_side, pixels_by_id)

    # ------------------------------------------------------------------
    # Metadata loader
    # ------------------------------------------------------------------

    def prepare_metadata(self, pixels_ids: Iterable[int], size: ThumbnailSize) -> DimensionPools:
        """Load, and where allowed create, thumbnail metadata for *pixels_ids*.

        *size* is either the longest side of the requested thumbnails (each
        pixel set keeps its aspect ratio) or explicit ``Dimensions`` used
        for every id.  Returns the dimension pools that were queried.
        """

        ids = set(pixels_ids)
        if isinstance(size, numbers.Integral) and not isinstance(size, bool):
            pools = self.build_pools(ids, size)
        else:
            pools = single_pool(ids, Dimensions.of(size))
        with stopwatch("rendercache.prepare_metadata"):
            self._load_metadata_by_pool(pools)
            self.create_missing(pools)
        return pools

    def _load_metadata_by_pool(self, pools: DimensionPools) -> None:
        # One bulk query per distinct size; at worst one per pixel set.
        for dimensions, pool in pools.items():
            load_with_fallback(
                pool,
                fetch_acting=lambda ids, d=dimensions: self._bulk_load_metadata(d, ids),
                fetch_owner=lambda ids, d=dimensions: self._bulk_load_owner_metadata(d, ids),
                record=self._record_metadata,
                is_loaded=lambda pixels_id, d=dimensions: self._has_metadata_at(pixels_id, d),
                restricted=self._restricted,
            )

    def _bulk_load_metadata(self, dimensions: Dimensions, ids: Set[int]) -> List[ThumbnailRecord]:
        criteria = QueryCriteria().owned_by(self._user_id).with_dimensions(dimensions)
        with stopwatch("rendercache.bulk_load_metadata"):
            return self._query.find_all_by_ids(EntityKind.THUMBNAIL, criteria, ids)

    def _bulk_load_owner_metadata(
        self, dimensions: Dimensions, ids: Set[int]
    ) -> List[ThumbnailRecord]:
        criteria = QueryCriteria().owned_by_pixels_owner().with_dimensions(dimensions)
        with stopwatch("rendercache.bulk_load_owner_metadata"):
            return self._query.find_all_by_ids(EntityKind.THUMBNAIL, criteria, ids)

    def _record_metadata(self, metadata: ThumbnailRecord) -> None:
        entry = self._entry_for(metadata.pixels)
        if entry is None:
            LOGGER.warning(
                "Ignoring thumbnail %s for unknown pixel set %s", metadata.id, metadata.pixels_id
            )
            return
        entry.attach_metadata(metadata)

    def _has_metadata_at(self, pixels_id: int, dimensions: Dimensions) -> bool:
        entry = self._entries.get(pixels_id)
        return (
            entry is not None
            and entry.metadata is not None
            and entry.metadata.dimensions == dimensions
        )

    def load_all_metadata(self, pixels_id: int) -> List[ThumbnailRecord]:
        """Every thumbnail record of the acting user for *pixels_id*, any size.

        Does not touch the session cache.
        """

        criteria = QueryCriteria().owned_by(self._user_id)
        with stopwatch("rendercache.load_all_metadata"):
            return self._query.find_all_by_ids(EntityKind.THUMBNAIL, criteria, {pixels_id})

    # ------------------------------------------------------------------
    # Metadata creator
    # ------------------------------------------------------------------

    def create_missing(self, pools: DimensionPools) -> List[int]:
        """Save thumbnail records for pool members that still have none.

        Each new record points at an unloaded :class:`PixelSetRef`.  After
        the bulk save the affected pools are read back so ids and
        timestamps come from the persisted rows.  Returns the saved ids;
        restricted sessions never save and get an empty list.
        """

        if self._restricted:
            LOGGER.debug("Restricted session: not creating thumbnail metadata")
            return []

        to_save: List[ThumbnailRecord] = []
        created_pools: DimensionPools = {}
        seen: Set[int] = set()
        for dimensions, pool in pools.items():
            for pixels_id in sorted(pool):
                if pixels_id in seen or pixels_id not in self._entries:
                    continue
                seen.add(pixels_id)
                if self._has_metadata_at(pixels_id, dimensions):
                    continue
                to_save.append(self.create_thumbnail_metadata(pixels_id, dimensions))
                add_to_pool(created_pools, dimensions, pixels_id)

        LOGGER.info("New thumbnail object set size: %d", len(to_save))
        LOGGER.info("Dimension pool size: %d", len(created_pools))
        if not to_save:
            return []

        with stopwatch("rendercache.create_missing_metadata"):
            saved_ids = list(self._update.save_all(to_save))
            self._load_metadata_by_pool(created_pools)
        self._publish(ThumbnailMetadataCreatedEvent(
            source=type(self).__name__,
            user_id=self._user_id,
            pixels_ids=frozenset().union(*created_pools.values()),
            pool_count=len(created_pools),
        ))
        return saved_ids

    def create_thumbnail_metadata(self, pixels_id: int, dimensions: Dimensions) -> ThumbnailRecord:
        """Build (without saving) a thumbnail record for *pixels_id* at *dimensions*."""
        return ThumbnailRecord(
            pixels=PixelSetRef(pixels_id),
            size_x=dimensions.width,
            size_y=dimensions.height,
            mime_type=self._mime_type,
            owner_id=self._user_id,
        )

    # ------------------------------------------------------------------
    # Query surface
    # ------------------------------------------------------------------

    def has_settings(self, pixels_id: int) -> bool:
        entry = self._entries.get(pixels_id)
        return entry is not None and entry.settings is not None

    def has_metadata(self, pixels_id: int) -> bool:
        entry = self._entries.get(pixels_id)
        return entry is not None and entry.metadata is not None

    def get_pixel_set(self, pixels_id: int) -> Optional[PixelSet]:
        entry = self._entries.get(pixels_id)
        return entry.pixels if entry is not None else None

    def get_settings(self, pixels_id: int) -> Optional[RenderingSettings]:
        entry = self._entries.get(pixels_id)
        return entry.settings if entry is not None else None

    def get_settings_owner_id(self, pixels_id: int) -> Optional[int]:
        entry = self._entries.get(pixels_id)
        return entry.settings_owner_id if entry is not None else None

    def get_metadata(self, pixels_id: int) -> Optional[ThumbnailRecord]:
        entry = self._entries.get(pixels_id)
        return entry.metadata if entry is not None else None

    def is_stale(self, pixels_id: int) -> bool:
        """True when the settings changed after the thumbnail was produced.

        Equal timestamps are not stale.  Raises
        :class:`MetadataPreconditionError` unless both timestamps are known.
        """

        entry = self._entries.get(pixels_id)
        settings_updated = entry.settings_updated if entry is not None else None
        metadata_updated = entry.metadata_updated if entry is not None else None
        LOGGER.debug("Thumb time: %s", metadata_updated)
        LOGGER.debug("Settings time: %s", settings_updated)
        if settings_updated is None or metadata_updated is None:
            raise MetadataPreconditionError(
                f"Staleness of pixel set {pixels_id} is undefined: "
                f"settings time={settings_updated}, thumbnail time={metadata_updated}"
            )
        return settings_updated > metadata_updated

    def is_thumbnail_image_cached(self, pixels_id: int) -> bool:
        """Whether a still-valid rendered image exists for *pixels_id*.

        Requires the metadata not to be stale and the thumbnail store to hold
        bytes for it.  Pixel sets without metadata have no cached image.
        Store I/O failures surface as :class:`ThumbnailStoreError`.
        """

        metadata = self.get_metadata(pixels_id)
        if metadata is None:
            return False
        if self.is_stale(pixels_id):
            return False
        try:
            return bool(self._store.image_exists(metadata))
        except OSError as exc:
            message = "Could not check if thumbnail is cached: "
            LOGGER.error("%s%s", message, exc)
            raise ThumbnailStoreError(f"{message}{exc}") from exc

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _entry_for(self, pixels: Union[PixelSet, PixelSetRef]) -> Optional[PixelsEntry]:
        entry = self._entries.get(pixels.id)
        if entry is None and isinstance(pixels, PixelSet):
            entry = self._entries[pixels.id] = PixelsEntry(pixels)
        return entry

    def _publish(self, event) -> None:
        if self._events is not None:
            self._events.publish(event)
