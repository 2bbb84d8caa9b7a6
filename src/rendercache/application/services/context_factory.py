from typing import Callable, Optional

from rendercache.application.interfaces import (
    IRenderingSettingsService,
    ISecurityContext,
    IThumbnailStore,
)
from rendercache.config import DEFAULT_MIME_TYPE
from rendercache.domain.repositories import IQueryService, IUpdateService
from rendercache.events.bus import EventBus

from .thumbnail_context import ThumbnailContext

SettingsServiceFactory = Callable[[int], IRenderingSettingsService]


class ThumbnailContextFactory:
    """Hands out a fresh :class:`ThumbnailContext` per unit of work.

    The collaborators are shared; the session caches never are.  The
    rendering settings service is built per context so that defaults are
    always owned by the acting user.
    """

    def __init__(
        self,
        query_service: IQueryService,
        update_service: IUpdateService,
        settings_service_factory: SettingsServiceFactory,
        thumbnail_store: IThumbnailStore,
        security_context: ISecurityContext,
        event_bus: Optional[EventBus] = None,
        default_mime_type: str = DEFAULT_MIME_TYPE,
    ):
        self._query = query_service
        self._update = update_service
        self._settings_service_factory = settings_service_factory
        self._store = thumbnail_store
        self._security = security_context
        self._events = event_bus
        self._mime_type = default_mime_type

    def create(
        self, user_id: int, security_context: Optional[ISecurityContext] = None
    ) -> ThumbnailContext:
        return ThumbnailContext(
            self._query,
            self._update,
            self._settings_service_factory(user_id),
            self._store,
            security_context or self._security,
            user_id,
            event_bus=self._events,
            default_mime_type=self._mime_type,
        )
