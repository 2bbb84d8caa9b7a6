import logging

from .container import Container
from .lifetime import Lifetime
from ..application.interfaces import ISecurityContext, IThumbnailStore
from ..application.services.context_factory import ThumbnailContextFactory
from ..application.use_cases.prepare_thumbnails import PrepareThumbnailsUseCase
from ..domain.repositories import IQueryService, IUpdateService
from ..errors.handler import ErrorHandler
from ..events.bus import EventBus
from ..infrastructure.db.pool import ConnectionPool
from ..infrastructure.db.retry import ConnectionRetryPolicy
from ..infrastructure.db.schema import init_schema
from ..infrastructure.repositories import SQLiteQueryService, SQLiteUpdateService
from ..infrastructure.services import (
    DiskThumbnailStore,
    RenderingSettingsService,
    StaticSecurityContext,
)
from ..settings.loader import RuntimeSettings


def _create_pool(settings: RuntimeSettings) -> ConnectionPool:
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    pool = ConnectionPool(
        settings.db_path,
        pool_size=settings.pool_size,
        timeout=settings.timeout,
        retry_policy=ConnectionRetryPolicy(
            max_retries=settings.max_retries,
            max_backoff=settings.max_backoff,
            error_window=settings.error_window,
        ),
    )
    init_schema(pool)
    return pool


def bootstrap(container: Container, settings: RuntimeSettings) -> None:
    """Register every service needed to prepare thumbnails.

    The acting user is chosen per session through ``ThumbnailContextFactory``.
    """
    singleton = Lifetime.SINGLETON

    container.register_instance(RuntimeSettings, settings)
    container.register_singleton(EventBus, EventBus)
    container.register_factory(
        ErrorHandler,
        lambda c: ErrorHandler(logging.getLogger("rendercache"), c.resolve(EventBus)),
        singleton,
    )
    container.register_factory(ConnectionPool, lambda c: _create_pool(settings), singleton)
    container.register_factory(
        IQueryService, lambda c: SQLiteQueryService(c.resolve(ConnectionPool)), singleton
    )
    container.register_factory(
        IUpdateService, lambda c: SQLiteUpdateService(c.resolve(ConnectionPool)), singleton
    )
    container.register_factory(
        ISecurityContext, lambda c: StaticSecurityContext(settings.restricted), singleton
    )
    container.register_factory(
        IThumbnailStore, lambda c: DiskThumbnailStore(settings.store_dir), singleton
    )
    container.register_factory(
        ThumbnailContextFactory,
        lambda c: ThumbnailContextFactory(
            c.resolve(IQueryService),
            c.resolve(IUpdateService),
            lambda user_id: RenderingSettingsService(
                c.resolve(IQueryService), c.resolve(IUpdateService), user_id
            ),
            c.resolve(IThumbnailStore),
            c.resolve(ISecurityContext),
            event_bus=c.resolve(EventBus),
            default_mime_type=settings.default_mime_type,
        ),
        singleton,
    )
    container.register_factory(
        PrepareThumbnailsUseCase,
        lambda c: PrepareThumbnailsUseCase(
            c.resolve(ThumbnailContextFactory), c.resolve(ErrorHandler)
        ),
    )


def create_container(settings: RuntimeSettings) -> Container:
    container = Container()
    bootstrap(container, settings)
    return container
