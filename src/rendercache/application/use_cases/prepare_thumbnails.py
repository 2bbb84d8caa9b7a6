import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .base import UseCase, UseCaseRequest, UseCaseResponse
from rendercache.application.dtos import ThumbnailStatusDTO
from rendercache.application.services.context_factory import ThumbnailContextFactory
from rendercache.application.services.thumbnail_context import ThumbnailContext
from rendercache.config import DEFAULT_LONGEST_SIDE
from rendercache.domain.models import Dimensions
from rendercache.errors import DomainError, InfrastructureError, MetadataPreconditionError
from rendercache.errors.handler import ErrorHandler, ErrorSeverity


@dataclass(frozen=True)
class PrepareThumbnailsRequest(UseCaseRequest):
    user_id: int
    pixels_ids: Tuple[int, ...] = ()
    longest_side: Optional[int] = None
    # Explicit (width, height); wins over ``longest_side`` when given.
    dimensions: Optional[Tuple[int, int]] = None
    create_missing_settings: bool = True


@dataclass(frozen=True)
class PrepareThumbnailsResponse(UseCaseResponse):
    statuses: Tuple[ThumbnailStatusDTO, ...] = ()
    reset_settings_ids: frozenset = frozenset()
    restricted: bool = False

    @property
    def to_render(self) -> Tuple[int, ...]:
        return tuple(s.pixels_id for s in self.statuses if s.needs_render)


class PrepareThumbnailsUseCase(UseCase[PrepareThumbnailsRequest, PrepareThumbnailsResponse]):
    """Runs one thumbnail preparation session from settings to cache status."""

    def __init__(self, context_factory: ThumbnailContextFactory, error_handler: ErrorHandler):
        self._factory = context_factory
        self._errors = error_handler
        self._logger = logging.getLogger(__name__)

    def execute(self, request: PrepareThumbnailsRequest) -> PrepareThumbnailsResponse:
        ids = sorted(set(request.pixels_ids))
        ctx = self._factory.create(request.user_id)
        size = (
            Dimensions.of(request.dimensions)
            if request.dimensions is not None
            else request.longest_side or DEFAULT_LONGEST_SIDE
        )
        try:
            ctx.prepare_settings(ids)
            reset = ctx.prepare_missing_settings(ids) if request.create_missing_settings else set()
            ctx.prepare_metadata(ids, size)
            statuses = tuple(self._status(ctx, pixels_id) for pixels_id in ids)
        except (DomainError, InfrastructureError) as exc:
            self._errors.handle(
                exc,
                ErrorSeverity.ERROR,
                {"user_id": request.user_id, "pixels_count": len(ids)},
            )
            return PrepareThumbnailsResponse(success=False, error=str(exc), restricted=ctx.restricted)

        self._logger.info(
            "Prepared %d pixel sets for user %d (%d to render)",
            len(statuses),
            request.user_id,
            sum(1 for s in statuses if s.needs_render),
        )
        return PrepareThumbnailsResponse(
            statuses=statuses,
            reset_settings_ids=frozenset(reset),
            restricted=ctx.restricted,
        )

    @staticmethod
    def _status(ctx: ThumbnailContext, pixels_id: int) -> ThumbnailStatusDTO:
        metadata = ctx.get_metadata(pixels_id)
        status = ThumbnailStatusDTO(
            pixels_id=pixels_id,
            has_settings=ctx.has_settings(pixels_id),
            has_metadata=metadata is not None,
        )
        if metadata is None:
            return status
        status.thumbnail_id = metadata.id
        status.width, status.height = metadata.size_x, metadata.size_y
        try:
            status.stale = ctx.is_stale(pixels_id)
        except MetadataPreconditionError:
            return status
        status.cached = ctx.is_thumbnail_image_cached(pixels_id)
        return status
