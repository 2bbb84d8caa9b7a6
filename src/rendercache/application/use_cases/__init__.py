from .base import UseCase, UseCaseRequest, UseCaseResponse
from .prepare_thumbnails import (
    PrepareThumbnailsRequest,
    PrepareThumbnailsResponse,
    PrepareThumbnailsUseCase,
)
