from .context_factory import ThumbnailContextFactory
from .dimension_pools import DimensionPools, build_pools, compute_target_dimensions, single_pool
from .owner_fallback import load_with_fallback
from .thumbnail_context import PixelsEntry, ThumbnailContext

__all__ = [
    "DimensionPools",
    "PixelsEntry",
    "ThumbnailContext",
    "ThumbnailContextFactory",
    "build_pools",
    "compute_target_dimensions",
    "load_with_fallback",
    "single_pool",
]
