"""Aspect-preserving thumbnail sizing and grouping of pixel sets by target size.

Pixel sets that end up with identical target dimensions share a *dimension
pool* so their thumbnail metadata can be fetched with a single bulk query.
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Set

import numpy as np

from rendercache.domain.models import Dimensions, PixelSet

DimensionPools = Dict[Dimensions, Set[int]]


def compute_target_dimensions(pixels: PixelSet, longest_side: int) -> Dimensions:
    """Return the thumbnail size fitting *pixels* into a *longest_side* box.

    The longer side becomes exactly ``longest_side``; the other one is scaled
    by the same ratio.  Square inputs take the second branch and produce a
    square thumbnail.

    The ratio is computed in single precision and the scaled side is
    truncated towards zero, which is how every thumbnail already in the
    store was sized.  Changing either would stop pool lookups from matching
    historical records.
    """

    if longest_side <= 0:
        raise ValueError(f"longest_side must be positive, got {longest_side}")
    size_x = np.float32(pixels.size_x)
    size_y = np.float32(pixels.size_y)
    side = np.float32(longest_side)
    if pixels.size_x > pixels.size_y:
        ratio = side / size_x
        return Dimensions(int(longest_side), int(size_y * ratio))
    ratio = side / size_y
    return Dimensions(int(size_x * ratio), int(longest_side))


def add_to_pool(pools: DimensionPools, dimensions: Dimensions, pixels_id: int) -> None:
    pools.setdefault(dimensions, set()).add(pixels_id)


def build_pools(
    ids: Iterable[int],
    longest_side: int,
    pixels_by_id: Mapping[int, PixelSet],
) -> DimensionPools:
    """Group *ids* by their target dimensions; ids without a known pixel set are skipped."""

    pools: DimensionPools = {}
    for pixels_id in ids:
        pixels = pixels_by_id.get(pixels_id)
        if pixels is None:
            continue
        add_to_pool(pools, compute_target_dimensions(pixels, longest_side), pixels_id)
    return pools


def single_pool(ids: Iterable[int], dimensions: Dimensions) -> DimensionPools:
    """One pool holding every id at caller-supplied *dimensions*."""

    members = set(ids)
    return {dimensions: members} if members else {}
