"""Acting-user read with an owner-scoped fallback for restricted sessions."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Set, TypeVar

T = TypeVar("T")

LOGGER = logging.getLogger(__name__)


def load_with_fallback(
    ids: Iterable[int],
    fetch_acting: Callable[[Set[int]], List[T]],
    fetch_owner: Callable[[Set[int]], List[T]],
    record: Callable[[T], None],
    is_loaded: Callable[[int], bool],
    restricted: bool,
) -> Set[int]:
    """Load records for *ids* and return the ids still lacking one.

    Records owned by the acting user are read first.  In restricted mode the
    acting user cannot own records of its own, so the ids left over are
    read a second time scoped to each pixel set's owner.  Fetch errors
    propagate unchanged.
    """

    wanted = set(ids)
    if not wanted:
        return set()

    for item in fetch_acting(wanted):
        record(item)
    missing = {pixels_id for pixels_id in wanted if not is_loaded(pixels_id)}

    if missing and restricted:
        LOGGER.debug("Restricted session: reading owner records for %d ids", len(missing))
        for item in fetch_owner(missing):
            record(item)
        missing = {pixels_id for pixels_id in missing if not is_loaded(pixels_id)}
    return missing
