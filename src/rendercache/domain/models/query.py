from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .core import Dimensions


class OwnerScope(Enum):
    # Records owned by an explicit principal (``QueryCriteria.owner_id``).
    ACTING_USER = "acting_user"
    # Records owned by whoever owns the referenced pixel set.
    PIXELS_OWNER = "pixels_owner"


@dataclass
class QueryCriteria:
    """Equality filters applied on top of an ``id IN (...)`` bulk read.

    ``ids`` always refer to pixel set ids, whatever entity kind is read.
    """

    owner_scope: Optional[OwnerScope] = None
    owner_id: Optional[int] = None
    size_x: Optional[int] = None
    size_y: Optional[int] = None

    def owned_by(self, user_id: int):
        self.owner_scope = OwnerScope.ACTING_USER
        self.owner_id = user_id
        return self

    def owned_by_pixels_owner(self):
        self.owner_scope = OwnerScope.PIXELS_OWNER
        self.owner_id = None
        return self

    def with_dimensions(self, dimensions: Dimensions):
        self.size_x = dimensions.width
        self.size_y = dimensions.height
        return self

    @property
    def dimensions(self) -> Optional[Dimensions]:
        if self.size_x is None or self.size_y is None:
            return None
        return Dimensions(self.size_x, self.size_y)
