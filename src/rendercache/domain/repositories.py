from abc import ABC, abstractmethod
from typing import Iterable, List, Sequence, Union

from .models import EntityKind, PixelSet, QueryCriteria, RenderingSettings, ThumbnailRecord

Record = Union[PixelSet, RenderingSettings, ThumbnailRecord]


class IQueryService(ABC):
    @abstractmethod
    def find_all_by_ids(
        self, kind: EntityKind, criteria: QueryCriteria, ids: Iterable[int]
    ) -> List[Record]:
        """Bulk read records of *kind* whose pixel set id is in *ids*.

        Records returned for settings and thumbnails carry a loaded
        :class:`PixelSet` and their ``updated_at`` timestamp.
        """
        pass

    @abstractmethod
    def get(self, kind: EntityKind, id: int):
        """Find a single record of *kind* by its own primary key, or ``None``."""
        pass


class IUpdateService(ABC):
    @abstractmethod
    def save_all(self, records: Sequence[Record]) -> List[int]:
        """Insert or update *records* in one transaction; returns the assigned ids."""
        pass
