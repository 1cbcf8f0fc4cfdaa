import time
import logging
from typing import Any, Dict, List, Optional

from studyshift.schemas.transformation import Transformation

logger = logging.getLogger(__name__)

# Wire (camelCase) key → attribute name
_FIELD_NAMES = {
    field.alias: name
    for name, field in Transformation.model_fields.items()
    if field.alias
}


class MemStorage:
    """
    Process-local transformation store keyed by id.
    Nothing survives a restart and there is no locking.
    """

    def __init__(self) -> None:
        self._transformations: Dict[str, Transformation] = {}

    def next_id(self) -> str:
        """Millisecond timestamp, bumped until it is unused in this store."""
        candidate = int(time.time() * 1000)
        while str(candidate) in self._transformations:
            candidate += 1
        return str(candidate)

    def get_transformations(self) -> List[Transformation]:
        """All records, newest first; ties keep the most recently stored first."""
        newest_inserted_first = reversed(list(self._transformations.values()))
        return sorted(newest_inserted_first, key=lambda t: t.created_at, reverse=True)

    def get_transformation(self, transformation_id: str) -> Optional[Transformation]:
        return self._transformations.get(transformation_id)

    def create_transformation(self, transformation: Transformation) -> Transformation:
        self._transformations[transformation.id] = transformation
        logger.info(f"[STORAGE] Stored {transformation.id} ({transformation.type.value})")
        return transformation

    def update_transformation(
        self, transformation_id: str, update: Dict[str, Any]
    ) -> Optional[Transformation]:
        existing = self._transformations.get(transformation_id)
        if existing is None:
            return None

        renamed = {_FIELD_NAMES.get(key, key): value for key, value in update.items()}
        updated = Transformation.model_validate({**existing.model_dump(), **renamed})
        self._transformations[transformation_id] = updated
        return updated

    def delete_transformation(self, transformation_id: str) -> bool:
        removed = self._transformations.pop(transformation_id, None)
        if removed is not None:
            logger.info(f"[STORAGE] Deleted {transformation_id}")
        return removed is not None


storage = MemStorage()
