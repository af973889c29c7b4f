#!/usr/bin/env python3
"""
In-memory record storage.

Records are kept in insertion order and matched by their `id` attribute.
There is a single writer (the coach's or athlete's request handler), so
mutations are plain list operations and the last write wins.

`replace` and `remove` report whether a record matched instead of silently
doing nothing, so callers can turn a stale id into a proper not-found.
"""

from typing import Callable, Generic, Iterator, List, Optional, TypeVar

from . import logger
from .models import WorkoutFeedback, copy_workout

T = TypeVar('T')


class Repository(Generic[T]):
    """Ordered list of records keyed by `.id`."""

    def __init__(self, records: Optional[List[T]] = None, kind: str = 'record'):
        self._records: List[T] = list(records or [])
        self.kind = kind

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._records))

    def all(self) -> List[T]:
        """Snapshot of every record, in insertion order."""
        return list(self._records)

    def _index_of(self, record_id: str) -> int:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        return -1

    def get(self, record_id: str) -> Optional[T]:
        index = self._index_of(record_id)
        return self._records[index] if index >= 0 else None

    def filter(self, predicate: Callable[[T], bool]) -> List[T]:
        return [record for record in self._records if predicate(record)]

    def add(self, record: T) -> T:
        """Append a record. The caller is responsible for a fresh unique id."""
        self._records.append(record)
        logger.debug(f"Added {self.kind}", id=record.id, total=len(self._records))
        return record

    def replace(self, record: T) -> bool:
        """
        Overwrite the first record with the same id, in place.

        The whole record is replaced; nothing is merged.

        Returns:
            True if a record matched, False if the id is unknown (no change)
        """
        index = self._index_of(record.id)
        if index < 0:
            logger.warning(f"Replace ignored: unknown {self.kind}", id=record.id)
            return False
        self._records[index] = record
        logger.debug(f"Replaced {self.kind}", id=record.id)
        return True

    def remove(self, record_id: str) -> bool:
        """
        Delete the first record with the given id.

        Returns:
            True if a record was removed, False if the id is unknown (no change)
        """
        index = self._index_of(record_id)
        if index < 0:
            logger.warning(f"Remove ignored: unknown {self.kind}", id=record_id)
            return False
        del self._records[index]
        logger.debug(f"Removed {self.kind}", id=record_id, total=len(self._records))
        return True


class WorkoutRepository(Repository):
    """Prescribed workouts for every athlete."""

    def __init__(self, records=None):
        super().__init__(records, kind='workout')

    def by_student(self, student_id: str) -> List:
        """All workouts of one athlete, in insertion order."""
        return self.filter(lambda w: w.student_id == student_id)

    def set_feedback(self, workout_id: str, feedback: WorkoutFeedback) -> bool:
        """Attach the athlete's feedback to a workout. Returns False if unknown."""
        workout = self.get(workout_id)
        if workout is None:
            logger.warning("Feedback ignored: unknown workout", id=workout_id)
            return False
        self._records[self._index_of(workout_id)] = copy_workout(workout, feedback=feedback)
        logger.info("Workout feedback recorded", id=workout_id, difficulty=feedback.difficulty)
        return True
