"""Cache of resolved schedules keyed by schedule and date range."""

import logging
import threading
from datetime import date
from typing import Callable, Optional

from clinicsched.domain.models import DayAssignment

logger = logging.getLogger(__name__)

CacheKey = tuple[str, date, date]


class ResolutionCache:
    """Thread-safe cache of resolver output.

    Entries are keyed by ``(schedule_id, start_date, end_date)``. Any write
    to a schedule must call ``invalidate(schedule_id)``; the cache never
    expires entries on its own.

    Each schedule carries a generation number that ``invalidate`` and
    ``clear`` bump. A resolution started before an invalidation is not
    stored when it finishes.
    """

    def __init__(self, max_entries: int = 256):
        self.max_entries = max_entries
        self._entries: dict[CacheKey, tuple[DayAssignment, ...]] = {}
        self._generations: dict[str, int] = {}
        self._epoch = 0
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def generation(self, schedule_id: str) -> tuple[int, int]:
        """Current generation of a schedule's entries."""
        with self._lock:
            return self._epoch, self._generations.get(schedule_id, 0)

    def get(self, schedule_id: str, start_date: date, end_date: date) -> Optional[list[DayAssignment]]:
        with self._lock:
            entry = self._entries.get((schedule_id, start_date, end_date))
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            return list(entry)

    def put(
        self,
        schedule_id: str,
        start_date: date,
        end_date: date,
        days: list[DayAssignment],
        generation: Optional[tuple[int, int]] = None,
    ) -> bool:
        """Store resolved days.

        Args:
            generation: Value of ``generation(schedule_id)`` taken before
                resolving. If the schedule was invalidated since, nothing
                is stored.

        Returns:
            Whether the entry was stored.
        """
        with self._lock:
            current = (self._epoch, self._generations.get(schedule_id, 0))
            if generation is not None and generation != current:
                logger.debug("Discarded stale resolution for schedule %s", schedule_id)
                return False
            if len(self._entries) >= self.max_entries:
                # Drop the oldest entry; dicts keep insertion order.
                self._entries.pop(next(iter(self._entries)))
            self._entries[(schedule_id, start_date, end_date)] = tuple(days)
            return True

    def get_or_resolve(
        self,
        schedule_id: str,
        start_date: date,
        end_date: date,
        resolve_fn: Callable[[], list[DayAssignment]],
    ) -> list[DayAssignment]:
        """Return the cached days, resolving and storing them on a miss."""
        generation = self.generation(schedule_id)
        cached = self.get(schedule_id, start_date, end_date)
        if cached is not None:
            return cached
        days = resolve_fn()
        self.put(schedule_id, start_date, end_date, days, generation)
        return days

    def invalidate(self, schedule_id: str) -> int:
        """Drop every entry of a schedule. Returns the number removed."""
        with self._lock:
            self._generations[schedule_id] = self._generations.get(schedule_id, 0) + 1
            stale = [key for key in self._entries if key[0] == schedule_id]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("Invalidated %d cached resolutions for schedule %s", len(stale), schedule_id)
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._epoch += 1
            self._entries.clear()
