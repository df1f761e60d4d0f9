"""In-memory cache of worker validations.

Maps an employee id to the Worker WID Workday resolved it to, so several
documents for the same worker trigger a single Get_Workers call per run.
Entries expire after a TTL and are evicted lazily when looked up; the cache
is also bounded, evicting the least recently used entry when full.
"""

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from workdocs.domain.models.common import EmployeeId, WorkerWid

logger = logging.getLogger(__name__)

DEFAULT_WORKER_CACHE_TTL_SECONDS = 60 * 60  # 1 hour
DEFAULT_WORKER_CACHE_MAX_ENTRIES = 10_000


@dataclass
class WorkerCacheEntry:
    """Internal representation of a cached validation."""
    worker_wid: WorkerWid
    validated_at: float  # clock() reading when the worker was validated


class WorkerCache:
    """TTL + LRU bounded map of employee id -> Worker WID."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_WORKER_CACHE_TTL_SECONDS,
        max_entries: int = DEFAULT_WORKER_CACHE_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[EmployeeId, WorkerCacheEntry]" = OrderedDict()
        logger.debug(f"WorkerCache initialized (ttl={ttl_seconds}s, max={max_entries})")

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, employee_id: EmployeeId) -> Optional[WorkerWid]:
        """Returns the cached Worker WID, or None if absent or expired.

        An expired entry is removed so the caller validates again.
        """
        entry = self._entries.get(employee_id)
        if entry is None:
            return None

        if self._clock() - entry.validated_at >= self.ttl_seconds:
            del self._entries[employee_id]
            logger.debug(f"Worker cache entry expired for employee {employee_id}")
            return None

        self._entries.move_to_end(employee_id)
        return entry.worker_wid

    def set(self, employee_id: EmployeeId, worker_wid: WorkerWid) -> None:
        """Stores (or refreshes) a validation, stamped with the current time."""
        self._entries[employee_id] = WorkerCacheEntry(worker_wid=worker_wid, validated_at=self._clock())
        self._entries.move_to_end(employee_id)

        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Worker cache full, evicted employee {evicted}")

    def clear(self) -> None:
        self._entries.clear()
