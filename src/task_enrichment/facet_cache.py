"""In-memory cache for AI-derived task facets."""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class FacetKind(str, Enum):
    """Cacheable facet kinds."""

    STRATEGY = "strategy"
    DURATION = "duration"
    RESOURCES = "resources"


@dataclass(frozen=True)
class FacetCacheEntry:
    """One cached facet value."""

    task_id: str
    facet_kind: FacetKind
    value: Any
    inserted_at: float


class FacetCache:
    """Process-wide cache of facet results keyed by task id.

    Shared by every open card and by the task file watcher thread, so all
    access goes through a lock.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize empty cache.

        Args:
            ttl_seconds: Entry lifetime; None keeps entries until invalidated
            clock: Monotonic time source
        """
        self._entries: dict[tuple[str, FacetKind], FacetCacheEntry] = {}
        self._lock = threading.Lock()
        self._ttl = ttl_seconds
        self._clock = clock

    def get(self, task_id: str, facet_kind: FacetKind) -> Any | None:
        """Get cached value or None on miss."""
        entry = self.entry(task_id, facet_kind)
        return entry.value if entry else None

    def entry(self, task_id: str, facet_kind: FacetKind) -> FacetCacheEntry | None:
        """Get the full cache entry, dropping it if expired."""
        key = (task_id, facet_kind)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._ttl is not None and self._clock() - entry.inserted_at > self._ttl:
                del self._entries[key]
                logger.debug(f"[FacetCache] Expired {facet_kind.value} for '{task_id}'")
                return None
            return entry

    def set(self, task_id: str, facet_kind: FacetKind, value: Any) -> None:
        """Store value, replacing any previous entry for the same facet."""
        entry = FacetCacheEntry(task_id, facet_kind, value, self._clock())
        with self._lock:
            self._entries[(task_id, facet_kind)] = entry
        logger.debug(f"[FacetCache] Stored {facet_kind.value} for '{task_id}'")

    def invalidate(self, task_id: str, facet_kind: FacetKind | None = None) -> None:
        """Remove one facet, or every facet of the task when facet_kind is omitted."""
        with self._lock:
            if facet_kind is not None:
                self._entries.pop((task_id, facet_kind), None)
            else:
                for key in [k for k in self._entries if k[0] == task_id]:
                    del self._entries[key]
        logger.debug(
            f"[FacetCache] Invalidated {facet_kind.value if facet_kind else 'all facets'}"
            f" for '{task_id}'"
        )

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()
        logger.info("[FacetCache] Cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
