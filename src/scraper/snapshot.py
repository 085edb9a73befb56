"""
Thread-safe store for the most recently computed metric values.

Written only by the scrape tick, read at any time by collectors and the
control surface. Each field is swapped as a whole under a short lock, so a
reader sees either the previous value or the new one, never a mix.
"""
import threading
from typing import Dict, Mapping

NEVER_RUN = -1


class MetricsSnapshotStore:
    """
    Holds the last good value of every exported metric.

    Usage:
        store = MetricsSnapshotStore()
        store.set_total_size(1024)
        store.replace_link_statuses({"Confluence": 0})
        store.link_count  # -> 1
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total_size = 0
        self._last_execution_timestamp = NEVER_RUN
        self._link_statuses: Dict[str, int] = {}
        self._link_count = 0

    # -- Scalars ------------------------------------------------------------

    @property
    def total_size(self) -> int:
        with self._lock:
            return self._total_size

    def set_total_size(self, value: int) -> None:
        with self._lock:
            self._total_size = int(value)

    @property
    def last_execution_timestamp(self) -> int:
        """Epoch millis of the last completed tick, or ``NEVER_RUN``."""
        with self._lock:
            return self._last_execution_timestamp

    def set_last_execution_timestamp(self, millis: int) -> None:
        with self._lock:
            self._last_execution_timestamp = int(millis)

    @property
    def has_run(self) -> bool:
        return self.last_execution_timestamp != NEVER_RUN

    # -- Link statuses ------------------------------------------------------

    @property
    def link_statuses(self) -> Dict[str, int]:
        """Copy of the current ``{name: status ordinal}`` mapping."""
        with self._lock:
            return dict(self._link_statuses)

    @property
    def link_count(self) -> int:
        with self._lock:
            return self._link_count

    def replace_link_statuses(self, statuses: Mapping[str, int]) -> None:
        """
        Replace the whole status mapping and its count.

        Entries for links that are no longer reported are dropped.
        """
        fresh = {str(name): int(ordinal) for name, ordinal in statuses.items()}
        with self._lock:
            self._link_statuses = fresh
            self._link_count = len(fresh)

    def as_dict(self) -> Dict[str, object]:
        """Consistent copy of every field, taken under one lock acquisition."""
        with self._lock:
            return {
                "total_size": self._total_size,
                "last_execution_timestamp": self._last_execution_timestamp,
                "link_count": self._link_count,
                "link_statuses": dict(self._link_statuses),
            }
