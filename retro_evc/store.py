"""
In-memory observation store.

One store per feed, keyed by station identifier. Each key holds exactly
one latest record plus a bounded, time-ordered history.

Concurrency: writers replace the latest record with a single dict item
assignment and readers copy the dict, relying on CPython making both
atomic under the GIL. Readers therefore never lock and never see a
half-written record (records are frozen dataclasses). A port to a runtime
without that guarantee needs a reader/writer lock or a copy-on-write map
here. History is mutated under a lock because replacing the tail is a
read-modify-write.

Writes are last-write-wins by completion time: a slow tick that finishes
after a newer one will overwrite the fresher record. That window is
accepted; the next tick corrects it.
"""

import logging
import threading
from collections import deque
from typing import Any, Deque, Dict, Generic, List, Optional, TypeVar

from .errors import NotFound

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 600  # two days of 5-minute ticks

T = TypeVar("T")


class ObservationStore(Generic[T]):
    """Latest record and bounded history per station."""

    def __init__(self, name: str, history_size: int = DEFAULT_HISTORY_SIZE):
        self.name = name
        self.history_size = history_size
        self._latest: Dict[str, T] = {}
        self._history: Dict[str, Deque[T]] = {}
        self._history_lock = threading.Lock()

    def update(self, station_id: str, record: T) -> None:
        """Replace the latest record for a station."""
        self._latest[station_id] = record
        self._append_history(station_id, record)

    def _append_history(self, station_id: str, record: T) -> None:
        with self._history_lock:
            history = self._history.get(station_id)
            if history is None:
                history = deque(maxlen=self.history_size)
                self._history[station_id] = history
            # same reading seen again on a later tick
            if history and _timestamp(history[-1]) == _timestamp(record):
                history[-1] = record
            else:
                history.append(record)

    def get(self, station_id: str) -> T:
        """
        Latest record for a station.

        Raises:
            NotFound: if nothing has been recorded for the station yet.
        """
        try:
            return self._latest[station_id]
        except KeyError:
            raise NotFound(f"No {self.name} data for station {station_id}")

    def find(self, station_id: str) -> Optional[T]:
        return self._latest.get(station_id)

    def get_all(self) -> Dict[str, T]:
        """Shallow copy of the current mapping, in first-seen order."""
        return dict(self._latest)

    def history(self, station_id: str) -> List[T]:
        history = self._history.get(station_id)
        return list(history) if history else []

    def clear(self) -> None:
        with self._history_lock:
            self._latest = {}
            self._history = {}

    def __len__(self) -> int:
        return len(self._latest)


def _timestamp(record: Any) -> Any:
    return getattr(record, "timestamp", None)
