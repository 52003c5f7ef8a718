"""
Recent Results - In-memory, most-recent-first list of identifications

Nothing is persisted; the list lives as long as the process.
"""
import threading
from collections import deque
from typing import List, Optional

from packages.domain.waste_matching.schemas import WasteIdentification


class RecentResults:
    """Bounded history of identifications, newest first."""

    def __init__(self, limit: int = 10):
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        self.limit = limit
        self._items = deque(maxlen=limit)
        self._lock = threading.Lock()

    def add(self, result: WasteIdentification) -> None:
        with self._lock:
            self._items.appendleft(result)

    def list(self, limit: Optional[int] = None) -> List[WasteIdentification]:
        with self._lock:
            items = list(self._items)
        return items if limit is None else items[:limit]

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
