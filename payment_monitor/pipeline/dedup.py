import threading
from collections import OrderedDict


class ProcessedEvents:
    """Remembers recently handled webhook event ids (bounded, thread-safe)."""

    def __init__(self, max_size: int = 1000):
        self._max_size = max_size
        self._seen: OrderedDict[str, None] = OrderedDict()
        self._lock = threading.Lock()

    def claim(self, event_id: str) -> bool:
        """Mark ``event_id`` as handled. Returns False if it was already claimed."""
        if not event_id:
            return True
        with self._lock:
            if event_id in self._seen:
                return False
            self._seen[event_id] = None
            if len(self._seen) > self._max_size:
                self._seen.popitem(last=False)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)
