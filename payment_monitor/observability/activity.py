import logging
import threading
from collections import deque

from payment_monitor.models.activity import LogEntry
from payment_monitor.utils.time import utc_now_iso

DEFAULT_CAPACITY = 100


class ActivityLog:
    """Thread-safe, bounded log of recent pipeline activity.

    Every entry is also forwarded to the standard ``logging`` tree so the
    process log and the ``/logs`` endpoint tell the same story. Once
    ``capacity`` entries are held, each new entry evicts the oldest.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, logger: logging.Logger | None = None):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._logger = logger or logging.getLogger("payment_monitor")

    @property
    def capacity(self) -> int:
        return self._capacity

    def info(self, message: str, *args) -> LogEntry:
        return self._append("info", logging.INFO, message, args)

    def error(self, message: str, *args) -> LogEntry:
        return self._append("error", logging.ERROR, message, args)

    def _append(self, level: str, levelno: int, message: str, args: tuple) -> LogEntry:
        text = message % args if args else message
        entry = LogEntry(timestamp=utc_now_iso(), level=level, message=text)
        with self._lock:
            self._entries.append(entry)
        self._logger.log(levelno, text)
        return entry

    def entries(self, limit: int | None = None) -> list[LogEntry]:
        """Return held entries oldest first, optionally only the last ``limit``."""
        with self._lock:
            items = list(self._entries)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    def errors(self) -> list[LogEntry]:
        with self._lock:
            return [e for e in self._entries if e.level == "error"]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once at process start-up."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )
