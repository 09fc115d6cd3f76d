import threading
import time


class SinkMetrics:
    """Counts sink delivery outcomes per sink over a rolling window."""

    def __init__(self, window_seconds: float = 3600):
        self._window_seconds = window_seconds
        self._successes: dict[str, list[float]] = {}  # sink -> timestamps
        self._failures: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    def record_success(self, sink: str) -> None:
        with self._lock:
            self._successes.setdefault(sink, []).append(time.monotonic())

    def record_failure(self, sink: str) -> None:
        with self._lock:
            self._failures.setdefault(sink, []).append(time.monotonic())

    def _prune(self, data: dict[str, list[float]], sink: str, now: float) -> int:
        cutoff = now - self._window_seconds
        kept = [t for t in data.get(sink, []) if t >= cutoff]
        data[sink] = kept
        return len(kept)

    def snapshot(self) -> dict[str, dict]:
        """Per-sink counts and failure rate (0.0 to 1.0) in the current window."""
        with self._lock:
            now = time.monotonic()
            sinks = sorted(set(self._successes) | set(self._failures))
            counts = {
                sink: (self._prune(self._successes, sink, now), self._prune(self._failures, sink, now))
                for sink in sinks
            }
        return {
            sink: {
                "succeeded": succeeded,
                "failed": failed,
                "failure_rate": failed / (succeeded + failed) if succeeded + failed else 0.0,
            }
            for sink, (succeeded, failed) in counts.items()
        }
