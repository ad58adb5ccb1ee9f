from dataclasses import dataclass, asdict
from typing import Dict, Any
import threading


@dataclass
class ResolverMetrics:
    """Counters describing how loads and track resolutions went."""
    loads: int = 0
    failed_loads: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    backend_misses: int = 0
    backend_errors: int = 0

    @property
    def cache_hit_rate(self) -> float:
        """Share of resolutions answered from the cache."""
        lookups = self.cache_hits + self.cache_misses
        if lookups == 0:
            return 0.0
        return self.cache_hits / lookups

    @property
    def resolved_from_backend(self) -> int:
        return self.cache_misses - self.backend_misses - self.backend_errors


class MetricsCollector:
    """Thread-safe collector; resolutions run on worker threads."""

    def __init__(self):
        self._metrics = ResolverMetrics()
        self._lock = threading.Lock()

    def record_load(self) -> None:
        with self._lock:
            self._metrics.loads += 1

    def record_failed_load(self) -> None:
        with self._lock:
            self._metrics.failed_loads += 1

    def record_cache_hit(self) -> None:
        with self._lock:
            self._metrics.cache_hits += 1

    def record_cache_miss(self) -> None:
        with self._lock:
            self._metrics.cache_misses += 1

    def record_backend_miss(self) -> None:
        with self._lock:
            self._metrics.backend_misses += 1

    def record_backend_error(self) -> None:
        with self._lock:
            self._metrics.backend_errors += 1

    def snapshot(self) -> ResolverMetrics:
        """Return a copy of the current counters."""
        with self._lock:
            return ResolverMetrics(**asdict(self._metrics))

    def to_dict(self) -> Dict[str, Any]:
        snapshot = self.snapshot()
        data = asdict(snapshot)
        data['cache_hit_rate'] = snapshot.cache_hit_rate
        return data
