"""
Engine metrics and monitoring utilities.
Tracks strategy run timing, degraded runs and adapter request timing.
"""
from typing import Dict, List
from datetime import datetime
from collections import defaultdict, deque
from threading import Lock


class MetricsCollector:
    """Thread-safe metrics collector for engine monitoring"""

    def __init__(self, history_size: int = 1000):
        """
        Initialize metrics collector.

        Args:
            history_size: How many samples to retain per key
        """
        self._lock = Lock()
        self._history_size = history_size

        self._durations: Dict[str, deque] = defaultdict(lambda: deque(maxlen=self._history_size))
        self._run_counts: Dict[str, int] = defaultdict(int)
        self._failure_counts: Dict[str, int] = defaultdict(int)

        self._start_time = datetime.now()
        self._total_runs = 0
        self._total_failures = 0

    def record_run(self, key: str, duration: float, success: bool = True):
        """
        Record one strategy run or adapter request.

        Args:
            key: Strategy name or endpoint name
            duration: Duration in seconds
            success: False when the run degraded or the request failed
        """
        with self._lock:
            self._durations[key].append(duration)
            self._run_counts[key] += 1
            self._total_runs += 1

            if not success:
                self._failure_counts[key] += 1
                self._total_failures += 1

    def get_stats(self, key: str) -> Dict:
        """Get statistics for a single key"""
        with self._lock:
            durations = list(self._durations.get(key, ()))
            failures = self._failure_counts.get(key, 0)
            count = self._run_counts.get(key, 0)

        if not durations:
            return {
                'key': key,
                'count': 0,
                'avg_duration': 0,
                'min_duration': 0,
                'max_duration': 0,
                'failure_rate': 0
            }

        return {
            'key': key,
            'count': count,
            'avg_duration': sum(durations) / len(durations),
            'min_duration': min(durations),
            'max_duration': max(durations),
            'p95_duration': self._percentile(durations, 0.95),
            'failure_rate': failures / count if count else 0,
            'failures': failures
        }

    def get_all_stats(self) -> Dict:
        """Get statistics for every recorded key"""
        with self._lock:
            keys = list(self._durations.keys())

        return {
            'runs': {key: self.get_stats(key) for key in keys},
            'global': self.get_global_stats()
        }

    def get_global_stats(self) -> Dict:
        """Get global statistics"""
        with self._lock:
            uptime = datetime.now() - self._start_time

            return {
                'uptime_seconds': uptime.total_seconds(),
                'total_runs': self._total_runs,
                'total_failures': self._total_failures,
                'failure_rate': self._total_failures / self._total_runs if self._total_runs > 0 else 0
            }

    @staticmethod
    def _percentile(values: List[float], percentile: float) -> float:
        """Calculate percentile of values"""
        if not values:
            return 0

        sorted_values = sorted(values)
        index = int(len(sorted_values) * percentile)
        return sorted_values[min(index, len(sorted_values) - 1)]

    def reset(self):
        """Reset all metrics"""
        with self._lock:
            self._durations.clear()
            self._run_counts.clear()
            self._failure_counts.clear()
            self._start_time = datetime.now()
            self._total_runs = 0
            self._total_failures = 0


# Global metrics collector instance
_metrics = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector instance"""
    return _metrics
