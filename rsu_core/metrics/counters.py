"""
Diagnostics counters and histograms.

Thread-safe so the presenter thread may read while the ingestion worker
writes. Every dropped datagram is counted under a reason code.
"""

import logging
import statistics
import threading
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class MetricsSnapshot:
    """Copy of collector state at a point in time."""

    timestamp: float
    counters: Dict[str, int]
    drop_reasons: Dict[str, int]
    histograms: Dict[str, List[float]]

    def total_dropped(self) -> int:
        return sum(self.drop_reasons.values())

    def decode_failure_rate(self) -> float:
        """Percentage of datagrams that did not decode into a beacon."""
        datagrams = self.counters.get('datagrams_in', 0)
        if datagrams == 0:
            return 0.0
        return self.counters.get('decode_failures', 0) / datagrams * 100.0


class MetricsCollector:
    """
    Counters, drop reasons and bounded histograms.

    Usage:
        collector = MetricsCollector()
        collector.increment('datagrams_in')
        collector.increment_drop('not_beacon')
        collector.record_histogram('latency_ms', 12.0)
    """

    DROP_REASONS = {
        'invalid_encoding': 'Payload is not UTF-8',
        'parse_error': 'Payload is not a JSON object',
        'not_beacon': 'msg_type is not a beacon',
        'missing_coordinates': 'lat/lon missing or unparseable',
        'queue_full': 'Presenter queue overflow, oldest snapshot dropped',
        'sink_error': 'Log record could not be written',
    }

    STANDARD_COUNTERS = (
        'datagrams_in',
        'beacons_processed',
        'decode_failures',
        'summaries_emitted',
        'sessions_started',
    )

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = defaultdict(int)
        self._drop_reasons: Dict[str, int] = defaultdict(int)
        self._histograms: Dict[str, List[float]] = defaultdict(list)
        self._start_time = time.time()
        self._init_standard_counters()

    def _init_standard_counters(self):
        with self._lock:
            for name in self.STANDARD_COUNTERS:
                self._counters.setdefault(name, 0)
            for reason in self.DROP_REASONS:
                self._drop_reasons.setdefault(reason, 0)

    def increment(self, counter_name: str, value: int = 1):
        with self._lock:
            self._counters[counter_name] += value

    def increment_drop(self, reason: str, value: int = 1):
        """
        Count a dropped item under `reason`.

        Unknown reasons are still counted, with a warning.
        """
        if reason not in self.DROP_REASONS:
            logger.warning(f"Unknown drop reason '{reason}'")

        with self._lock:
            self._drop_reasons[reason] += value
            self._counters['dropped'] += value

    def get_counter(self, counter_name: str) -> int:
        with self._lock:
            return self._counters.get(counter_name, 0)

    def get_drop_count(self, reason: str) -> int:
        with self._lock:
            return self._drop_reasons.get(reason, 0)

    def record_histogram(self, histogram_name: str, value: float, max_samples: int = 10000):
        """
        Record a sample.

        Once a histogram exceeds `max_samples`, only the newest half is kept.
        """
        with self._lock:
            samples = self._histograms[histogram_name]
            samples.append(value)
            if len(samples) > max_samples:
                self._histograms[histogram_name] = samples[-(max_samples // 2):]

    def get_histogram_stats(self, histogram_name: str) -> Optional[Dict[str, float]]:
        """
        Summary statistics for a histogram.

        Returns:
            Dict with count, min, max, mean, median, p95; None if empty
        """
        with self._lock:
            samples = sorted(self._histograms.get(histogram_name, []))

        if not samples:
            return None

        count = len(samples)
        return {
            'count': count,
            'min': samples[0],
            'max': samples[-1],
            'mean': statistics.mean(samples),
            'median': statistics.median(samples),
            'p95': samples[min(int(count * 0.95), count - 1)],
        }

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                timestamp=time.time(),
                counters=dict(self._counters),
                drop_reasons=dict(self._drop_reasons),
                histograms={k: list(v) for k, v in self._histograms.items()},
            )

    def reset(self):
        with self._lock:
            self._counters.clear()
            self._drop_reasons.clear()
            self._histograms.clear()
            self._start_time = time.time()
        self._init_standard_counters()

    def get_uptime(self) -> float:
        return time.time() - self._start_time

    def print_summary(self):
        """Print a human-readable report to stdout."""
        snapshot = self.snapshot()

        print("\n" + "=" * 60)
        print(f"  RSU DIAGNOSTICS (uptime: {self.get_uptime():.1f}s)")
        print("=" * 60)

        print("\nCOUNTERS:")
        for name, value in sorted(snapshot.counters.items()):
            print(f"  {name:24s}: {value:8d}")

        total_dropped = snapshot.total_dropped()
        if total_dropped > 0:
            print("\nDROPS:")
            for reason, count in sorted(snapshot.drop_reasons.items()):
                if count > 0:
                    print(f"  {reason:24s}: {count:8d} ({count / total_dropped * 100:5.1f}%)")

        for name in sorted(snapshot.histograms):
            stats = self.get_histogram_stats(name)
            if stats:
                print(f"\n{name}: count={stats['count']}, mean={stats['mean']:.2f}, "
                      f"median={stats['median']:.2f}, p95={stats['p95']:.2f}")

        print("=" * 60 + "\n")
