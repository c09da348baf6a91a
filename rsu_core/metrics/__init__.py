"""
Metrics Module: Diagnostics, counters, histograms.

Usage:
    from rsu_core.metrics import get_metrics

    metrics = get_metrics()
    metrics.increment('datagrams_in')
    metrics.increment_drop('not_beacon')
    metrics.record_histogram('latency_ms', 12.0)
"""

from .counters import MetricsCollector, MetricsSnapshot

_global_metrics = None


def get_metrics() -> MetricsCollector:
    """Process-wide metrics collector."""
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = MetricsCollector()
    return _global_metrics


def reset_metrics():
    """Replace the global collector with a fresh one (for testing)."""
    global _global_metrics
    _global_metrics = MetricsCollector()


__all__ = ['MetricsCollector', 'MetricsSnapshot', 'get_metrics', 'reset_metrics']
