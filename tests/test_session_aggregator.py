"""
Unit tests for session aggregation.

Tests cover:
- Global PDR across peers
- Overall (worst-case) warning precedence
- Mean latency across peers
- Periodic summary emitted exactly at multiples of the interval
"""

import pytest

from rsu_core.domain import SessionAggregator
from rsu_core.proto import WarningLevel, worst_warning
from rsu_core.tracking import PeerStats


def stats(received=0, lost=0, warning=WarningLevel.UNKNOWN, latency_sum=0.0, latency_count=0):
    return PeerStats(
        peer_id="x",
        received=received,
        lost=lost,
        warning=warning,
        latency_sum_ms=latency_sum,
        latency_count=latency_count,
    )


class TestGlobalPdr:
    """Tests for cumulative delivery ratio."""

    def test_no_traffic(self):
        assert SessionAggregator.global_pdr([]) == 1.0
        assert SessionAggregator.global_pdr([stats(), stats()]) == 1.0

    def test_sums_across_peers(self):
        peers = [stats(received=8, lost=2), stats(received=10, lost=0)]
        assert SessionAggregator.global_pdr(peers) == pytest.approx(18 / 20)

    def test_all_lost_bounds(self):
        pdr = SessionAggregator.global_pdr([stats(received=1, lost=99)])
        assert 0.0 <= pdr <= 1.0
        assert pdr == pytest.approx(0.01)


class TestOverallWarning:
    """Tests for worst-case warning."""

    def test_no_peers_unknown(self):
        assert SessionAggregator.overall_warning([]) is WarningLevel.UNKNOWN

    def test_safe_and_warn(self):
        peers = [stats(warning=WarningLevel.SAFE), stats(warning=WarningLevel.WARN)]
        assert SessionAggregator.overall_warning(peers) is WarningLevel.WARN

    def test_single_danger_dominates(self):
        peers = [
            stats(warning=WarningLevel.SAFE),
            stats(warning=WarningLevel.WARN),
            stats(warning=WarningLevel.DANGER),
            stats(warning=WarningLevel.UNKNOWN),
        ]
        assert SessionAggregator.overall_warning(peers) is WarningLevel.DANGER

    def test_safe_beats_unknown(self):
        peers = [stats(warning=WarningLevel.UNKNOWN), stats(warning=WarningLevel.SAFE)]
        assert SessionAggregator.overall_warning(peers) is WarningLevel.SAFE

    def test_all_unknown(self):
        assert SessionAggregator.overall_warning([stats(), stats()]) is WarningLevel.UNKNOWN

    def test_worst_warning_helper(self):
        assert worst_warning([]) is WarningLevel.UNKNOWN
        assert worst_warning([WarningLevel.WARN, WarningLevel.SAFE]) is WarningLevel.WARN

    def test_display_text(self):
        assert WarningLevel.DANGER.display_text == "DANGER ZONE"
        assert WarningLevel.WARN.display_text == "WARNING ZONE"
        assert WarningLevel.SAFE.display_text == "SAFE ZONE"
        assert WarningLevel.UNKNOWN.display_text == "UNKNOWN"


class TestMeanLatency:
    """Tests for mean latency across peers."""

    def test_no_samples(self):
        assert SessionAggregator.mean_latency_ms([stats(received=5)]) == 0.0

    def test_weighted_by_sample_count(self):
        peers = [
            stats(latency_sum=30.0, latency_count=3),
            stats(latency_sum=70.0, latency_count=1),
        ]
        assert SessionAggregator.mean_latency_ms(peers) == pytest.approx(25.0)


class TestPeriodicSummary:
    """Tests for summary emission."""

    def test_emitted_only_at_multiples(self):
        aggregator = SessionAggregator(summary_every=50)
        emitted_at = []

        a = stats()
        b = stats()
        for i in range(1, 151):
            target = a if i % 3 else b
            target.received += 1
            if aggregator.maybe_summary([a, b]) is not None:
                emitted_at.append(i)

        assert emitted_at == [50, 100, 150]

    def test_not_emitted_with_no_traffic(self):
        assert SessionAggregator().maybe_summary([]) is None
        assert SessionAggregator().maybe_summary([stats(lost=50)]) is None

    def test_summary_contents(self):
        peers = [
            stats(received=30, lost=5, latency_sum=300.0, latency_count=30),
            stats(received=20, lost=0, latency_sum=0.0, latency_count=0),
        ]

        summary = SessionAggregator(summary_every=50).maybe_summary(peers)

        assert summary.total_received == 50
        assert summary.pdr == pytest.approx(50 / 55)
        assert summary.mean_latency_ms == pytest.approx(10.0)
        assert summary.peer_count == 2
        assert summary.text == "Summary@50: PDR=0.909 AvgLat=10.0 ms Peers=2"

    def test_custom_interval(self):
        aggregator = SessionAggregator(summary_every=3)
        assert aggregator.maybe_summary([stats(received=3)]) is not None
        assert aggregator.maybe_summary([stats(received=4)]) is None

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            SessionAggregator(summary_every=0)
