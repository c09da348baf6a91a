"""
Session-wide aggregates: delivery ratio, overall warning, periodic summary.
"""

import logging
from typing import Iterable, Optional

from rsu_core.proto import SessionSummary, WarningLevel, worst_warning
from rsu_core.tracking import PeerStats

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_EVERY = 50


class SessionAggregator:
    """
    Stateless aggregation over all peers' statistics.

    A summary is produced exactly when the total number of received
    beacons is a positive multiple of `summary_every`.
    """

    def __init__(self, summary_every: int = DEFAULT_SUMMARY_EVERY):
        if summary_every <= 0:
            raise ValueError(f"summary_every must be positive, got {summary_every}")
        self.summary_every = summary_every

    @staticmethod
    def global_pdr(all_stats: Iterable[PeerStats]) -> float:
        """Received / (received + lost) over all peers; 1.0 with no traffic."""
        received = 0
        lost = 0
        for stats in all_stats:
            received += stats.received
            lost += stats.lost
        if received + lost == 0:
            return 1.0
        return received / (received + lost)

    @staticmethod
    def overall_warning(all_stats: Iterable[PeerStats]) -> WarningLevel:
        """Worst warning over all peers; UNKNOWN with no peers."""
        return worst_warning(s.warning for s in all_stats)

    @staticmethod
    def mean_latency_ms(all_stats: Iterable[PeerStats]) -> float:
        """Mean of every latency sample across peers; 0.0 with no samples."""
        total = 0.0
        count = 0
        for stats in all_stats:
            total += stats.latency_sum_ms
            count += stats.latency_count
        if count == 0:
            return 0.0
        return total / count

    def maybe_summary(self, all_stats: Iterable[PeerStats]) -> Optional[SessionSummary]:
        """
        Periodic summary, or None when the received total is not on the interval.
        """
        peers = list(all_stats)
        total_received = sum(s.received for s in peers)

        if total_received <= 0 or total_received % self.summary_every != 0:
            return None

        summary = SessionSummary(
            total_received=total_received,
            pdr=self.global_pdr(peers),
            mean_latency_ms=self.mean_latency_ms(peers),
            peer_count=len(peers),
        )
        logger.info(summary.text)
        return summary
