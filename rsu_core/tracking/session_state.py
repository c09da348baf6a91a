"""
State of one RSU listening session.
"""

import time
from typing import Optional

from rsu_core.proto import NO_SUMMARY_TEXT, SessionSummary

from .peer_registry import PeerRegistry
from .peer_stats import PeerStatsStore


class SessionState:
    """
    Registry, stats store and latest summary for one session.

    A new session always gets a new instance; nothing carries over from a
    previous session.
    """

    def __init__(self):
        self.registry = PeerRegistry()
        self.stats = PeerStatsStore()
        self.latest_summary: Optional[SessionSummary] = None
        self.started_at = time.time()

    @property
    def summary_text(self) -> str:
        if self.latest_summary is None:
            return NO_SUMMARY_TEXT
        return self.latest_summary.text

    @property
    def total_received(self) -> int:
        return sum(s.received for s in self.stats)

    @property
    def total_lost(self) -> int:
        return sum(s.lost for s in self.stats)
