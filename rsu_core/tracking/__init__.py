"""
Tracking Module: Peer labels, per-peer statistics, session state.
"""

from .peer_registry import LABEL_PREFIX, PeerRegistry
from .peer_stats import PeerStats, PeerStatsStore
from .session_state import SessionState

__all__ = [
    'LABEL_PREFIX',
    'PeerRegistry',
    'PeerStats',
    'PeerStatsStore',
    'SessionState',
]
