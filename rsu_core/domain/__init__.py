"""
Domain Module: V2V proximity warnings and session aggregation.
"""

from .proximity import ProximityConfig, ProximityEngine
from .session_aggregator import DEFAULT_SUMMARY_EVERY, SessionAggregator

__all__ = [
    'ProximityConfig',
    'ProximityEngine',
    'DEFAULT_SUMMARY_EVERY',
    'SessionAggregator',
]
