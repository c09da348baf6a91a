"""
V2V Proximity Engine.

For every peer with a known position, finds the nearest other positioned
peer (haversine distance) and classifies the separation:

    d <= danger_distance_m          -> DANGER
    d <= warn_distance_m            -> WARN
    d >  warn_distance_m            -> SAFE
    no other positioned peer        -> SAFE if this peer is positioned
    no position                     -> UNKNOWN

Results are rebuilt from scratch for all peers on every call; nothing is
patched incrementally.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from rsu_core.geo import EARTH_RADIUS_M, haversine_matrix
from rsu_core.proto import WarningLevel
from rsu_core.tracking import PeerStats

logger = logging.getLogger(__name__)


@dataclass
class ProximityConfig:
    """
    Thresholds for proximity classification.

    Attributes:
        danger_distance_m: At or below this distance the pair is DANGER
        warn_distance_m: At or below this distance the pair is WARN
        earth_radius_m: Sphere radius for haversine
    """

    danger_distance_m: float = 8.0
    warn_distance_m: float = 15.0
    earth_radius_m: float = EARTH_RADIUS_M

    def __post_init__(self):
        if self.danger_distance_m > self.warn_distance_m:
            raise ValueError(
                f"danger_distance_m ({self.danger_distance_m}) exceeds "
                f"warn_distance_m ({self.warn_distance_m})"
            )


class ProximityEngine:
    """
    Nearest-neighbour search and warning classification.

    Usage:
        engine = ProximityEngine()
        engine.recompute(session.stats)
        for s in session.stats:
            print(s.label, s.nearest_label, s.nearest_distance_m, s.warning)

    O(n^2) in the number of positioned peers per call.
    """

    def __init__(self, config: Optional[ProximityConfig] = None):
        self.config = config or ProximityConfig()

    def classify(self, distance_m: Optional[float]) -> WarningLevel:
        if distance_m is None:
            return WarningLevel.UNKNOWN
        if distance_m <= self.config.danger_distance_m:
            return WarningLevel.DANGER
        if distance_m <= self.config.warn_distance_m:
            return WarningLevel.WARN
        return WarningLevel.SAFE

    def recompute(self, all_stats: Iterable[PeerStats]) -> int:
        """
        Rebuild nearest-peer fields and warnings for every peer.

        Args:
            all_stats: All tracked peers, in first-seen order

        Returns:
            Number of peers with a known position
        """
        peers = list(all_stats)
        for stats in peers:
            stats.clear_proximity()

        positioned = [s for s in peers if s.has_position]

        if len(positioned) < 2:
            if len(positioned) == 1:
                # Alone on the road is safe.
                positioned[0].warning = WarningLevel.SAFE
            return len(positioned)

        distances = haversine_matrix(
            [s.last_lat for s in positioned],
            [s.last_lon for s in positioned],
            radius_m=self.config.earth_radius_m,
        )
        np.fill_diagonal(distances, np.inf)

        # argmin returns the first minimum, so ties go to the earlier peer
        nearest_idx = np.argmin(distances, axis=1)

        for i, stats in enumerate(positioned):
            j = int(nearest_idx[i])
            distance_m = float(distances[i, j])
            stats.nearest_label = positioned[j].label
            stats.nearest_distance_m = distance_m
            stats.warning = self.classify(distance_m)

        logger.debug(f"Proximity recomputed for {len(positioned)} peers")
        return len(positioned)
