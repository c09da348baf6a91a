"""
Per-peer delivery statistics and latest kinematic state.

Loss accounting is inferred from forward sequence gaps only:

    last_seq=4, seq=7  ->  lost += 2  (5 and 6 never arrived)

Duplicates, reordering and sequence resets are not detected; they simply
overwrite `last_seq`. A beacon without a sequence number (-1) counts as
received and resets gap tracking for the next beacon.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from rsu_core.proto import NO_SEQUENCE, BeaconMessage, PeerSnapshot, WarningLevel

logger = logging.getLogger(__name__)


@dataclass
class PeerStats:
    """
    Mutable per-peer record, owned by the ingestion worker.

    Attributes:
        peer_id: Wire identity
        label: Session display label
        last_seq: Last sequence number seen (NO_SEQUENCE if none)
        received: Beacons received
        lost: Beacons inferred lost from sequence gaps (never decreases)
        latency_sum_ms: Sum of latency samples
        latency_count: Number of latency samples
        last_latency_ms: Most recent latency sample
        last_lat, last_lon: Latest position (None until first beacon)
        last_speed_kmh: Latest reported speed
        last_accuracy_m: Latest reported position accuracy
        last_rx_time_ms: RSU wall-clock of the latest beacon
        nearest_label: Label of the nearest other peer (proximity engine)
        nearest_distance_m: Distance to that peer (proximity engine)
        warning: Proximity warning (proximity engine)
    """

    peer_id: str
    label: str = ""
    last_seq: int = NO_SEQUENCE
    received: int = 0
    lost: int = 0
    latency_sum_ms: float = 0.0
    latency_count: int = 0
    last_latency_ms: Optional[float] = None
    last_lat: Optional[float] = None
    last_lon: Optional[float] = None
    last_speed_kmh: float = 0.0
    last_accuracy_m: float = 0.0
    last_rx_time_ms: int = 0
    nearest_label: Optional[str] = None
    nearest_distance_m: Optional[float] = None
    warning: WarningLevel = WarningLevel.UNKNOWN

    def pdr(self) -> float:
        """Packet delivery ratio; 1.0 before any packet is accounted for."""
        total = self.received + self.lost
        if total == 0:
            return 1.0
        return self.received / total

    @property
    def has_position(self) -> bool:
        return self.last_lat is not None and self.last_lon is not None

    @property
    def mean_latency_ms(self) -> Optional[float]:
        if self.latency_count == 0:
            return None
        return self.latency_sum_ms / self.latency_count

    def clear_proximity(self):
        self.nearest_label = None
        self.nearest_distance_m = None
        self.warning = WarningLevel.UNKNOWN

    def snapshot(self) -> PeerSnapshot:
        return PeerSnapshot(
            label=self.label,
            peer_id=self.peer_id,
            received=self.received,
            lost=self.lost,
            pdr=self.pdr(),
            nearest_label=self.nearest_label,
            nearest_distance_m=self.nearest_distance_m,
            speed_kmh=self.last_speed_kmh,
            accuracy_m=self.last_accuracy_m,
            last_latency_ms=self.last_latency_ms,
            warning=self.warning,
        )


class PeerStatsStore:
    """
    One PeerStats per peer id, iterated in first-seen order.

    Not thread-safe: only the ingestion worker mutates it.
    """

    def __init__(self):
        self._stats: Dict[str, PeerStats] = {}

    def update(
        self,
        peer_id: str,
        label: str,
        message: BeaconMessage,
        rx_time_ms: int
    ) -> Tuple[PeerStats, Optional[float]]:
        """
        Apply one beacon to the peer's record.

        Args:
            peer_id: Peer identity
            label: Peer display label
            message: Decoded beacon
            rx_time_ms: RSU receive wall-clock (ms epoch)

        Returns:
            (updated PeerStats, latency sample in ms or None)
        """
        stats = self._stats.get(peer_id)
        if stats is None:
            stats = PeerStats(peer_id=peer_id)
            self._stats[peer_id] = stats
            logger.info(f"New peer {label} (id={peer_id})")
        stats.label = label

        seq = message.seq
        if stats.last_seq != NO_SEQUENCE and seq > stats.last_seq + 1:
            gap = seq - stats.last_seq - 1
            stats.lost += gap
            logger.debug(f"{label}: sequence gap {stats.last_seq} -> {seq}, {gap} lost")
        stats.last_seq = seq
        stats.received += 1

        latency_ms = None
        if message.origin_time_ms is not None:
            # Unsynchronized clocks can make this negative; kept as-is.
            latency_ms = float(rx_time_ms - message.origin_time_ms)
            stats.last_latency_ms = latency_ms
            stats.latency_sum_ms += latency_ms
            stats.latency_count += 1

        stats.last_lat = message.lat
        stats.last_lon = message.lon
        stats.last_speed_kmh = message.speed_kmh
        stats.last_accuracy_m = message.pos_accuracy_m
        stats.last_rx_time_ms = rx_time_ms

        return stats, latency_ms

    def get(self, peer_id: str) -> Optional[PeerStats]:
        return self._stats.get(peer_id)

    def values(self) -> List[PeerStats]:
        return list(self._stats.values())

    def __iter__(self) -> Iterator[PeerStats]:
        return iter(self._stats.values())

    def __len__(self) -> int:
        return len(self._stats)

    def __contains__(self, peer_id: str) -> bool:
        return peer_id in self._stats
