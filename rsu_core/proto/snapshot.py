"""
Presenter Snapshot Schemas.

Immutable values handed from the ingestion worker to the presentation
side. Nothing in here references live session state.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from .warning import WarningLevel

NO_SUMMARY_TEXT = "Summary: -"


@dataclass(frozen=True)
class PeerSnapshot:
    """Point-in-time view of one peer's statistics."""

    label: str
    peer_id: str
    received: int
    lost: int
    pdr: float
    nearest_label: Optional[str]
    nearest_distance_m: Optional[float]
    speed_kmh: float
    accuracy_m: float
    last_latency_ms: Optional[float]
    warning: WarningLevel

    def format_line(self) -> str:
        """One display line, e.g. 'Peer-1  RX=12 LOST=1 PDR=0.923  Nearest=Peer-2 ...'."""
        latency = f"{self.last_latency_ms:.0f}ms" if self.last_latency_ms is not None else "-"
        nearest = self.nearest_label if self.nearest_label is not None else "-"
        distance = f"{self.nearest_distance_m:.1f}m" if self.nearest_distance_m is not None else "-"
        return (
            f"{self.label}  RX={self.received} LOST={self.lost} PDR={self.pdr:.3f}  "
            f"Nearest={nearest}  V2V={distance}  "
            f"Spd={self.speed_kmh:.1f}  Acc={self.accuracy_m:.1f}m  "
            f"Lat={latency}  {self.warning.name}"
        )


@dataclass(frozen=True)
class SessionSummary:
    """
    Periodic aggregate over all peers.

    Attributes:
        total_received: Beacons received across peers when emitted
        pdr: Cumulative packet delivery ratio
        mean_latency_ms: Mean of all latency samples (0.0 if none)
        peer_count: Distinct peers tracked
    """

    total_received: int
    pdr: float
    mean_latency_ms: float
    peer_count: int

    @property
    def text(self) -> str:
        return (
            f"Summary@{self.total_received}: PDR={self.pdr:.3f} "
            f"AvgLat={self.mean_latency_ms:.1f} ms Peers={self.peer_count}"
        )


@dataclass(frozen=True)
class SessionSnapshot:
    """
    Everything the presenter needs after one processed beacon.

    Attributes:
        peers: Per-peer snapshots in first-seen order
        overall_warning: Worst warning across peers
        summary_text: Latest periodic summary, or NO_SUMMARY_TEXT
        summary: Summary emitted by this very beacon, if any
        rx_time_ms: Receive time of the beacon that produced this snapshot
    """

    peers: Tuple[PeerSnapshot, ...]
    overall_warning: WarningLevel
    summary_text: str = NO_SUMMARY_TEXT
    summary: Optional[SessionSummary] = None
    rx_time_ms: int = 0

    @property
    def peer_lines(self) -> Tuple[str, ...]:
        return tuple(p.format_line() for p in self.peers)


@dataclass(frozen=True)
class StatusUpdate:
    """
    Ingestion loop status line.

    Attributes:
        text: Human-readable status
        terminal: True when the session has ended (stop or fatal error)
        log_location: Log folder path or sink error text, if known
    """

    text: str
    terminal: bool = False
    log_location: Optional[str] = field(default=None)
