"""
Peer-side beacon transmitter.

Sends one CAM beacon per interval to the RSU over UDP, using the latest
fix from a position source. Send failures are ignored; the next interval
simply tries again.
"""

import logging
import math
import socket
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from rsu_core.geo import EARTH_RADIUS_M
from rsu_core.proto import BeaconMessage, encode_beacon

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PositionFix:
    """Local position fix (WGS84)."""

    lat: float
    lon: float
    speed_kmh: float = 0.0
    heading_deg: float = 0.0
    accuracy_m: float = 0.0
    fix_time_ms: int = 0


class VirtualPositionSource:
    """
    Simulated position source moving in a straight line.

    Starts at (base_lat, base_lon) and advances along `heading_deg` at
    `speed_kmh`, using a local flat-earth approximation.
    """

    def __init__(
        self,
        base_lat: float,
        base_lon: float,
        speed_kmh: float = 0.0,
        heading_deg: float = 0.0,
        accuracy_m: float = 3.0,
        clock: Callable[[], float] = time.time
    ):
        self.base_lat = base_lat
        self.base_lon = base_lon
        self.speed_kmh = speed_kmh
        self.heading_deg = heading_deg
        self.accuracy_m = accuracy_m
        self.clock = clock
        self._t0 = clock()

    def current_fix(self) -> PositionFix:
        now = self.clock()
        travelled_m = self.speed_kmh / 3.6 * (now - self._t0)
        heading = math.radians(self.heading_deg)

        north_m = travelled_m * math.cos(heading)
        east_m = travelled_m * math.sin(heading)

        lat = self.base_lat + math.degrees(north_m / EARTH_RADIUS_M)
        lon = self.base_lon + math.degrees(
            east_m / (EARTH_RADIUS_M * math.cos(math.radians(self.base_lat)))
        )

        return PositionFix(
            lat=lat,
            lon=lon,
            speed_kmh=self.speed_kmh,
            heading_deg=self.heading_deg,
            accuracy_m=self.accuracy_m,
            fix_time_ms=int(now * 1000),
        )


def build_peer_id() -> str:
    """'veh_' plus the last 4 hex digits of this host's hardware address."""
    tail = f"{uuid.getnode():012x}"[-4:]
    if not tail.strip("0"):
        tail = f"{int(time.time() * 1000) % 10000:04d}"
    return f"veh_{tail}"


class BeaconSender:
    """Periodic beacon transmitter."""

    def __init__(
        self,
        host: str,
        port: int,
        position_source,
        peer_id: Optional[str] = None,
        interval_ms: int = 500
    ):
        """
        Args:
            host: RSU address
            port: RSU beacon port
            position_source: Object with a current_fix() -> PositionFix method
            peer_id: Beacon identity (derived from the host if None)
            interval_ms: Time between beacons
        """
        self.host = host
        self.port = port
        self.position_source = position_source
        self.peer_id = peer_id or build_peer_id()
        self.interval_ms = interval_ms
        self.seq = 0
        self.sent_count = 0
        self.socket: Optional[socket.socket] = None
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def next_beacon(self, now_ms: Optional[int] = None) -> BeaconMessage:
        """Build the next beacon; sequence numbers start at 1."""
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        fix = self.position_source.current_fix()
        self.seq += 1
        return BeaconMessage(
            peer_id=self.peer_id,
            seq=self.seq,
            lat=fix.lat,
            lon=fix.lon,
            origin_time_ms=now_ms,
            speed_kmh=fix.speed_kmh,
            heading_deg=fix.heading_deg,
            pos_accuracy_m=fix.accuracy_m,
            fix_time_ms=fix.fix_time_ms,
        )

    def send_once(self) -> bool:
        """Send one beacon. Returns False if the send failed."""
        if self.socket is None:
            self.socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        beacon = self.next_beacon()
        try:
            self.socket.sendto(encode_beacon(beacon), (self.host, self.port))
        except OSError as e:
            logger.debug(f"Beacon {beacon.seq} not sent: {e}")
            return False
        self.sent_count += 1
        return True

    def start(self):
        self.stop()
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="beacon-sender", daemon=True)
        self._thread.start()
        logger.info(f"Sending beacons as {self.peer_id} to {self.host}:{self.port} "
                    f"every {self.interval_ms}ms")

    def _run(self):
        try:
            while not self._stop.is_set():
                self.send_once()
                self._stop.wait(self.interval_ms / 1000.0)
        finally:
            if self.socket is not None:
                self.socket.close()
                self.socket = None

    def stop(self):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
