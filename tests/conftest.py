"""
Pytest configuration and shared fixtures for RSU beacon monitor tests.

Provides beacon payload builders, an in-memory datagram transport and a
fresh metrics collector for every test.
"""

import sys
import json
import queue
import time
from pathlib import Path
from typing import Callable, Dict, Optional

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from rsu_core.io import Datagram, DatagramTransport
from rsu_core.metrics import reset_metrics
from rsu_core.proto import BeaconMessage


# =============================================================================
# Metrics
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_metrics():
    """Every test starts with an empty global metrics collector."""
    reset_metrics()
    yield
    reset_metrics()


# =============================================================================
# Beacon Fixtures
# =============================================================================


def make_payload(**fields) -> bytes:
    """
    JSON beacon payload with sensible defaults; pass a field as None to omit it.
    """
    payload = {
        "msg_type": "CAM",
        "vehicle_id": "veh_0001",
        "seq": 1,
        "timestamp_ms": 1_700_000_000_000,
        "lat": 0.0,
        "lon": 0.0,
        "speed_kmh": 30.0,
        "heading_deg": 90.0,
        "pos_accuracy_m": 3.5,
    }
    payload.update(fields)
    payload = {k: v for k, v in payload.items() if v is not None}
    return json.dumps(payload).encode("utf-8")


def make_beacon(
    peer_id: str = "veh_0001",
    seq: int = 1,
    lat: float = 0.0,
    lon: float = 0.0,
    origin_time_ms: Optional[int] = None,
    speed_kmh: float = 0.0,
    pos_accuracy_m: float = 0.0
) -> BeaconMessage:
    return BeaconMessage(
        peer_id=peer_id,
        seq=seq,
        lat=lat,
        lon=lon,
        origin_time_ms=origin_time_ms,
        speed_kmh=speed_kmh,
        pos_accuracy_m=pos_accuracy_m,
    )


@pytest.fixture
def payload_factory() -> Callable[..., bytes]:
    return make_payload


@pytest.fixture
def beacon_factory() -> Callable[..., BeaconMessage]:
    return make_beacon


# =============================================================================
# Transport Fixtures
# =============================================================================


class FakeTransport(DatagramTransport):
    """
    In-memory datagram transport.

    Injected datagrams are returned by receive() in order; injected
    exceptions are raised from receive().
    """

    def __init__(self, fail_bind: bool = False):
        self.fail_bind = fail_bind
        self.bound = False
        self.closed = False
        self.close_calls = 0
        self._inbox: "queue.Queue" = queue.Queue()

    def bind(self):
        if self.fail_bind:
            raise OSError(98, "Address already in use")
        self.bound = True

    def receive(self) -> Optional[Datagram]:
        if self.closed:
            raise OSError("transport is closed")
        try:
            item = self._inbox.get(timeout=0.02)
        except queue.Empty:
            return None
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True
        self.close_calls += 1

    def inject(self, payload: bytes, host: str = "10.0.0.2", port: int = 40000):
        self._inbox.put(Datagram(payload=payload, host=host, port=port))

    def inject_error(self, error: Exception):
        self._inbox.put(error)

    @property
    def local_address(self) -> str:
        return "UDP fake:5000"


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


# =============================================================================
# Helper Functions
# =============================================================================


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll `predicate` until it is true or `timeout` elapses."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def drain(q: "queue.Queue", timeout: float = 0.0) -> list:
    """All items currently in `q` (optionally waiting for the first one)."""
    items = []
    if timeout:
        try:
            items.append(q.get(timeout=timeout))
        except queue.Empty:
            return items
    while True:
        try:
            items.append(q.get_nowait())
        except queue.Empty:
            return items


# Reference positions along the equator (lat, lon)
ORIGIN = (0.0, 0.0)
POINT_5M = (0.00005, 0.0)    # ~5.56 m from ORIGIN
POINT_11M = (0.00010, 0.0)   # ~11.12 m from ORIGIN
POINT_22M = (0.00020, 0.0)   # ~22.24 m from ORIGIN


@pytest.fixture
def reference_points() -> Dict[str, tuple]:
    return {
        "origin": ORIGIN,
        "5m": POINT_5M,
        "11m": POINT_11M,
        "22m": POINT_22M,
    }
