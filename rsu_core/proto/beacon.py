"""
Beacon (CAM-like) Message Schema and Wire Codec.

Beacons are UTF-8 JSON objects, one per UDP datagram:

    {"msg_type": "CAM", "vehicle_id": "veh_1a2b", "seq": 42,
     "timestamp_ms": 1700000000000, "lat": 48.1371, "lon": 11.5754,
     "speed_kmh": 32.5, "heading_deg": 270.0, "pos_accuracy_m": 3.9,
     "gps_time_ms": 1699999999800}

Decoding is lenient on optional fields (missing or unparseable values take
their defaults) and strict on coordinates: a beacon without parseable
lat/lon is rejected as a whole.
"""

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

BEACON_MSG_TYPE = "CAM"
UNKNOWN_PEER_ID = "unknown"
NO_SEQUENCE = -1


class DecodeRejection(Enum):
    """Why a datagram did not yield a beacon. Values double as drop reason codes."""

    INVALID_ENCODING = "invalid_encoding"        # Not UTF-8
    PARSE_ERROR = "parse_error"                  # Not a JSON object
    NOT_BEACON = "not_beacon"                    # msg_type is not CAM
    MISSING_COORDINATES = "missing_coordinates"  # lat/lon missing or unparseable


@dataclass(frozen=True)
class BeaconMessage:
    """
    Decoded beacon.

    Attributes:
        peer_id: Sender identity (unique within a session only)
        seq: Sender sequence number, NO_SEQUENCE (-1) if absent
        lat: Latitude (degrees)
        lon: Longitude (degrees)
        origin_time_ms: Sender wall-clock at transmission (ms epoch), if sent
        speed_kmh: Ground speed (km/h)
        heading_deg: Course over ground (degrees)
        pos_accuracy_m: Horizontal position accuracy (m)
        fix_time_ms: Time of the sender's position fix (ms epoch), if sent
    """

    peer_id: str
    seq: int
    lat: float
    lon: float
    origin_time_ms: Optional[int] = None
    speed_kmh: float = 0.0
    heading_deg: float = 0.0
    pos_accuracy_m: float = 0.0
    fix_time_ms: Optional[int] = None

    @property
    def has_sequence(self) -> bool:
        return self.seq != NO_SEQUENCE

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation (absent optional timestamps are omitted)."""
        payload: Dict[str, Any] = {
            "msg_type": BEACON_MSG_TYPE,
            "vehicle_id": self.peer_id,
            "seq": self.seq,
            "lat": self.lat,
            "lon": self.lon,
            "speed_kmh": self.speed_kmh,
            "heading_deg": self.heading_deg,
            "pos_accuracy_m": self.pos_accuracy_m,
        }
        if self.origin_time_ms is not None:
            payload["timestamp_ms"] = self.origin_time_ms
        if self.fix_time_ms is not None:
            payload["gps_time_ms"] = self.fix_time_ms
        return payload


@dataclass(frozen=True)
class DecodeResult:
    """
    Tagged outcome of decoding one datagram.

    Exactly one of `beacon` and `rejection` is set.
    """

    beacon: Optional[BeaconMessage] = None
    rejection: Optional[DecodeRejection] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.beacon is not None


def _rejected(reason: DecodeRejection, detail: str = "") -> DecodeResult:
    return DecodeResult(rejection=reason, detail=detail)


def _parse_float(value: Any) -> Optional[float]:
    """Numbers and numeric strings; None for anything else."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _parse_int(value: Any) -> Optional[int]:
    """Integers, finite floats (truncated) and numeric strings."""
    number = _parse_float(value)
    if number is None or not math.isfinite(number):
        return None
    if isinstance(value, int):
        return value
    return int(number)


def decode_beacon(payload: bytes) -> DecodeResult:
    """
    Decode and validate one datagram payload.

    Args:
        payload: Raw datagram bytes

    Returns:
        DecodeResult carrying a BeaconMessage or the rejection reason.
        Never raises for malformed input.
    """
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        return _rejected(DecodeRejection.INVALID_ENCODING, str(e))

    try:
        obj = json.loads(text)
    except json.JSONDecodeError as e:
        return _rejected(DecodeRejection.PARSE_ERROR, str(e))

    if not isinstance(obj, dict):
        return _rejected(DecodeRejection.PARSE_ERROR, f"expected object, got {type(obj).__name__}")

    msg_type = obj.get("msg_type", "")
    if msg_type != BEACON_MSG_TYPE:
        return _rejected(DecodeRejection.NOT_BEACON, f"msg_type={msg_type!r}")

    lat = _parse_float(obj.get("lat"))
    lon = _parse_float(obj.get("lon"))
    if lat is None or lon is None or not (math.isfinite(lat) and math.isfinite(lon)):
        return _rejected(
            DecodeRejection.MISSING_COORDINATES,
            f"lat={obj.get('lat')!r} lon={obj.get('lon')!r}"
        )

    peer_id = obj.get("vehicle_id")
    if peer_id is None:
        peer_id = UNKNOWN_PEER_ID

    seq = _parse_int(obj.get("seq"))

    beacon = BeaconMessage(
        peer_id=str(peer_id),
        seq=NO_SEQUENCE if seq is None else seq,
        lat=lat,
        lon=lon,
        origin_time_ms=_parse_int(obj.get("timestamp_ms")),
        speed_kmh=_parse_float(obj.get("speed_kmh")) or 0.0,
        heading_deg=_parse_float(obj.get("heading_deg")) or 0.0,
        pos_accuracy_m=_parse_float(obj.get("pos_accuracy_m")) or 0.0,
        fix_time_ms=_parse_int(obj.get("gps_time_ms")),
    )
    return DecodeResult(beacon=beacon)


def encode_beacon(message: BeaconMessage) -> bytes:
    """Serialize a beacon to its UTF-8 JSON datagram payload."""
    return json.dumps(message.to_dict()).encode("utf-8")
