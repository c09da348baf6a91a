"""
Protocol Module: Beacon wire format, warning levels, presenter snapshots.

- Lenient decoding of optional fields, strict on coordinates
- Typed decode result instead of exceptions for malformed input
- Immutable snapshot values for the presentation side
"""

from .beacon import (
    BEACON_MSG_TYPE,
    NO_SEQUENCE,
    UNKNOWN_PEER_ID,
    BeaconMessage,
    DecodeRejection,
    DecodeResult,
    decode_beacon,
    encode_beacon,
)
from .warning import WarningLevel, worst_warning
from .snapshot import (
    NO_SUMMARY_TEXT,
    PeerSnapshot,
    SessionSummary,
    SessionSnapshot,
    StatusUpdate,
)

__all__ = [
    # Beacon codec
    'BEACON_MSG_TYPE',
    'NO_SEQUENCE',
    'UNKNOWN_PEER_ID',
    'BeaconMessage',
    'DecodeRejection',
    'DecodeResult',
    'decode_beacon',
    'encode_beacon',
    # Warnings
    'WarningLevel',
    'worst_warning',
    # Snapshots
    'NO_SUMMARY_TEXT',
    'PeerSnapshot',
    'SessionSummary',
    'SessionSnapshot',
    'StatusUpdate',
]
