"""
I/O Module: UDP transport, log sinks, ingestion loop.

- Bounded presenter queue (oldest snapshot dropped on overflow)
- Cooperative shutdown: liveness flag plus transport close
- Log sink failures never stop ingestion
"""

from .transport import Datagram, DatagramTransport, UdpTransport
from .log_sink import (
    STRUCTURED_HEADER,
    FileLogSink,
    LogSink,
    MemoryLogSink,
    RawRecord,
    StructuredRecord,
)
from .ingestion_loop import IngestionLoop, LoopState, PresenterUpdate, now_ms

__all__ = [
    # Transport
    'Datagram',
    'DatagramTransport',
    'UdpTransport',
    # Log sinks
    'STRUCTURED_HEADER',
    'FileLogSink',
    'LogSink',
    'MemoryLogSink',
    'RawRecord',
    'StructuredRecord',
    # Ingestion
    'IngestionLoop',
    'LoopState',
    'PresenterUpdate',
    'now_ms',
]
