"""
Log record formats and sinks.

Two append-only feeds per session:
- structured: one CSV row per processed beacon, header row first
- raw: one text line per received datagram, decodable or not

Sinks raise OSError (or ValueError for unencodable text) on write/flush
failure; the ingestion loop reports it and keeps going. Text that is not
valid Unicode, such as lone surrogates in a peer id, is written with
backslash escapes.
"""

import csv
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from rsu_core.proto import BeaconMessage, WarningLevel

logger = logging.getLogger(__name__)

STRUCTURED_HEADER: Tuple[str, ...] = (
    "time_rx_ms",
    "peer_label",
    "peer_id",
    "seq",
    "lat",
    "lon",
    "nearest_peer_label",
    "nearest_distance_m",
    "speed_kmh",
    "pos_accuracy_m",
    "latency_ms",
    "warning",
)


def _fmt2(value: Optional[float]) -> str:
    return "" if value is None else f"{value:.2f}"


@dataclass(frozen=True)
class StructuredRecord:
    """One processed beacon, as written to the structured log."""

    rx_time_ms: int
    peer_label: str
    peer_id: str
    seq: int
    lat: float
    lon: float
    nearest_label: Optional[str]
    nearest_distance_m: Optional[float]
    speed_kmh: float
    pos_accuracy_m: float
    latency_ms: Optional[float]
    warning: WarningLevel

    @classmethod
    def from_beacon(
        cls,
        rx_time_ms: int,
        label: str,
        beacon: BeaconMessage,
        nearest_label: Optional[str],
        nearest_distance_m: Optional[float],
        latency_ms: Optional[float],
        warning: WarningLevel
    ) -> 'StructuredRecord':
        return cls(
            rx_time_ms=rx_time_ms,
            peer_label=label,
            peer_id=beacon.peer_id,
            seq=beacon.seq,
            lat=beacon.lat,
            lon=beacon.lon,
            nearest_label=nearest_label,
            nearest_distance_m=nearest_distance_m,
            speed_kmh=beacon.speed_kmh,
            pos_accuracy_m=beacon.pos_accuracy_m,
            latency_ms=latency_ms,
            warning=warning,
        )

    def to_row(self) -> List[str]:
        """Column values in STRUCTURED_HEADER order."""
        return [
            str(self.rx_time_ms),
            self.peer_label,
            self.peer_id,
            str(self.seq),
            str(self.lat),
            str(self.lon),
            self.nearest_label or "",
            _fmt2(self.nearest_distance_m),
            _fmt2(self.speed_kmh),
            _fmt2(self.pos_accuracy_m),
            _fmt2(self.latency_ms),
            self.warning.name,
        ]


@dataclass(frozen=True)
class RawRecord:
    """One received datagram, as written to the raw audit log."""

    rx_time_ms: int
    host: str
    port: int
    payload_text: str

    @classmethod
    def from_payload(cls, rx_time_ms: int, host: str, port: int, payload: bytes) -> 'RawRecord':
        return cls(rx_time_ms, host, port, payload.decode("utf-8", errors="replace"))

    def to_line(self) -> str:
        return f"{self.rx_time_ms} from={self.host}:{self.port} {self.payload_text}"


class LogSink:
    """
    Consumer of structured and raw log records.

    Subclasses implement the storage. `open()` starts a new session's feeds
    (header included); `close()` flushes and releases them.
    """

    def open(self):
        raise NotImplementedError

    def write_structured(self, record: StructuredRecord):
        raise NotImplementedError

    def write_raw(self, record: RawRecord):
        raise NotImplementedError

    def flush(self):
        pass

    def close(self):
        pass

    @property
    def location(self) -> Optional[str]:
        """Where records end up, for display."""
        return None


class MemoryLogSink(LogSink):
    """Keeps rows and raw lines in lists; for tests and `--no-log` runs."""

    def __init__(self):
        self.rows: List[List[str]] = []
        self.raw_lines: List[str] = []
        self.opened = 0
        self.closed = 0

    def open(self):
        self.opened += 1
        self.rows.append(list(STRUCTURED_HEADER))

    def write_structured(self, record: StructuredRecord):
        self.rows.append(record.to_row())

    def write_raw(self, record: RawRecord):
        self.raw_lines.append(record.to_line())

    def close(self):
        self.closed += 1

    @property
    def location(self) -> Optional[str]:
        return "memory"


class FileLogSink(LogSink):
    """
    Timestamped CSV + raw text files in a log directory.

    Files: <csv_prefix>_<YYYYmmdd_HHMMSS>.csv and <raw_prefix>_<...>.txt.
    Every record is flushed as soon as it is written.
    """

    def __init__(
        self,
        directory: str,
        csv_prefix: str = "rsu_log",
        raw_prefix: str = "rsu_raw"
    ):
        self.directory = Path(directory)
        self.csv_prefix = csv_prefix
        self.raw_prefix = raw_prefix
        self.csv_path: Optional[Path] = None
        self.raw_path: Optional[Path] = None
        self._csv_file = None
        self._csv_writer = None
        self._raw_file = None

    def open(self):
        """
        Create the log directory and this session's files.

        Raises:
            OSError: Directory or files could not be created
        """
        self.close()

        self.directory.mkdir(parents=True, exist_ok=True)
        stamp = time.strftime("%Y%m%d_%H%M%S")
        self.csv_path = self.directory / f"{self.csv_prefix}_{stamp}.csv"
        self.raw_path = self.directory / f"{self.raw_prefix}_{stamp}.txt"

        self._csv_file = open(
            self.csv_path, "a", newline="", encoding="utf-8", errors="backslashreplace"
        )
        self._raw_file = open(self.raw_path, "a", encoding="utf-8", errors="backslashreplace")
        self._csv_writer = csv.writer(self._csv_file, lineterminator="\n")

        self._csv_writer.writerow(STRUCTURED_HEADER)
        self._csv_file.flush()
        logger.info(f"Logging to {self.csv_path} and {self.raw_path}")

    def write_structured(self, record: StructuredRecord):
        if self._csv_writer is None:
            return
        self._csv_writer.writerow(record.to_row())
        self._csv_file.flush()

    def write_raw(self, record: RawRecord):
        if self._raw_file is None:
            return
        self._raw_file.write(record.to_line() + "\n")
        self._raw_file.flush()

    def flush(self):
        for f in (self._csv_file, self._raw_file):
            if f is not None:
                f.flush()

    def close(self):
        for f in (self._csv_file, self._raw_file):
            if f is None:
                continue
            try:
                f.close()
            except OSError as e:
                logger.error(f"Closing log file failed: {e}")
        self._csv_file = None
        self._csv_writer = None
        self._raw_file = None

    @property
    def location(self) -> Optional[str]:
        return os.fspath(self.directory.resolve())
