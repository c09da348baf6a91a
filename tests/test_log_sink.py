"""
Unit tests for log record formats and sinks.

Tests cover:
- Structured row formatting (decimals, empty absent values)
- Raw audit line formatting
- File sink: header, per-session files, flushing, close
- Memory sink bookkeeping
"""

import csv

import pytest

from rsu_core.io import (
    STRUCTURED_HEADER,
    FileLogSink,
    MemoryLogSink,
    RawRecord,
    StructuredRecord,
)
from rsu_core.proto import WarningLevel
from tests.conftest import make_beacon


@pytest.fixture
def full_record() -> StructuredRecord:
    beacon = make_beacon(peer_id="veh_1a2b", seq=7, lat=48.1371, lon=11.5754,
                         speed_kmh=32.5, pos_accuracy_m=3.9)
    return StructuredRecord.from_beacon(
        rx_time_ms=1_700_000_000_500,
        label="Peer-1",
        beacon=beacon,
        nearest_label="Peer-2",
        nearest_distance_m=11.1195,
        latency_ms=-3.0,
        warning=WarningLevel.WARN,
    )


class TestStructuredRecord:
    """Tests for structured row formatting."""

    def test_header_columns(self):
        assert STRUCTURED_HEADER == (
            "time_rx_ms", "peer_label", "peer_id", "seq", "lat", "lon",
            "nearest_peer_label", "nearest_distance_m", "speed_kmh",
            "pos_accuracy_m", "latency_ms", "warning",
        )

    def test_full_row(self, full_record):
        assert full_record.to_row() == [
            "1700000000500", "Peer-1", "veh_1a2b", "7", "48.1371", "11.5754",
            "Peer-2", "11.12", "32.50", "3.90", "-3.00", "WARN",
        ]

    def test_absent_values_empty(self):
        record = StructuredRecord.from_beacon(
            rx_time_ms=1, label="Peer-1", beacon=make_beacon(seq=-1),
            nearest_label=None, nearest_distance_m=None, latency_ms=None,
            warning=WarningLevel.SAFE,
        )
        row = record.to_row()
        assert row[3] == "-1"
        assert row[6] == ""
        assert row[7] == ""
        assert row[10] == ""
        assert row[11] == "SAFE"
        assert len(row) == len(STRUCTURED_HEADER)


class TestRawRecord:
    """Tests for raw audit lines."""

    def test_line_format(self):
        record = RawRecord.from_payload(123, "10.0.0.7", 40001, b'{"msg_type":"CAM"}')
        assert record.to_line() == '123 from=10.0.0.7:40001 {"msg_type":"CAM"}'

    def test_undecodable_bytes_replaced(self):
        record = RawRecord.from_payload(1, "h", 1, b"\xffabc")
        assert record.payload_text.endswith("abc")
        assert "�" in record.payload_text


class TestFileLogSink:
    """Tests for file-backed sink."""

    def test_open_writes_header(self, tmp_path):
        sink = FileLogSink(str(tmp_path / "logs"))
        sink.open()
        sink.close()

        assert sink.csv_path.name.startswith("rsu_log_")
        assert sink.csv_path.suffix == ".csv"
        assert sink.raw_path.name.startswith("rsu_raw_")
        assert sink.csv_path.read_text().splitlines() == [",".join(STRUCTURED_HEADER)]

    def test_records_are_written_immediately(self, tmp_path, full_record):
        sink = FileLogSink(str(tmp_path))
        sink.open()
        sink.write_structured(full_record)
        sink.write_raw(RawRecord(5, "10.0.0.2", 4000, "payload"))

        # Readable before close: flushed per record
        with open(sink.csv_path, newline="") as f:
            rows = list(csv.reader(f))
        assert rows[0] == list(STRUCTURED_HEADER)
        assert rows[1] == full_record.to_row()
        assert sink.raw_path.read_text() == "5 from=10.0.0.2:4000 payload\n"

        sink.close()

    def test_peer_id_with_comma_is_quoted(self, tmp_path):
        sink = FileLogSink(str(tmp_path))
        sink.open()
        record = StructuredRecord.from_beacon(
            1, "Peer-1", make_beacon(peer_id="a,b"), None, None, None, WarningLevel.SAFE
        )
        sink.write_structured(record)
        sink.close()

        with open(sink.csv_path, newline="") as f:
            rows = list(csv.reader(f))
        assert rows[1][2] == "a,b"

    def test_writes_after_close_are_ignored(self, tmp_path, full_record):
        sink = FileLogSink(str(tmp_path))
        sink.open()
        sink.close()
        sink.write_structured(full_record)
        sink.write_raw(RawRecord(1, "h", 1, "x"))
        assert len(sink.csv_path.read_text().splitlines()) == 1

    def test_close_is_idempotent(self, tmp_path):
        sink = FileLogSink(str(tmp_path))
        sink.open()
        sink.close()
        sink.close()

    def test_open_fails_when_directory_is_a_file(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")
        sink = FileLogSink(str(blocker))
        with pytest.raises(OSError):
            sink.open()

    def test_location_is_directory(self, tmp_path):
        sink = FileLogSink(str(tmp_path))
        assert sink.location == str(tmp_path.resolve())


class TestMemoryLogSink:
    """Tests for in-memory sink."""

    def test_header_per_open(self, full_record):
        sink = MemoryLogSink()
        sink.open()
        sink.write_structured(full_record)
        sink.close()

        assert sink.rows[0] == list(STRUCTURED_HEADER)
        assert sink.rows[1] == full_record.to_row()
        assert sink.opened == 1
        assert sink.closed == 1


class TestUnencodableText:
    """Tests for peer ids that are not valid Unicode."""

    def test_lone_surrogate_written_escaped(self, tmp_path):
        sink = FileLogSink(str(tmp_path))
        sink.open()
        record = StructuredRecord.from_beacon(
            1, "Peer-1", make_beacon(peer_id="veh_\udc80"), None, None, None, WarningLevel.SAFE
        )
        sink.write_structured(record)
        sink.write_raw(RawRecord(1, "10.0.0.2", 4000, "id=\ud800"))
        sink.close()

        with open(sink.csv_path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert rows[1][2] == "veh_\\udc80"
        assert sink.raw_path.read_text(encoding="utf-8") == "1 from=10.0.0.2:4000 id=\\ud800\n"
