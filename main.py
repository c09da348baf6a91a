"""
RSU beacon monitor entry point.

RSU mode listens for peer beacons, prints per-peer delivery statistics and
V2V proximity warnings, and logs every datagram. Peer mode sends beacons
from a virtual position source to an RSU.
"""

import sys
import time
import signal
import logging
import argparse
import queue
from typing import Optional

import config
from beacon_sender import BeaconSender, VirtualPositionSource
from rsu_core.domain import ProximityConfig
from rsu_core.io import FileLogSink, IngestionLoop, MemoryLogSink, UdpTransport
from rsu_core.metrics import get_metrics
from rsu_core.proto import NO_SUMMARY_TEXT, SessionSnapshot, StatusUpdate, WarningLevel

logging.basicConfig(
    level=getattr(logging, config.LOGGING_CONFIG["level"]),
    format=config.LOGGING_CONFIG["format"]
)
logger = logging.getLogger(__name__)


class ConsolePresenter:
    """Prints status lines and the per-peer table from loop updates."""

    def __init__(self, print_interval_s: float = 1.0):
        self.print_interval_s = print_interval_s
        self.status = "RSU: Idle"
        self.log_location = "Log folder: -"
        self.summary_text = NO_SUMMARY_TEXT
        self.overall_warning = WarningLevel.UNKNOWN
        self.last_snapshot: Optional[SessionSnapshot] = None
        self._last_print = 0.0

    def show(self, update):
        if isinstance(update, StatusUpdate):
            self.status = update.text
            if update.log_location is not None:
                self.log_location = f"Log folder: {update.log_location}"
            print(f"[RSU] {self.status}")
            if update.log_location is not None:
                print(f"[RSU] {self.log_location}")
            return

        self.last_snapshot = update
        self.overall_warning = update.overall_warning
        self.summary_text = update.summary_text
        if update.summary is not None:
            print(f"[RSU] {update.summary.text}")

        now = time.time()
        if now - self._last_print >= self.print_interval_s:
            self._last_print = now
            self.print_table(update)

    def print_table(self, snapshot: SessionSnapshot):
        print("=" * 100)
        print(f"  {self.overall_warning.display_text}    {self.summary_text}")
        print("-" * 100)
        for line in snapshot.peer_lines:
            print(f"  {line}")
        print("=" * 100)


class RSUMonitor:
    """RSU role: ingestion loop plus console presenter."""

    def __init__(self, log_enabled: bool = True):
        self.running = False

        if log_enabled:
            log_sink = FileLogSink(
                directory=config.LOG_SINK_CONFIG["directory"],
                csv_prefix=config.LOG_SINK_CONFIG["csv_prefix"],
                raw_prefix=config.LOG_SINK_CONFIG["raw_prefix"],
            )
        else:
            log_sink = MemoryLogSink()

        self.loop = IngestionLoop(
            transport_factory=lambda: UdpTransport(
                host=config.SERVER_CONFIG["host"],
                port=config.SERVER_CONFIG["port"],
                buffer_size=config.SERVER_CONFIG["buffer_size"],
                poll_interval_s=config.SERVER_CONFIG["poll_interval_s"],
            ),
            log_sink=log_sink,
            proximity_config=ProximityConfig(**config.PROXIMITY_CONFIG),
            summary_every=config.SESSION_CONFIG["summary_every"],
            queue_size=config.SESSION_CONFIG["queue_size"],
        )
        self.presenter = ConsolePresenter(config.OUTPUT_CONFIG["print_interval_s"])

        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum, frame):
        logger.info(f"Received signal {signum}, stopping...")
        self.running = False

    def start(self) -> int:
        """Run until interrupted or the session ends. Returns an exit code."""
        if not self.loop.start():
            self._drain()
            return 1

        self.running = True
        try:
            while self.running:
                try:
                    update = self.loop.updates.get(timeout=0.5)
                except queue.Empty:
                    continue
                if config.OUTPUT_CONFIG["enable_console_print"]:
                    self.presenter.show(update)
                if isinstance(update, StatusUpdate) and update.terminal:
                    break
        finally:
            self.stop()
        return 0

    def _drain(self):
        while True:
            try:
                self.presenter.show(self.loop.updates.get_nowait())
            except queue.Empty:
                return

    def stop(self):
        self.running = False
        self.loop.stop()
        self._drain()

        session = self.loop.session
        if session is not None and len(session.stats) > 0:
            print("\n" + "=" * 60)
            print("               RSU stopped")
            print("=" * 60)
            print(f"Session duration: {time.time() - session.started_at:.1f}s")
            print(f"Peers tracked: {len(session.stats)} ({', '.join(session.registry.labels())})")
            print(f"Beacons received: {session.total_received}")
            print(f"Beacons lost: {session.total_lost}")
            print(self.presenter.summary_text)
            print("=" * 60)

        if config.OUTPUT_CONFIG["print_metrics_on_exit"]:
            get_metrics().print_summary()


def run_peer(args) -> int:
    """Peer role: send beacons until interrupted."""
    virtual = config.BEACON_CONFIG["virtual_position"]
    source = VirtualPositionSource(
        base_lat=args.lat if args.lat is not None else virtual["base_lat"],
        base_lon=args.lon if args.lon is not None else virtual["base_lon"],
        speed_kmh=virtual["speed_kmh"],
        heading_deg=virtual["heading_deg"],
        accuracy_m=virtual["accuracy_m"],
    )
    sender = BeaconSender(
        host=args.rsu_host or config.BEACON_CONFIG["rsu_host"],
        port=args.port or config.BEACON_CONFIG["port"],
        position_source=source,
        peer_id=args.peer_id,
        interval_ms=args.interval or config.BEACON_CONFIG["interval_ms"],
    )

    stop_requested = False

    def _signal_handler(signum, frame):
        nonlocal stop_requested
        stop_requested = True

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    sender.start()
    try:
        while not stop_requested:
            time.sleep(0.2)
    finally:
        sender.stop()
        print(f"[Peer] {sender.peer_id}: sent {sender.sent_count} beacons")
    return 0


def main():
    parser = argparse.ArgumentParser(description='RSU beacon monitor')
    parser.add_argument('--mode', '-m', choices=['rsu', 'peer'], default='rsu',
                        help='rsu: receive and analyze beacons; peer: send beacons')
    parser.add_argument('--host', '-H', type=str, default=None,
                        help='RSU listen address')
    parser.add_argument('--port', '-p', type=int, default=None,
                        help='Beacon UDP port')
    parser.add_argument('--log-dir', type=str, default=None,
                        help='Directory for structured and raw logs')
    parser.add_argument('--no-log', action='store_true',
                        help='Do not write log files')
    parser.add_argument('--rsu-host', type=str, default=None,
                        help='Peer mode: RSU address')
    parser.add_argument('--interval', type=int, default=None,
                        help='Peer mode: beacon interval (ms)')
    parser.add_argument('--peer-id', type=str, default=None,
                        help='Peer mode: beacon identity')
    parser.add_argument('--lat', type=float, default=None,
                        help='Peer mode: virtual start latitude')
    parser.add_argument('--lon', type=float, default=None,
                        help='Peer mode: virtual start longitude')
    parser.add_argument('--debug', '-d', action='store_true',
                        help='Enable debug logging')

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.mode == 'peer':
        sys.exit(run_peer(args))

    if args.host:
        config.SERVER_CONFIG["host"] = args.host
    if args.port:
        config.SERVER_CONFIG["port"] = args.port
    if args.log_dir:
        config.LOG_SINK_CONFIG["directory"] = args.log_dir

    monitor = RSUMonitor(log_enabled=config.LOG_SINK_CONFIG["enabled"] and not args.no_log)
    sys.exit(monitor.start())


if __name__ == "__main__":
    main()
