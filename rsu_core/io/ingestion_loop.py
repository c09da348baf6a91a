"""
RSU Ingestion Loop.

Two states:

    IDLE --start()--> LISTENING --stop() / transport failure--> IDLE

start() discards the previous session, creates an empty SessionState,
opens the log sink and binds the transport, then hands the socket to a
single worker thread. Per datagram, in receive order, the worker runs:

    raw log -> decode -> label -> stats -> proximity -> structured log
            -> aggregate -> snapshot to presenter queue

The worker is the only writer of session state. The presenter receives
frozen SessionSnapshot / StatusUpdate values via `updates`.
"""

import logging
import queue
import threading
import time
from enum import Enum
from typing import Callable, Optional, Union

from rsu_core.domain import (
    DEFAULT_SUMMARY_EVERY,
    ProximityConfig,
    ProximityEngine,
    SessionAggregator,
)
from rsu_core.metrics import get_metrics
from rsu_core.proto import SessionSnapshot, StatusUpdate, decode_beacon
from rsu_core.tracking import SessionState

from .log_sink import LogSink, MemoryLogSink, RawRecord, StructuredRecord
from .transport import Datagram, DatagramTransport

logger = logging.getLogger(__name__)

PresenterUpdate = Union[SessionSnapshot, StatusUpdate]


def now_ms() -> int:
    """Wall-clock in milliseconds since the epoch."""
    return int(time.time() * 1000)


class LoopState(Enum):
    IDLE = "idle"
    LISTENING = "listening"


class IngestionLoop:
    """
    Background receive-and-process loop for one RSU.

    Usage:
        loop = IngestionLoop(lambda: UdpTransport(port=5000), FileLogSink("rsu_logs"))
        if loop.start():
            update = loop.updates.get()
            ...
        loop.stop()
    """

    def __init__(
        self,
        transport_factory: Callable[[], DatagramTransport],
        log_sink: Optional[LogSink] = None,
        proximity_config: Optional[ProximityConfig] = None,
        summary_every: int = DEFAULT_SUMMARY_EVERY,
        queue_size: int = 100,
        clock_ms: Callable[[], int] = now_ms
    ):
        """
        Args:
            transport_factory: Creates an unbound transport for each session
            log_sink: Record consumer (in-memory if None)
            proximity_config: Warning thresholds
            summary_every: Periodic summary interval in received beacons
            queue_size: Capacity of the presenter queue; oldest entries drop
            clock_ms: Receive timestamp source
        """
        self.transport_factory = transport_factory
        self.log_sink = log_sink if log_sink is not None else MemoryLogSink()
        self.proximity = ProximityEngine(proximity_config)
        self.aggregator = SessionAggregator(summary_every)
        self.updates: "queue.Queue[PresenterUpdate]" = queue.Queue(maxsize=queue_size)
        self.clock_ms = clock_ms
        self.metrics = get_metrics()

        self.state = LoopState.IDLE
        self.session: Optional[SessionState] = None

        self._lock = threading.Lock()
        self._running = threading.Event()
        self._transport: Optional[DatagramTransport] = None
        self._worker: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def reset_session(self) -> SessionState:
        """Drop the current session state and start an empty one."""
        self.session = SessionState()
        return self.session

    def start(self) -> bool:
        """
        IDLE -> LISTENING.

        Returns:
            True if listening; False if the transport could not be bound
            (the session then ends immediately and the loop stays IDLE)
        """
        self.stop(publish=False)

        with self._lock:
            self.reset_session()
            self.metrics.increment('sessions_started')

            log_location = self.log_sink.location
            try:
                self.log_sink.open()
            except OSError as e:
                logger.error(f"Opening log sink failed: {e}")
                self.metrics.increment_drop('sink_error')
                log_location = f"Log error: {e}"

            transport = self.transport_factory()
            try:
                transport.bind()
            except OSError as e:
                logger.error(f"Binding transport failed: {e}")
                self._close_sink()
                self._publish(StatusUpdate(f"RSU: bind failed: {e}", terminal=True))
                return False

            # One liveness flag per session; a leftover worker only sees its own
            running = threading.Event()
            running.set()
            self._running = running
            self._transport = transport
            self.state = LoopState.LISTENING
            self._worker = threading.Thread(
                target=self._run,
                args=(transport, running),
                name="rsu-ingestion",
                daemon=True
            )
            self._worker.start()

        logger.info(f"RSU listening on {transport.local_address}")
        self._publish(StatusUpdate(
            f"RSU: Listening on {transport.local_address}",
            log_location=log_location
        ))
        return True

    def stop(self, timeout: float = 5.0, publish: bool = True):
        """
        LISTENING -> IDLE. No-op when already idle.

        Session state stays readable until the next start().
        """
        with self._lock:
            worker = self._worker
            transport = self._transport
            if worker is None:
                return
            self._running.clear()
            if transport is not None:
                transport.close()

        if worker is not threading.current_thread():
            worker.join(timeout)
            if worker.is_alive():
                logger.warning("Ingestion worker did not exit in time")

        with self._lock:
            self._worker = None

        if publish:
            self._publish(StatusUpdate("Stopped", terminal=True))

    @property
    def is_listening(self) -> bool:
        return self.state is LoopState.LISTENING

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _run(self, transport: DatagramTransport, running: threading.Event):
        try:
            while running.is_set():
                try:
                    datagram = transport.receive()
                except OSError as e:
                    if running.is_set():
                        logger.error(f"Transport receive failed: {e}")
                        self._publish(StatusUpdate(f"RSU: transport error: {e}", terminal=True))
                    break

                if datagram is None:
                    continue

                rx_time_ms = self.clock_ms()
                try:
                    self.process_datagram(datagram, rx_time_ms)
                except Exception:
                    logger.exception(f"Processing datagram from {datagram.host}:{datagram.port} failed")
        finally:
            running.clear()
            transport.close()
            with self._lock:
                current = self._transport is transport
            if current:
                self._close_sink()
                self.state = LoopState.IDLE
                logger.info("RSU ingestion stopped")
            else:
                logger.warning("Stale ingestion worker exited after a newer session started")

    def process_datagram(self, datagram: Datagram, rx_time_ms: int) -> Optional[SessionSnapshot]:
        """
        Run the full pipeline for one datagram.

        Args:
            datagram: Received payload and sender
            rx_time_ms: Receive wall-clock (ms epoch)

        Returns:
            The published snapshot, or None if the datagram was not a usable beacon
        """
        session = self.session
        if session is None:
            raise RuntimeError("no active session; call start() or reset_session() first")

        self.metrics.increment('datagrams_in')
        self._write_record(
            self.log_sink.write_raw,
            RawRecord.from_payload(rx_time_ms, datagram.host, datagram.port, datagram.payload)
        )

        result = decode_beacon(datagram.payload)
        if not result.ok:
            self.metrics.increment('decode_failures')
            self.metrics.increment_drop(result.rejection.value)
            logger.debug(
                f"Dropped datagram from {datagram.host}:{datagram.port}: "
                f"{result.rejection.value} {result.detail}"
            )
            return None

        beacon = result.beacon
        label = session.registry.label_for(beacon.peer_id)
        stats, latency_ms = session.stats.update(beacon.peer_id, label, beacon, rx_time_ms)
        if latency_ms is not None:
            self.metrics.record_histogram('latency_ms', latency_ms)

        positioned = self.proximity.recompute(session.stats)
        self.metrics.record_histogram('proximity_peers', positioned)

        self._write_record(
            self.log_sink.write_structured,
            StructuredRecord.from_beacon(
                rx_time_ms=rx_time_ms,
                label=label,
                beacon=beacon,
                nearest_label=stats.nearest_label,
                nearest_distance_m=stats.nearest_distance_m,
                latency_ms=latency_ms,
                warning=stats.warning,
            )
        )

        summary = self.aggregator.maybe_summary(session.stats)
        if summary is not None:
            session.latest_summary = summary
            self.metrics.increment('summaries_emitted')

        snapshot = SessionSnapshot(
            peers=tuple(s.snapshot() for s in session.stats),
            overall_warning=self.aggregator.overall_warning(session.stats),
            summary_text=session.summary_text,
            summary=summary,
            rx_time_ms=rx_time_ms,
        )
        self.metrics.increment('beacons_processed')
        self._publish(snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _write_record(self, write: Callable, record):
        try:
            write(record)
        except (OSError, ValueError) as e:
            logger.error(f"Log sink write failed: {e}")
            self.metrics.increment_drop('sink_error')

    def _close_sink(self):
        try:
            self.log_sink.flush()
        except (OSError, ValueError) as e:
            logger.error(f"Log sink flush failed: {e}")
            self.metrics.increment_drop('sink_error')
        finally:
            self.log_sink.close()

    def _publish(self, update: PresenterUpdate):
        """Queue an update for the presenter, discarding the oldest if full."""
        while True:
            try:
                self.updates.put_nowait(update)
                return
            except queue.Full:
                try:
                    self.updates.get_nowait()
                except queue.Empty:
                    continue
                self.metrics.increment_drop('queue_full')
