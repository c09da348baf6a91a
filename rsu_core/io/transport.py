"""
Datagram transport for inbound beacons.
"""

import logging
import socket
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Datagram:
    """One received datagram and its sender."""

    payload: bytes
    host: str
    port: int


class DatagramTransport:
    """
    Blocking receive side of a connectionless transport.

    `receive()` returns None when its poll interval elapses without data,
    so the caller can check its liveness flag; it raises OSError once the
    transport is closed or broken.
    """

    def bind(self):
        raise NotImplementedError

    def receive(self) -> Optional[Datagram]:
        raise NotImplementedError

    def close(self):
        raise NotImplementedError

    @property
    def local_address(self) -> str:
        return "?"


class UdpTransport(DatagramTransport):
    """UDP socket bound to a fixed port."""

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 5000,
        buffer_size: int = 4096,
        poll_interval_s: float = 0.5
    ):
        """
        Args:
            host: Listen address
            port: Listen port
            buffer_size: Maximum datagram size read per receive
            poll_interval_s: How long one receive blocks before returning None
        """
        self.host = host
        self.port = port
        self.buffer_size = buffer_size
        self.poll_interval_s = poll_interval_s
        self._sock: Optional[socket.socket] = None

    def bind(self):
        """
        Open and bind the socket.

        Raises:
            OSError: Port in use, bad address, permissions
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.settimeout(self.poll_interval_s)
        except OSError:
            sock.close()
            raise
        self._sock = sock
        logger.info(f"UDP transport bound to {self.local_address}")

    def receive(self) -> Optional[Datagram]:
        sock = self._sock
        if sock is None:
            raise OSError("transport is closed")
        try:
            data, (host, port) = sock.recvfrom(self.buffer_size)
        except socket.timeout:
            return None
        return Datagram(payload=data, host=host, port=port)

    def close(self):
        sock, self._sock = self._sock, None
        if sock is not None:
            sock.close()
            logger.info(f"UDP transport on {self.host}:{self.port} closed")

    @property
    def local_address(self) -> str:
        if self._sock is not None:
            host, port = self._sock.getsockname()[:2]
            return f"UDP {host}:{port}"
        return f"UDP {self.host}:{self.port}"
