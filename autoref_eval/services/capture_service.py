"""Record multicast referee and vision traffic into a capture log."""

from __future__ import annotations

import argparse
import logging
import signal
import socket
import struct
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Callable

from autoref_eval.core.config import settings
from autoref_eval.core.logging_config import LOG_LEVELS, configure_logging
from autoref_eval.eval.schemas import LogRecord
from autoref_eval.utils.log_file import LogWriter

logger = logging.getLogger(__name__)

# Lets recv() return periodically so listeners notice shutdown.
_RECV_TIMEOUT_SEC = 0.2


def now_us() -> int:
    return time.time_ns() // 1000


def log_file_name(now: datetime | None = None) -> str:
    """Name of the form YYYY-MM-DD-HH-MM-SS-mmm.log."""
    now = now or datetime.now()
    return f"{now.strftime('%Y-%m-%d-%H-%M-%S')}-{now.microsecond // 1000:03d}.log"


def parse_address_port(arg: str) -> tuple[str, int] | None:
    address, sep, port = arg.rpartition(":")
    if not sep or not address or not port:
        return None
    try:
        port_number = int(port)
    except ValueError:
        return None
    if not 0 < port_number < 65536:
        return None
    return address, port_number


def open_multicast_socket(address: str, port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    if hasattr(socket, "SO_REUSEPORT"):
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
    sock.bind(("", port))
    membership = struct.pack("4s4s", socket.inet_aton(address), socket.inet_aton("0.0.0.0"))
    sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, membership)
    sock.settimeout(_RECV_TIMEOUT_SEC)
    return sock


class MulticastListener:
    """Receives datagrams for one address:port and appends them to the log."""

    def __init__(
        self,
        address: str,
        port: int,
        writer: LogWriter,
        stop: threading.Event,
        *,
        verbose: bool = False,
        clock: Callable[[], int] = now_us,
        max_datagram_size: int | None = None,
    ) -> None:
        self.address = address
        self.port = port
        self.writer = writer
        self.stop = stop
        self.verbose = verbose
        self.clock = clock
        self.max_datagram_size = max_datagram_size or settings.max_datagram_size
        self.received = 0
        self._thread: threading.Thread | None = None

    def handle_datagram(self, data: bytes) -> None:
        if self.verbose:
            logger.info("Received %d bytes from %s:%d", len(data), self.address, self.port)
        self.writer.write(LogRecord(address=self.address, port=self.port, timestamp=self.clock(), data=data))
        self.received += 1

    def run(self, sock: socket.socket | None = None) -> None:
        if sock is None:
            try:
                sock = open_multicast_socket(self.address, self.port)
            except OSError as exc:
                logger.error("Unable to listen on %s:%d: %s", self.address, self.port, exc)
                return
        with sock:
            while not self.stop.is_set():
                try:
                    data = sock.recv(self.max_datagram_size)
                except socket.timeout:
                    continue
                if data:
                    self.handle_datagram(data)

    def start(self) -> threading.Thread:
        logger.info("Logging from %s:%d", self.address, self.port)
        self._thread = threading.Thread(
            target=self.run, name=f"capture-{self.address}:{self.port}", daemon=True
        )
        self._thread.start()
        return self._thread

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Log SSL vision, refbox and autoref multicast traffic")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every received datagram")
    parser.add_argument("endpoints", nargs="*", metavar="address:port", help="Additional referee sources")
    parser.add_argument("--outdir", default=".", help="Directory for the capture log")
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, default=None)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    configure_logging(args.log_level or settings.log_level)

    endpoints = [
        (settings.vision_multicast, settings.vision_port),
        (settings.referee_multicast, settings.refbox_port),
    ]
    if not args.endpoints:
        logger.info("No autorefs listed, logging only SSL-Vision and refbox")
    for arg in args.endpoints:
        parsed = parse_address_port(arg)
        if parsed is None:
            logger.warning("Ignoring malformed source %r, expected address:port", arg)
            continue
        endpoints.append(parsed)

    out_dir = Path(args.outdir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / log_file_name()
    logger.info("Logging to %s", path)

    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())

    with path.open("wb") as f:
        writer = LogWriter(f)
        listeners = [
            MulticastListener(address, port, writer, stop, verbose=args.verbose) for address, port in endpoints
        ]
        for listener in listeners:
            listener.start()
        while not stop.wait(0.5):
            pass
        logger.info("Closing")
        for listener in listeners:
            listener.join(timeout=2 * _RECV_TIMEOUT_SEC + 1.0)
        writer.flush()
    logger.info("Wrote %d records to %s", writer.count, path)


if __name__ == "__main__":
    main()
