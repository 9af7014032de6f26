"""Replay a capture log onto the network with the recorded timing."""

from __future__ import annotations

import argparse
import logging
import socket
import time
from pathlib import Path
from typing import Callable, Iterable

from autoref_eval.core.config import settings
from autoref_eval.core.errors import AutorefEvalError
from autoref_eval.core.logging_config import LOG_LEVELS, configure_logging
from autoref_eval.eval.schemas import LogRecord
from autoref_eval.services.capture_service import now_us
from autoref_eval.utils.log_file import iter_records

logger = logging.getLogger(__name__)


def wait_us(record_ts: int, last_record_ts: int, now: int, last_publish: int) -> int:
    """Time to wait before publishing so spacing matches the recording."""
    delta_log = record_ts - last_record_ts if last_record_ts > 0 else 0
    delta_publish = now - last_publish if last_publish > 0 else 0
    return max(0, delta_log - delta_publish)


class Player:
    def __init__(
        self,
        sock: socket.socket,
        *,
        clock: Callable[[], int] = now_us,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.sock = sock
        self.clock = clock
        self.sleep = sleep
        self.sent = 0
        self.failed = 0

    def publish(self, record: LogRecord) -> None:
        try:
            self.sock.sendto(record.data, (record.address, record.port))
        except OSError as exc:
            self.failed += 1
            logger.error(
                "Sending UDP datagram to %s:%d failed (maybe too large?). Size was: %d byte(s): %s",
                record.address,
                record.port,
                len(record.data),
                exc,
            )
            return
        self.sent += 1

    def play(self, records: Iterable[LogRecord]) -> None:
        last_publish = 0
        last_record_ts = 0
        for record in records:
            logger.debug("Publishing %d bytes to %s:%d", len(record.data), record.address, record.port)
            delay = wait_us(record.timestamp, last_record_ts, self.clock(), last_publish)
            if delay:
                self.sleep(delay / 1e6)
            self.publish(record)
            last_publish = self.clock()
            last_record_ts = record.timestamp


def play_log_file(path: Path, sock: socket.socket | None = None) -> Player:
    owned = sock is None
    sock = sock or socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    player = Player(sock)
    try:
        with Path(path).open("rb") as f:
            player.play(iter_records(f))
    finally:
        if owned:
            sock.close()
    return player


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay a capture log onto the network")
    parser.add_argument("log_file")
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, default=None)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    configure_logging(args.log_level or settings.log_level)
    logger.info("Playing log file %s", args.log_file)
    try:
        player = play_log_file(Path(args.log_file))
    except (AutorefEvalError, OSError) as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from exc
    logger.info("Published %d records (%d failed)", player.sent, player.failed)


if __name__ == "__main__":
    main()
