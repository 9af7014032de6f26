"""Length-prefixed capture log files.

Each record is a 4-byte little-endian length followed by a serialized
envelope of that many bytes.
"""

from __future__ import annotations

import logging
import struct
import threading
from pathlib import Path
from typing import BinaryIO, Iterator

from autoref_eval.core.errors import CodecError, LogFormatError
from autoref_eval.eval.schemas import LogRecord
from autoref_eval.utils.codec import decode_envelope, encode_envelope

logger = logging.getLogger(__name__)

_LENGTH = struct.Struct("<I")


def iter_raw_records(stream: BinaryIO) -> Iterator[bytes]:
    offset = 0
    while True:
        header = stream.read(_LENGTH.size)
        if not header:
            return
        if len(header) < _LENGTH.size:
            raise LogFormatError(f"truncated record length at offset {offset}")
        (size,) = _LENGTH.unpack(header)
        body = stream.read(size)
        if len(body) < size:
            raise LogFormatError(
                f"record at offset {offset} declares {size} bytes but only {len(body)} remain"
            )
        offset += _LENGTH.size + size
        yield body


def iter_records(stream: BinaryIO) -> Iterator[LogRecord]:
    """Yield decoded envelopes, skipping any that fail to decode."""
    for index, body in enumerate(iter_raw_records(stream)):
        try:
            yield decode_envelope(body)
        except CodecError as exc:
            logger.warning("Skipping record %d: %s", index, exc)


def read_log(path: Path) -> list[LogRecord]:
    with Path(path).open("rb") as f:
        return list(iter_records(f))


def frame(payload: bytes) -> bytes:
    return _LENGTH.pack(len(payload)) + payload


class LogWriter:
    """Appends envelopes to a capture log; safe to share between threads."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._lock = threading.Lock()
        self.count = 0

    def write(self, record: LogRecord) -> None:
        data = frame(encode_envelope(record))
        with self._lock:
            self._stream.write(data)
            self.count += 1

    def flush(self) -> None:
        with self._lock:
            self._stream.flush()
