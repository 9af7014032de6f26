from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from autoref_eval.core.config import Settings, settings as default_settings
from autoref_eval.core.errors import CodecError
from autoref_eval.eval.schemas import CommandStream, CommandStreams, LogRecord, command_name
from autoref_eval.utils.codec import decode_referee, validate_vision
from autoref_eval.utils.log_file import read_log

logger = logging.getLogger(__name__)


def _source_index(streams: CommandStreams, by_port: dict[int, int], port: int) -> int:
    idx = by_port.get(port)
    if idx is None:
        idx = len(streams.streams)
        by_port[port] = idx
        streams.streams.append(CommandStream(port=port))
        logger.info("New referee source on port %d (index %d)", port, idx)
    return idx


def load_command_streams(records: Iterable[LogRecord], cfg: Settings | None = None) -> CommandStreams:
    """Build per-source command lists from capture records.

    Referee multicast traffic on any port and refbox-port traffic from any
    address are decoded. Source 0 is the human refbox port even if it never
    appears in the log; other referee ports are numbered in order of first
    appearance.
    """
    cfg = cfg or default_settings
    streams = CommandStreams(streams=[CommandStream(port=cfg.refbox_port)])
    by_port: dict[int, int] = {cfg.refbox_port: 0}

    for record in records:
        streams.records += 1
        if record.address == cfg.vision_multicast and record.port == cfg.vision_port:
            try:
                validate_vision(record.data)
            except CodecError as exc:
                streams.rejected += 1
                logger.warning("Rejected vision packet at %d: %s", record.timestamp, exc)
            else:
                streams.vision_records += 1
            continue

        if record.address != cfg.referee_multicast and record.port != cfg.refbox_port:
            continue

        idx = _source_index(streams, by_port, record.port)
        try:
            command = decode_referee(record.data, source_id=idx)
        except CodecError as exc:
            streams.rejected += 1
            logger.warning("Rejected referee packet from port %d: %s", record.port, exc)
            continue

        stream = streams.streams[idx]
        last = stream.last_counter
        if last is not None and command.sequence_counter <= last:
            # Repeated multicast delivery of an already retained command.
            streams.dropped += 1
            continue

        logger.debug(
            "Referee %d: %4d %s",
            record.port,
            command.sequence_counter,
            command_name(command.code),
        )
        stream.commands.append(command)

    for stream in streams.streams:
        logger.info("Referee %d: %d commands", stream.port, len(stream.commands))
    return streams


def load_command_streams_from_file(path: Path, cfg: Settings | None = None) -> CommandStreams:
    return load_command_streams(read_log(Path(path)), cfg)
