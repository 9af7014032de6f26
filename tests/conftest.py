from __future__ import annotations

from pathlib import Path

import pytest

from autoref_eval.core.config import Settings
from autoref_eval.eval.schemas import LogRecord, RefereeCommand
from autoref_eval.utils.codec import encode_referee
from autoref_eval.utils.log_file import LogWriter

REFEREE = "224.5.23.1"
VISION = "224.5.23.2"
REFBOX_PORT = 10003
AUTOREF_PORT = 10010


def referee_record(port: int, counter: int, command: RefereeCommand, ts: int) -> LogRecord:
    return LogRecord(
        address=REFEREE,
        port=port,
        timestamp=ts,
        data=encode_referee(command, command_counter=counter, command_timestamp=ts),
    )


@pytest.fixture
def cfg() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def make_referee_record():
    return referee_record


@pytest.fixture
def write_log():
    def _write(path: Path, records: list[LogRecord]) -> Path:
        with path.open("wb") as f:
            writer = LogWriter(f)
            for record in records:
                writer.write(record)
        return path

    return _write


@pytest.fixture
def match_records() -> list[LogRecord]:
    """Human refbox and one autoref: two agreed goals, one autoref-only call, one missed call."""
    s = 1_000_000
    human = [
        (1, RefereeCommand.STOP, 10 * s),
        (2, RefereeCommand.GOAL_YELLOW, 10 * s + 500_000),
        (3, RefereeCommand.NORMAL_START, 20 * s),
        (4, RefereeCommand.STOP, 40 * s),
        (5, RefereeCommand.DIRECT_FREE_BLUE, 41 * s),
        (6, RefereeCommand.STOP, 60 * s),
        (7, RefereeCommand.GOAL_BLUE, 61 * s),
    ]
    auto = [
        (1, RefereeCommand.STOP, 10 * s + 100_000),
        (2, RefereeCommand.GOAL_YELLOW, 10 * s + 200_000),
        (3, RefereeCommand.STOP, 30 * s),
        (4, RefereeCommand.INDIRECT_FREE_YELLOW, 30 * s + 100_000),
        (5, RefereeCommand.STOP, 60 * s + 200_000),
        (6, RefereeCommand.GOAL_BLUE, 60 * s + 300_000),
    ]
    records = [referee_record(REFBOX_PORT, c, cmd, ts) for c, cmd, ts in human]
    records += [referee_record(AUTOREF_PORT, c, cmd, ts) for c, cmd, ts in auto]
    return sorted(records, key=lambda r: r.timestamp)
