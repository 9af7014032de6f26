from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum


class RefereeCommand(IntEnum):
    HALT = 0
    STOP = 1
    NORMAL_START = 2
    FORCE_START = 3
    PREPARE_KICKOFF_YELLOW = 4
    PREPARE_KICKOFF_BLUE = 5
    PREPARE_PENALTY_YELLOW = 6
    PREPARE_PENALTY_BLUE = 7
    DIRECT_FREE_YELLOW = 8
    DIRECT_FREE_BLUE = 9
    INDIRECT_FREE_YELLOW = 10
    INDIRECT_FREE_BLUE = 11
    TIMEOUT_YELLOW = 12
    TIMEOUT_BLUE = 13
    GOAL_YELLOW = 14
    GOAL_BLUE = 15
    BALL_PLACEMENT_YELLOW = 16
    BALL_PLACEMENT_BLUE = 17


# Commands that close an event.
TERMINAL_COMMANDS = frozenset(
    {
        RefereeCommand.DIRECT_FREE_YELLOW,
        RefereeCommand.DIRECT_FREE_BLUE,
        RefereeCommand.INDIRECT_FREE_YELLOW,
        RefereeCommand.INDIRECT_FREE_BLUE,
        RefereeCommand.GOAL_YELLOW,
        RefereeCommand.GOAL_BLUE,
    }
)


def command_name(code: int) -> str:
    try:
        return RefereeCommand(code).name
    except ValueError:
        return f"UNKNOWN_{code}"


class Classification(str, Enum):
    TRUE_POSITIVE = "TP"
    FALSE_POSITIVE = "FP"
    FALSE_NEGATIVE = "FN"
    UNKNOWN = "UN"


@dataclass(frozen=True, slots=True)
class LogRecord:
    address: str
    port: int
    timestamp: int
    data: bytes


@dataclass(frozen=True, slots=True)
class Command:
    source_id: int
    sequence_counter: int
    command_timestamp: int
    code: int  # raw enumerator, may be outside RefereeCommand


@dataclass(frozen=True, slots=True)
class RefereeEvent:
    stop_timestamp: int  # 0 when no STOP preceded the command
    command_timestamp: int
    sequence_counter: int
    code: int


@dataclass(slots=True)
class Evaluation:
    classification: Classification
    automatic_event: RefereeEvent | None = None
    human_event: RefereeEvent | None = None
    ignore: bool = False


@dataclass(slots=True)
class CommandStream:
    port: int
    commands: list[Command] = field(default_factory=list)

    @property
    def last_counter(self) -> int | None:
        return self.commands[-1].sequence_counter if self.commands else None


@dataclass(slots=True)
class CommandStreams:
    """Per-source command lists; index 0 is always the human refbox."""

    streams: list[CommandStream] = field(default_factory=list)
    records: int = 0
    vision_records: int = 0
    rejected: int = 0
    dropped: int = 0

    @property
    def ports(self) -> list[int]:
        return [s.port for s in self.streams]
