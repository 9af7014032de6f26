from __future__ import annotations

from autoref_eval.eval.schemas import (
    TERMINAL_COMMANDS,
    CommandStream,
    CommandStreams,
    RefereeCommand,
    RefereeEvent,
)


def extract_events(stream: CommandStream) -> list[RefereeEvent]:
    """Pair each terminal command with the STOP that preceded it, if any."""
    events: list[RefereeEvent] = []
    last_stop = 0
    for command in stream.commands:
        if command.code == RefereeCommand.STOP:
            last_stop = command.command_timestamp
        elif command.code in TERMINAL_COMMANDS:
            events.append(
                RefereeEvent(
                    stop_timestamp=last_stop,
                    command_timestamp=command.command_timestamp,
                    sequence_counter=command.sequence_counter,
                    code=command.code,
                )
            )
            last_stop = 0
    return events


def extract_all(streams: CommandStreams) -> list[list[RefereeEvent]]:
    return [extract_events(stream) for stream in streams.streams]
