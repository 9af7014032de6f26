from autoref_eval.eval.events import extract_all, extract_events
from autoref_eval.eval.io import load_command_streams, load_command_streams_from_file
from autoref_eval.eval.schemas import Command, CommandStream, LogRecord, RefereeCommand
from autoref_eval.utils.codec import encode_referee

from conftest import AUTOREF_PORT, REFBOX_PORT, REFEREE, VISION, referee_record


def test_refbox_is_source_zero_even_if_seen_last(cfg):
    records = [
        referee_record(10020, 1, RefereeCommand.STOP, 100),
        referee_record(AUTOREF_PORT, 1, RefereeCommand.STOP, 150),
        referee_record(REFBOX_PORT, 1, RefereeCommand.STOP, 200),
    ]

    streams = load_command_streams(records, cfg)

    assert streams.ports == [REFBOX_PORT, 10020, AUTOREF_PORT]
    assert [len(s.commands) for s in streams.streams] == [1, 1, 1]
    assert streams.streams[1].commands[0].source_id == 1


def test_refbox_slot_exists_without_refbox_traffic(cfg):
    streams = load_command_streams([referee_record(AUTOREF_PORT, 1, RefereeCommand.STOP, 1)], cfg)

    assert streams.ports == [REFBOX_PORT, AUTOREF_PORT]
    assert streams.streams[0].commands == []


def test_repeated_or_stale_counters_are_dropped(cfg):
    records = [
        referee_record(REFBOX_PORT, 5, RefereeCommand.STOP, 100),
        referee_record(REFBOX_PORT, 5, RefereeCommand.STOP, 100),
        referee_record(REFBOX_PORT, 3, RefereeCommand.GOAL_BLUE, 150),
        referee_record(REFBOX_PORT, 6, RefereeCommand.GOAL_BLUE, 200),
    ]

    streams = load_command_streams(records, cfg)

    assert [c.sequence_counter for c in streams.streams[0].commands] == [5, 6]
    assert streams.dropped == 2


def test_vision_and_foreign_traffic_is_not_ingested(cfg):
    records = [
        LogRecord(VISION, 10006, 10, b""),
        LogRecord(VISION, 10006, 11, b"\x0a\xff"),
        LogRecord("10.0.0.7", 10020, 12, b"\x0a\xff"),
        LogRecord(REFEREE, AUTOREF_PORT, 13, b"not a referee message"),
        referee_record(REFBOX_PORT, 1, RefereeCommand.HALT, 14),
    ]

    streams = load_command_streams(records, cfg)

    assert streams.records == 5
    assert streams.vision_records == 1
    assert streams.rejected == 2
    assert [len(s.commands) for s in streams.streams] == [1, 0]


def test_loads_from_capture_file(tmp_path, cfg, write_log, match_records):
    path = write_log(tmp_path / "match.log", match_records)

    streams = load_command_streams_from_file(path, cfg)

    assert streams.ports == [REFBOX_PORT, AUTOREF_PORT]
    assert [len(s.commands) for s in streams.streams] == [7, 6]
    assert [len(e) for e in extract_all(streams)] == [3, 3]


def _stream(*commands: tuple[int, int]) -> CommandStream:
    return CommandStream(
        port=REFBOX_PORT,
        commands=[Command(0, i + 1, ts, code) for i, (code, ts) in enumerate(commands)],
    )


def test_event_pairs_terminal_command_with_last_stop():
    events = extract_events(
        _stream(
            (RefereeCommand.STOP, 100),
            (RefereeCommand.STOP, 150),
            (RefereeCommand.FORCE_START, 170),
            (RefereeCommand.GOAL_YELLOW, 200),
        )
    )

    assert len(events) == 1
    assert (events[0].stop_timestamp, events[0].command_timestamp) == (150, 200)
    assert events[0].sequence_counter == 4
    assert events[0].code == RefereeCommand.GOAL_YELLOW


def test_event_without_stop_has_zero_stop_timestamp():
    events = extract_events(
        _stream(
            (RefereeCommand.STOP, 100),
            (RefereeCommand.DIRECT_FREE_BLUE, 120),
            (RefereeCommand.INDIRECT_FREE_YELLOW, 300),
        )
    )

    assert [(e.stop_timestamp, e.command_timestamp) for e in events] == [(100, 120), (0, 300)]


def test_unrecognised_commands_are_ignored():
    events = extract_events(
        _stream(
            (RefereeCommand.STOP, 100),
            (99, 110),
            (RefereeCommand.BALL_PLACEMENT_BLUE, 120),
            (RefereeCommand.GOAL_BLUE, 130),
        )
    )

    assert [(e.stop_timestamp, e.code) for e in events] == [(100, RefereeCommand.GOAL_BLUE)]


def test_refbox_port_is_read_from_any_address(cfg):
    records = [
        LogRecord("10.0.0.5", REFBOX_PORT, 5, encode_referee(RefereeCommand.GOAL_BLUE, 1, 5)),
        LogRecord("10.0.0.5", AUTOREF_PORT, 6, encode_referee(RefereeCommand.GOAL_BLUE, 1, 6)),
    ]

    streams = load_command_streams(records, cfg)

    assert streams.ports == [REFBOX_PORT]
    assert [c.code for c in streams.streams[0].commands] == [RefereeCommand.GOAL_BLUE]
