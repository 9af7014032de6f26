from pathlib import Path

import pytest

from autoref_eval.core.errors import CorrectionFileError
from autoref_eval.eval.corrections import (
    correction_path,
    format_line,
    load_evaluations,
    merge_corrections,
    save_evaluations,
)
from autoref_eval.eval.schemas import Classification, Evaluation, RefereeCommand, RefereeEvent


@pytest.fixture
def evaluations() -> list[Evaluation]:
    a = RefereeEvent(10, 13, 2, RefereeCommand.GOAL_YELLOW)
    h = RefereeEvent(10, 12, 1, RefereeCommand.GOAL_YELLOW)
    fp = RefereeEvent(0, 5_000_000, 4, RefereeCommand.DIRECT_FREE_BLUE)
    fn = RefereeEvent(9_000_000, 9_100_000, 7, RefereeCommand.GOAL_BLUE)
    return [
        Evaluation(Classification.TRUE_POSITIVE, a, h),
        Evaluation(Classification.FALSE_POSITIVE, automatic_event=fp),
        Evaluation(Classification.FALSE_NEGATIVE, human_event=fn),
    ]


def _edit_line(path: Path, index: int, column: int, value: str) -> None:
    lines = path.read_text(encoding="utf-8").splitlines()
    parts = lines[index].split()
    parts[column] = value
    lines[index] = " ".join(parts)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def test_correction_path_is_next_to_log(tmp_path):
    assert correction_path(tmp_path / "match.log", 2) == tmp_path / "match.log.2.eval"


def test_line_format(evaluations):
    assert format_line(0, evaluations[0]) == "  0 TP 0 10 13 2 14 10 12 1 14"
    assert format_line(1, evaluations[1]) == "  1 FP 0 0 5000000 4 9 0 0 0 0"


def test_round_trip(tmp_path, evaluations):
    path = tmp_path / "match.log.1.eval"
    save_evaluations(path, evaluations)

    assert load_evaluations(path, evaluations) == evaluations


def test_ignore_flag_edit_is_kept(tmp_path, evaluations):
    path = tmp_path / "match.log.1.eval"
    save_evaluations(path, evaluations)
    _edit_line(path, 1, 2, "1")

    loaded = load_evaluations(path, evaluations)

    assert [e.ignore for e in loaded] == [False, True, False]
    assert loaded[1].automatic_event == evaluations[1].automatic_event


@pytest.mark.parametrize(
    "index, column, value",
    [
        (0, 1, "FP"),  # classification
        (0, 3, "11"),  # automatic stop timestamp
        (2, 10, "14"),  # human command
        (1, 0, "7"),  # index column
        (1, 2, "2"),  # ignore flag outside 0/1
        (2, 4, "abc"),
        (0, 0, "+0"),  # signed index
        (0, 3, "+10"),
        (0, 4, "1_3"),
        (2, 8, "９１０００００"),  # non-ASCII digits
    ],
)
def test_any_other_edit_rejects_file(tmp_path, evaluations, index, column, value):
    path = tmp_path / "match.log.1.eval"
    save_evaluations(path, evaluations)
    _edit_line(path, index, column, value)

    with pytest.raises(CorrectionFileError):
        load_evaluations(path, evaluations)


def test_record_count_must_match(tmp_path, evaluations):
    path = tmp_path / "match.log.1.eval"
    save_evaluations(path, evaluations)

    with pytest.raises(CorrectionFileError):
        load_evaluations(path, evaluations[:2])
    with pytest.raises(CorrectionFileError):
        load_evaluations(path, evaluations + [evaluations[0]])


def test_merge_writes_baseline_when_missing(tmp_path, evaluations):
    path = tmp_path / "match.log.1.eval"

    merged, loaded = merge_corrections(path, evaluations)

    assert loaded is False
    assert merged == evaluations
    assert load_evaluations(path, evaluations) == evaluations


def test_merge_applies_ignore_flags(tmp_path, evaluations):
    path = tmp_path / "match.log.1.eval"
    save_evaluations(path, evaluations)
    _edit_line(path, 2, 2, "1")

    merged, loaded = merge_corrections(path, evaluations)

    assert loaded is True
    assert merged[2].ignore is True


def test_merge_replaces_stale_file(tmp_path, evaluations):
    path = tmp_path / "match.log.1.eval"
    save_evaluations(path, evaluations)
    _edit_line(path, 1, 2, "1")
    _edit_line(path, 0, 1, "FN")

    merged, loaded = merge_corrections(path, evaluations)

    assert loaded is False
    assert merged == evaluations
    assert all(not e.ignore for e in load_evaluations(path, evaluations))


def test_binary_garbage_is_rejected(tmp_path, evaluations):
    path = tmp_path / "match.log.1.eval"
    path.write_bytes(b"\xff\xfe\x00garbage")

    with pytest.raises(CorrectionFileError):
        load_evaluations(path, evaluations)
