"""Human-editable correction files for evaluations.

One line per evaluation::

    idx code ignore a.stop a.ts a.counter a.code h.stop h.ts h.counter h.code

A missing event is written as four zeros. Only the ignore column is meant to
be edited; if anything else differs from the fresh evaluations the whole file
is rejected and replaced.
"""

from __future__ import annotations

import logging
from pathlib import Path

from autoref_eval.core.config import settings
from autoref_eval.core.errors import CorrectionFileError
from autoref_eval.eval.schemas import Classification, Evaluation, RefereeEvent

logger = logging.getLogger(__name__)

_EMPTY_EVENT = (0, 0, 0, 0)
_FIELDS_PER_LINE = 11


def correction_path(log_path: Path, source_index: int, suffix: str | None = None) -> Path:
    log_path = Path(log_path)
    return log_path.with_name(f"{log_path.name}.{source_index}.{suffix or settings.correction_suffix}")


def _event_fields(event: RefereeEvent | None) -> tuple[int, int, int, int]:
    if event is None:
        return _EMPTY_EVENT
    return (event.stop_timestamp, event.command_timestamp, event.sequence_counter, int(event.code))


def _event_from_fields(fields: tuple[int, ...]) -> RefereeEvent | None:
    if fields == _EMPTY_EVENT:
        return None
    return RefereeEvent(
        stop_timestamp=fields[0],
        command_timestamp=fields[1],
        sequence_counter=fields[2],
        code=fields[3],
    )


def format_line(index: int, evaluation: Evaluation) -> str:
    values = (*_event_fields(evaluation.automatic_event), *_event_fields(evaluation.human_event))
    return f"{index:3d} {evaluation.classification.value:>2} {int(evaluation.ignore)} " + " ".join(
        str(v) for v in values
    )


def parse_line(line: str, expected_index: int) -> Evaluation:
    parts = line.split()
    if len(parts) != _FIELDS_PER_LINE:
        raise CorrectionFileError(f"line {expected_index}: expected {_FIELDS_PER_LINE} fields, got {len(parts)}")
    bad = [p for p in (parts[0], *parts[3:]) if not (p.isascii() and p.isdigit())]
    if bad:
        raise CorrectionFileError(f"line {expected_index}: not an unsigned integer: {bad[0]!r}")
    try:
        classification = Classification(parts[1])
    except ValueError as exc:
        raise CorrectionFileError(f"line {expected_index}: {exc}") from exc
    index = int(parts[0])
    numbers = tuple(int(p) for p in parts[3:])
    if index != expected_index:
        raise CorrectionFileError(f"line {expected_index}: index column reads {index}")
    if parts[2] not in {"0", "1"}:
        raise CorrectionFileError(f"line {expected_index}: ignore flag must be 0 or 1, got {parts[2]!r}")
    return Evaluation(
        classification=classification,
        automatic_event=_event_from_fields(numbers[:4]),
        human_event=_event_from_fields(numbers[4:]),
        ignore=parts[2] == "1",
    )


def _same_outcome(a: Evaluation, b: Evaluation) -> bool:
    return (
        a.classification == b.classification
        and _event_fields(a.automatic_event) == _event_fields(b.automatic_event)
        and _event_fields(a.human_event) == _event_fields(b.human_event)
    )


def save_evaluations(path: Path, evaluations: list[Evaluation]) -> None:
    lines = [format_line(i, ev) for i, ev in enumerate(evaluations)]
    Path(path).write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")


def load_evaluations(path: Path, fresh: list[Evaluation]) -> list[Evaluation]:
    """Read a correction file that must agree with ``fresh`` on every field but ``ignore``."""
    try:
        lines = Path(path).read_text(encoding="utf-8").splitlines()
    except UnicodeDecodeError as exc:
        raise CorrectionFileError(f"{path}: not a text file") from exc
    while lines and not lines[-1].strip():
        lines.pop()
    if len(lines) != len(fresh):
        raise CorrectionFileError(f"{path}: {len(lines)} records, expected {len(fresh)}")

    merged: list[Evaluation] = []
    for i, (line, baseline) in enumerate(zip(lines, fresh)):
        loaded = parse_line(line, i)
        if not _same_outcome(loaded, baseline):
            raise CorrectionFileError(f"{path}: record {i} no longer matches the log")
        merged.append(loaded)
    return merged


def merge_corrections(path: Path, fresh: list[Evaluation]) -> tuple[list[Evaluation], bool]:
    """Apply a previous correction file, or write the fresh baseline.

    Returns the evaluations to score and whether corrections were applied.
    """
    path = Path(path)
    if path.exists():
        try:
            merged = load_evaluations(path, fresh)
        except CorrectionFileError as exc:
            logger.warning("Discarding correction file %s: %s", path, exc)
        else:
            logger.info("Loaded annotated evaluations from %s", path)
            return merged, True
    save_evaluations(path, fresh)
    logger.info("Wrote baseline evaluations to %s", path)
    return fresh, False
