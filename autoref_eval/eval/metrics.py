from __future__ import annotations

from collections import defaultdict

from autoref_eval.eval.schemas import Classification, Evaluation, command_name
from autoref_eval.schemas.report import RefereeMetrics


def _safe_div(a: float, b: float) -> float | None:
    return None if b == 0 else a / b


def _round(value: float | None) -> float | None:
    return None if value is None else round(value, 4)


def count_outcomes(evaluations: list[Evaluation]) -> dict[str, int]:
    counts = {"tp": 0, "fp": 0, "fn": 0, "ignored": 0}
    for i, ev in enumerate(evaluations):
        if ev.ignore:
            counts["ignored"] += 1
            continue
        if ev.classification == Classification.TRUE_POSITIVE:
            counts["tp"] += 1
        elif ev.classification == Classification.FALSE_POSITIVE:
            counts["fp"] += 1
        elif ev.classification == Classification.FALSE_NEGATIVE:
            counts["fn"] += 1
        else:
            raise ValueError(f"evaluation {i} is unclassified")
    return counts


def metrics_from_evaluations(evaluations: list[Evaluation]) -> RefereeMetrics:
    counts = count_outcomes(evaluations)
    tp, fp, fn = counts["tp"], counts["fp"], counts["fn"]

    precision = _safe_div(tp, tp + fp)
    recall = _safe_div(tp, tp + fn)
    f1 = None
    if precision is not None and recall is not None:
        f1 = _safe_div(2 * precision * recall, precision + recall)

    return RefereeMetrics(
        tp=tp,
        fp=fp,
        fn=fn,
        ignored=counts["ignored"],
        precision=_round(precision),
        recall=_round(recall),
        f1=_round(f1),
    )


def _command_key(ev: Evaluation) -> str:
    event = ev.automatic_event if ev.automatic_event is not None else ev.human_event
    return command_name(event.code) if event is not None else "NONE"


def sliced_metrics(evaluations: list[Evaluation]) -> dict[str, RefereeMetrics]:
    """Metrics per command, keyed by the automatic event's command (else the human one)."""
    grouped: dict[str, list[Evaluation]] = defaultdict(list)
    for ev in evaluations:
        grouped[_command_key(ev)].append(ev)
    return {k: metrics_from_evaluations(v) for k, v in sorted(grouped.items())}


def format_metric(value: float | None) -> str:
    return "undefined" if value is None else f"{value:.3f}"
