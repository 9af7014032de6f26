from __future__ import annotations

import argparse
import logging

from pydantic import ValidationError

from autoref_eval.core.config import Settings, settings
from autoref_eval.core.errors import AutorefEvalError
from autoref_eval.core.logging_config import LOG_LEVELS, configure_logging
from autoref_eval.eval.metrics import format_metric
from autoref_eval.schemas.report import EvaluationReport, RefereeMetrics
from autoref_eval.services.evaluation_service import run_evaluation

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate automatic referees against the human refbox")
    parser.add_argument("log_file", help="Capture log to evaluate")
    parser.add_argument("--json", action="store_true", help="Print the full report as JSON")
    parser.add_argument("--by-command", action="store_true", help="Also print metrics per referee command")
    parser.add_argument(
        "--no-flush-trailing",
        action="store_true",
        help="Do not count human events after the last autoref event as false negatives",
    )
    parser.add_argument("--human-to-auto-delay-us", type=int, default=None)
    parser.add_argument("--auto-to-human-delay-us", type=int, default=None)
    parser.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, default=None)
    return parser.parse_args(argv)


def _metrics_lines(metrics: RefereeMetrics, indent: str = "") -> list[str]:
    return [
        f"{indent}True Positives: {metrics.tp}",
        f"{indent}False Positives: {metrics.fp}",
        f"{indent}False Negatives: {metrics.fn}",
        f"{indent}Ignored: {metrics.ignored}",
        f"{indent}Precision: {format_metric(metrics.precision)}",
        f"{indent}Recall: {format_metric(metrics.recall)}",
        f"{indent}F1 Score: {format_metric(metrics.f1)}",
    ]


def format_report(report: EvaluationReport, by_command: bool = False) -> str:
    lines = [f"Log file {report.log_file}"]
    for source in report.sources:
        role = "human" if source.is_reference else "autoref"
        lines.append(
            f"Referee {source.port} ({role}): {source.commands} commands, {source.events} events"
        )
    for result in report.autorefs:
        suffix = " (annotated)" if result.corrections_loaded else ""
        lines.append(f"Autoref {result.port}{suffix}:")
        lines.extend(_metrics_lines(result.metrics, indent="  "))
        if by_command:
            for name, metrics in result.by_command.items():
                lines.append(f"  {name}:")
                lines.extend(_metrics_lines(metrics, indent="    "))
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    configure_logging(args.log_level or settings.log_level)

    overrides = {}
    if args.human_to_auto_delay_us is not None:
        overrides["human_to_auto_delay_us"] = args.human_to_auto_delay_us
    if args.auto_to_human_delay_us is not None:
        overrides["auto_to_human_delay_us"] = args.auto_to_human_delay_us
    try:
        cfg = Settings(**overrides) if overrides else settings
    except ValidationError as exc:
        logger.error("Invalid tolerance: %s", exc)
        raise SystemExit(2) from exc

    try:
        report = run_evaluation(
            args.log_file,
            cfg,
            flush_trailing=False if args.no_flush_trailing else None,
        )
    except (AutorefEvalError, OSError) as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from exc

    if args.json:
        print(report.model_dump_json(indent=2))
    else:
        print(format_report(report, by_command=args.by_command))


if __name__ == "__main__":
    main()
