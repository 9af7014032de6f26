from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from autoref_eval.core.config import Settings, settings as default_settings
from autoref_eval.core.errors import NoReferenceEventsError
from autoref_eval.eval.corrections import correction_path, merge_corrections
from autoref_eval.eval.events import extract_all
from autoref_eval.eval.io import load_command_streams_from_file
from autoref_eval.eval.matching import align_events
from autoref_eval.eval.metrics import metrics_from_evaluations, sliced_metrics
from autoref_eval.schemas.report import AutorefResult, EvaluationReport, SourceSummary

logger = logging.getLogger(__name__)


def run_evaluation(
    log_path: str | Path,
    cfg: Settings | None = None,
    flush_trailing: bool | None = None,
) -> EvaluationReport:
    """Grade every automatic referee in a capture log against the human refbox.

    Correction files are read from and written next to the log.
    """
    cfg = cfg or default_settings
    log_path = Path(log_path)
    if flush_trailing is None:
        flush_trailing = cfg.flush_trailing_human_events

    logger.info("Evaluating log file %s", log_path)
    streams = load_command_streams_from_file(log_path, cfg)
    events = extract_all(streams)

    sources: list[SourceSummary] = []
    for idx, (stream, stream_events) in enumerate(zip(streams.streams, events)):
        logger.info("Referee %d: %d events", stream.port, len(stream_events))
        sources.append(
            SourceSummary(
                index=idx,
                port=stream.port,
                commands=len(stream.commands),
                events=len(stream_events),
                is_reference=idx == 0,
            )
        )

    human = events[0]
    if not human:
        raise NoReferenceEventsError(f"no human referee events found in {log_path}")

    autorefs: list[AutorefResult] = []
    for idx in range(1, len(events)):
        fresh = align_events(
            human,
            events[idx],
            human_to_auto_delay=cfg.human_to_auto_delay_us,
            auto_to_human_delay=cfg.auto_to_human_delay_us,
            flush_trailing=flush_trailing,
        )
        eval_path = correction_path(log_path, idx, cfg.correction_suffix)
        evaluations, loaded = merge_corrections(eval_path, fresh)
        autorefs.append(
            AutorefResult(
                index=idx,
                port=streams.streams[idx].port,
                evaluations=len(evaluations),
                corrections_loaded=loaded,
                correction_file=str(eval_path),
                metrics=metrics_from_evaluations(evaluations),
                by_command=sliced_metrics(evaluations),
            )
        )

    return EvaluationReport(
        log_file=str(log_path),
        created_at=datetime.now(),
        records=streams.records,
        vision_records=streams.vision_records,
        rejected_records=streams.rejected,
        duplicate_commands=streams.dropped,
        config={
            "human_to_auto_delay_us": cfg.human_to_auto_delay_us,
            "auto_to_human_delay_us": cfg.auto_to_human_delay_us,
            "flush_trailing_human_events": flush_trailing,
        },
        sources=sources,
        autorefs=autorefs,
    )
