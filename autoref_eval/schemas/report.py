from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class RefereeMetrics(BaseModel):
    tp: int = 0
    fp: int = 0
    fn: int = 0
    ignored: int = 0
    # None when the denominator is zero.
    precision: float | None = None
    recall: float | None = None
    f1: float | None = None


class SourceSummary(BaseModel):
    index: int
    port: int
    commands: int
    events: int
    is_reference: bool = False


class AutorefResult(BaseModel):
    index: int
    port: int
    evaluations: int
    corrections_loaded: bool = False
    correction_file: str
    metrics: RefereeMetrics
    by_command: dict[str, RefereeMetrics] = Field(default_factory=dict)


class EvaluationReport(BaseModel):
    log_file: str
    created_at: datetime
    records: int = 0
    vision_records: int = 0
    rejected_records: int = 0
    duplicate_commands: int = 0
    config: dict[str, int | bool]
    sources: list[SourceSummary]
    autorefs: list[AutorefResult]
