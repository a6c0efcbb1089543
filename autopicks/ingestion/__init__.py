"""Curation pipeline orchestration."""

from autopicks.ingestion.pipeline import (
    CurationPipeline,
    PipelineResult,
    PipelineStats,
    StageError,
    run_daily_search,
)

__all__ = [
    "CurationPipeline",
    "PipelineResult",
    "PipelineStats",
    "StageError",
    "run_daily_search",
]
