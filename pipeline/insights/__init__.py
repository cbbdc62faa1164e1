"""Behavioral insights: event co-occurrence and popularity ranking."""

from pipeline.insights.engine import (
    DEFAULT_WINDOW,
    CorrelationConfig,
    CorrelationEngine,
    build_snapshot,
    count_co_occurrence,
    derive_category,
)

__all__ = [
    "DEFAULT_WINDOW",
    "CorrelationConfig",
    "CorrelationEngine",
    "build_snapshot",
    "count_co_occurrence",
    "derive_category",
]
