"""
db_metrics.py

Query timing for the Postgres stores.

- slow queries are logged as ``slow_query`` with the query label and duration
- an optional histogram emitter can forward every observation to a metrics
  backend; nothing is emitted when none is registered
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager

from infra.config import get_settings
from infra.logging_config import StructuredLogger

_LOGGER = StructuredLogger(__name__)
_HISTOGRAM_NAME = "db_query_duration_ms"
_METRIC_EMITTER: Callable[[str, float, Sequence[str]], None] | None = None


def query_metrics_enabled() -> bool:
    return bool(get_settings().db_metrics.metrics_enabled)


def slow_query_threshold_ms() -> float:
    return float(get_settings().db_metrics.slow_query_threshold_ms)


def register_histogram_emitter(emitter: Callable[[str, float, Sequence[str]], None] | None) -> None:
    """Register (or clear with ``None``) a histogram callback.

    The callback receives the metric name, the observed milliseconds and tags
    such as ``["query:fetch_all_dict_conn:select"]``.
    """
    global _METRIC_EMITTER
    _METRIC_EMITTER = emitter


def _emit_histogram(name: str, value: float, tags: Sequence[str]) -> None:
    if _METRIC_EMITTER is None:
        return
    try:
        _METRIC_EMITTER(name, value, tags)
    except (TypeError, ValueError, RuntimeError) as exc:
        _LOGGER.debug("db_metric_emitter_failed", detail=str(exc))


@contextmanager
def measure_query(name: str) -> Iterator[None]:
    """Time the enclosed statement; warn past the slow-query threshold."""
    if not query_metrics_enabled():
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = round((time.perf_counter() - start) * 1000.0, 2)
        if duration_ms >= slow_query_threshold_ms():
            _LOGGER.warning("slow_query", query_name=str(name), duration_ms=duration_ms)
        _emit_histogram(_HISTOGRAM_NAME, duration_ms, [f"query:{name}"])
