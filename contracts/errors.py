"""Error taxonomy for the insights and discovery pipelines.

Only ``CatalogUnavailable`` and ``InsightsInputUnavailable`` ever reach an
API caller. ``ProviderFailure`` and ``PersistenceFailure`` are raised at item
boundaries, logged, and absorbed by the discovery pipeline.
"""

from __future__ import annotations


class InsightsPipelineError(RuntimeError):
    """Base class for pipeline errors."""


class ProviderFailure(InsightsPipelineError):
    """An acquisition adapter failed, timed out, or returned garbage."""

    def __init__(self, adapter: str, message: str) -> None:
        super().__init__(f"{adapter}: {message}")
        self.adapter = adapter


class CatalogUnavailable(InsightsPipelineError):
    """The catalog could not be read; a snapshot without it is meaningless."""


class InsightsInputUnavailable(InsightsPipelineError):
    """The event log or recent discoveries could not be read."""


class PersistenceFailure(InsightsPipelineError):
    """A single discovery record could not be written."""

    def __init__(self, slug: str, cause: BaseException) -> None:
        super().__init__(f"failed to persist discovery {slug!r}: {cause}")
        self.slug = slug
        self.cause = cause
