"""Contracts shared by the pipelines, stores and API.

- ``models``: frozen dataclass records and their wire shapes
- ``interfaces``: Protocols for the event store, catalog, snapshot store and
  acquisition adapters
- ``errors``: the pipeline error taxonomy
- ``normalization``: slug, payload-alias and summary helpers
"""

from contracts.errors import (
    CatalogUnavailable,
    InsightsInputUnavailable,
    InsightsPipelineError,
    PersistenceFailure,
    ProviderFailure,
)
from contracts.interfaces import AcquisitionAdapter, CatalogReader, EventStore, SnapshotStore
from contracts.models import (
    EVENT_JOIN,
    EVENT_READ_CONTENT,
    Correlation,
    CorrelationSnapshot,
    DiscoveryCandidate,
    DiscoveryRecord,
    DiscoveryRunResult,
    EmergingProject,
    Entity,
    InteractionEvent,
    Recommendation,
)

__all__ = [
    "EVENT_JOIN",
    "EVENT_READ_CONTENT",
    "AcquisitionAdapter",
    "CatalogReader",
    "CatalogUnavailable",
    "Correlation",
    "CorrelationSnapshot",
    "DiscoveryCandidate",
    "DiscoveryRecord",
    "DiscoveryRunResult",
    "EmergingProject",
    "Entity",
    "EventStore",
    "InsightsInputUnavailable",
    "InsightsPipelineError",
    "InteractionEvent",
    "PersistenceFailure",
    "ProviderFailure",
    "Recommendation",
    "SnapshotStore",
]
