"""Build the two pipelines over the Postgres stores from settings.

Shared by the Flask API and the worker entrypoints so both trigger paths run
identical configuration.
"""

from __future__ import annotations

from datetime import timedelta

from apps.backend.stores import PostgresCatalogReader, PostgresEventStore, PostgresSnapshotStore
from infra.config import Settings, get_settings
from pipeline.discovery import AdapterRegistry, DiscoveryConfig, DiscoveryPipeline
from pipeline.insights import CorrelationConfig, CorrelationEngine


def correlation_config(settings: Settings) -> CorrelationConfig:
    return CorrelationConfig(
        window=timedelta(days=settings.insights.window_days),
        fetch_timeout_seconds=settings.insights.fetch_timeout_seconds,
    )


def discovery_config(settings: Settings) -> DiscoveryConfig:
    return DiscoveryConfig(
        max_candidates_per_run=settings.discovery.max_candidates_per_run,
        adapter_timeout_seconds=settings.discovery.adapter_timeout_seconds,
    )


def build_correlation_engine(settings: Settings | None = None) -> CorrelationEngine:
    settings = settings or get_settings()
    return CorrelationEngine(
        events=PostgresEventStore(),
        catalog=PostgresCatalogReader(),
        store=PostgresSnapshotStore(),
        config=correlation_config(settings),
    )


def build_discovery_pipeline(
    settings: Settings | None = None,
    *,
    registry: AdapterRegistry | None = None,
) -> DiscoveryPipeline:
    settings = settings or get_settings()
    registry = registry or AdapterRegistry()
    registry.discover()
    return DiscoveryPipeline(
        adapters=registry.create_enabled(settings.discovery),
        catalog=PostgresCatalogReader(),
        store=PostgresSnapshotStore(),
        config=discovery_config(settings),
    )
