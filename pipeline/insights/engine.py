"""
pipeline/insights/engine.py

Correlation engine: interaction events -> ranked, explainable insight snapshot.

One pass
--------
1) Fetch concurrently: recent ``join`` / ``read_content`` events, the full
   catalog, and the most recent discovery records.
2) Resolve each event to a catalog slug (payload aliases); unknown or missing
   slugs are dropped silently.
3) Tally joins per slug and per derived category.
4) Group resolved slugs per session and count directed co-visits: a session
   that visited {X, Y} adds 1 to both X->Y and Y->X.
5) Rank and assemble the snapshot, append it to the snapshot store.

Nothing is persisted when an input fetch fails. A snapshot built from zero
events is still valid (null top category, empty collections).
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from contracts.errors import CatalogUnavailable, InsightsInputUnavailable
from contracts.interfaces import CatalogReader, EventStore, SnapshotStore
from contracts.models import (
    EVENT_JOIN,
    EVENT_READ_CONTENT,
    Correlation,
    CorrelationSnapshot,
    DiscoveryRecord,
    EmergingProject,
    Entity,
    InteractionEvent,
    Recommendation,
)
from contracts.normalization import decode_entity_slug, decode_session_id, ensure_utc
from infra.logging_config import StructuredLogger
from pipeline.concurrency import fan_out
from version import ENGINE_VERSION

_LOGGER = StructuredLogger(__name__)

DEFAULT_WINDOW = timedelta(days=14)

POPULAR_REASON = "Popular with {count} recent joins"
DISCOVERY_REASON = "Newly surfaced by AI discovery"

# Tag fallback for category derivation. The matched keyword picks the label.
_TAG_CATEGORY_PATTERN = re.compile(r"zk|rollup|modular|points", re.IGNORECASE)
_TAG_CATEGORY_LABELS = {"zk": "ZK", "rollup": "Rollup", "modular": "Modular", "points": "Points"}


@dataclass(frozen=True)
class CorrelationConfig:
    """Ranking limits and fetch bounds for one correlation pass."""

    window: timedelta = DEFAULT_WINDOW
    event_kinds: tuple[str, ...] = (EVENT_JOIN, EVENT_READ_CONTENT)
    join_kind: str = EVENT_JOIN
    discovery_lookback: int = 8
    related_limit: int = 3
    for_you_limit: int = 5
    for_you_fallback_limit: int = 3
    emerging_limit: int = 5
    fetch_timeout_seconds: float = 10.0


@dataclass
class _Tallies:
    join_counts: dict[str, int] = field(default_factory=dict)
    category_counts: dict[str, int] = field(default_factory=dict)
    sessions: dict[str, dict[str, None]] = field(default_factory=dict)
    skipped_events: int = 0


def derive_category(entity: Entity) -> str | None:
    """Category of an entity, by priority: first category, tag keyword, network hint."""
    if entity.categories:
        return str(entity.categories[0])
    for tag in entity.tags:
        match = _TAG_CATEGORY_PATTERN.search(str(tag))
        if match:
            return _TAG_CATEGORY_LABELS[match.group(0).lower()]
    network = (entity.network or "").lower()
    if "zk" in network:
        return "ZK"
    if "rollup" in network or "l2" in network:
        return "Rollup"
    return None


def count_co_occurrence(sessions: Iterable[Iterable[str]]) -> dict[str, dict[str, int]]:
    """Directed pair counts over each session's distinct slugs.

    Key order follows first appearance, which is what ties are broken on.
    """
    pairs: dict[str, dict[str, int]] = {}
    for visited in sessions:
        slugs = list(dict.fromkeys(visited))
        for source in slugs:
            for target in slugs:
                if source == target:
                    continue
                targets = pairs.setdefault(source, {})
                targets[target] = targets.get(target, 0) + 1
    return pairs


def _rank(counts: Mapping[str, int]) -> list[tuple[str, int]]:
    # sorted() is stable, so equal counts keep insertion order.
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)


def _tally(
    events: Iterable[InteractionEvent],
    entities: Mapping[str, Entity],
    config: CorrelationConfig,
) -> _Tallies:
    tallies = _Tallies()
    kinds = set(config.event_kinds)
    for event in events:
        if event.event_name not in kinds:
            continue
        slug = decode_entity_slug(event.payload)
        if slug is None or slug not in entities:
            tallies.skipped_events += 1
            continue

        if event.event_name == config.join_kind:
            tallies.join_counts[slug] = tallies.join_counts.get(slug, 0) + 1
            category = derive_category(entities[slug])
            if category:
                tallies.category_counts[category] = tallies.category_counts.get(category, 0) + 1

        session_id = decode_session_id(event.payload)
        if session_id is not None:
            tallies.sessions.setdefault(session_id, {})[slug] = None
    return tallies


def build_snapshot(
    events: Iterable[InteractionEvent],
    entities: Sequence[Entity],
    discoveries: Sequence[DiscoveryRecord],
    *,
    config: CorrelationConfig,
    created_at: datetime,
) -> CorrelationSnapshot:
    """Pure assembly step of a correlation pass (no I/O)."""
    snapshot, _ = _assemble(events, entities, discoveries, config=config, created_at=created_at)
    return snapshot


def _assemble(
    events: Iterable[InteractionEvent],
    entities: Sequence[Entity],
    discoveries: Sequence[DiscoveryRecord],
    *,
    config: CorrelationConfig,
    created_at: datetime,
) -> tuple[CorrelationSnapshot, _Tallies]:
    by_slug = {entity.slug: entity for entity in entities}

    def _display(slug: str) -> str:
        entity = by_slug.get(slug)
        return entity.display_name if entity else slug

    tallies = _tally(events, by_slug, config)

    ranked_categories = _rank(tallies.category_counts)
    top_category = ranked_categories[0][0] if ranked_categories else None

    pairs = count_co_occurrence(tallies.sessions.values())
    user_correlation = tuple(
        Correlation(
            source=_display(source),
            related=tuple(_display(slug) for slug, _ in _rank(targets)[: config.related_limit]),
        )
        for source, targets in pairs.items()
        if targets
    )

    for_you = tuple(
        Recommendation(slug=slug, name=_display(slug), reason=POPULAR_REASON.format(count=count))
        for slug, count in _rank(tallies.join_counts)[: config.for_you_limit]
    )
    if not for_you:
        for_you = tuple(
            Recommendation(slug=record.slug, name=record.name, reason=DISCOVERY_REASON)
            for record in discoveries[: config.for_you_fallback_limit]
        )

    emerging = tuple(EmergingProject.from_record(r) for r in discoveries[: config.emerging_limit])

    snapshot = CorrelationSnapshot(
        top_category=top_category,
        emerging_projects=emerging,
        user_correlation=user_correlation,
        for_you=for_you,
        created_at=created_at,
    )
    return snapshot, tallies


class CorrelationEngine:
    """Computes and persists insight snapshots."""

    def __init__(
        self,
        *,
        events: EventStore,
        catalog: CatalogReader,
        store: SnapshotStore,
        config: CorrelationConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._events = events
        self._catalog = catalog
        self._store = store
        self._config = config or CorrelationConfig()
        self._clock = clock or (lambda: datetime.now(UTC))

    @property
    def config(self) -> CorrelationConfig:
        return self._config

    def compute_insights(self, window: timedelta | None = None) -> CorrelationSnapshot:
        """Compute a fresh snapshot over ``window`` and append it to the store."""
        cfg = self._config
        window = cfg.window if window is None else window
        now = ensure_utc(self._clock())
        since = now - window

        outcomes = fan_out(
            {
                "catalog": self._catalog.list_entities,
                "events": lambda: self._events.events_since(cfg.event_kinds, since),
                "discoveries": lambda: self._store.recent_discoveries(cfg.discovery_lookback),
            },
            timeout=cfg.fetch_timeout_seconds,
        )

        catalog = outcomes["catalog"]
        if not catalog.ok:
            _LOGGER.error("insights_catalog_unavailable", detail=str(catalog.error))
            raise CatalogUnavailable(f"catalog fetch failed: {catalog.error}") from catalog.error
        for key in ("events", "discoveries"):
            outcome = outcomes[key]
            if not outcome.ok:
                _LOGGER.error("insights_input_unavailable", input=key, detail=str(outcome.error))
                raise InsightsInputUnavailable(f"{key} fetch failed: {outcome.error}") from outcome.error

        events = list(outcomes["events"].value or [])
        snapshot, tallies = _assemble(
            events,
            list(catalog.value or []),
            list(outcomes["discoveries"].value or []),
            config=cfg,
            created_at=now,
        )
        stored = self._store.insert_snapshot(snapshot)
        _LOGGER.info(
            "insights_computed",
            engine_version=ENGINE_VERSION,
            window_days=window.days,
            events=len(events),
            skipped_events=tallies.skipped_events,
            top_category=stored.top_category,
            correlations=len(stored.user_correlation),
            for_you=len(stored.for_you),
        )
        return stored

    def get_latest_insights(self) -> CorrelationSnapshot:
        """Latest persisted snapshot; computes one only when none exists yet."""
        latest = self._store.latest_snapshot()
        if latest is not None:
            return latest
        _LOGGER.info("insights_cold_start")
        return self.compute_insights()
