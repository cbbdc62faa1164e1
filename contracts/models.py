"""Domain records shared by the insights and discovery pipelines.

Every record is a frozen dataclass: events, entities, snapshots and discovery
records are append-only in storage and immutable in memory. ``to_wire``
methods produce the camelCase JSON shape served by the API.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

EVENT_JOIN = "join"
EVENT_READ_CONTENT = "read_content"


def iso_z(dt: datetime | None) -> str | None:
    """Format a datetime as ISO-8601 UTC with a ``Z`` suffix (naive = UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class InteractionEvent:
    """One row of the append-only interaction log."""

    event_name: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    occurred_at: datetime | None = None
    referrer: str | None = None
    metadata: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class Entity:
    """A tracked test network, owned by the external catalog."""

    slug: str
    name: str
    categories: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    network: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.slug


@dataclass(frozen=True)
class DiscoveryCandidate:
    """Unvetted external record produced by an acquisition adapter."""

    name: str
    description: str | None = None
    network: str | None = None
    website: str | None = None
    source_url: str | None = None
    from_fallback: bool = False


@dataclass(frozen=True)
class DiscoveryRecord:
    """A promoted candidate. Persisted once per slug and never updated."""

    name: str
    slug: str
    network: str | None = None
    category: str | None = None
    summary: str | None = None
    source_url: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None

    def to_item(self) -> dict[str, Any]:
        """Short wire shape used in run results and emerging projects."""
        return {
            "name": self.name,
            "slug": self.slug,
            "category": self.category,
            "summary": self.summary,
            "sourceUrl": self.source_url,
        }

    def to_wire(self) -> dict[str, Any]:
        item = self.to_item()
        item["network"] = self.network
        item["metadata"] = dict(self.metadata or {})
        item["createdAt"] = iso_z(self.created_at)
        return item


@dataclass(frozen=True)
class EmergingProject:
    name: str
    slug: str
    category: str | None = None
    summary: str | None = None
    source_url: str | None = None

    @classmethod
    def from_record(cls, record: DiscoveryRecord) -> EmergingProject:
        return cls(
            name=record.name,
            slug=record.slug,
            category=record.category,
            summary=record.summary,
            source_url=record.source_url,
        )

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "slug": self.slug,
            "category": self.category,
            "summary": self.summary,
            "sourceUrl": self.source_url,
        }


@dataclass(frozen=True)
class Correlation:
    """Display names of the entities most often co-visited with ``source``."""

    source: str
    related: tuple[str, ...] = ()

    def to_wire(self) -> dict[str, Any]:
        return {"source": self.source, "related": list(self.related)}


@dataclass(frozen=True)
class Recommendation:
    slug: str
    name: str
    reason: str

    def to_wire(self) -> dict[str, Any]:
        return {"slug": self.slug, "name": self.name, "reason": self.reason}


@dataclass(frozen=True)
class CorrelationSnapshot:
    """Immutable, timestamped result of one correlation pass."""

    top_category: str | None
    emerging_projects: tuple[EmergingProject, ...] = ()
    user_correlation: tuple[Correlation, ...] = ()
    for_you: tuple[Recommendation, ...] = ()
    created_at: datetime | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "topCategory": self.top_category,
            "emergingProjects": [p.to_wire() for p in self.emerging_projects],
            "userCorrelation": [c.to_wire() for c in self.user_correlation],
            "forYou": [r.to_wire() for r in self.for_you],
            "createdAt": iso_z(self.created_at),
        }

    @classmethod
    def from_wire_parts(
        cls,
        *,
        top_category: Any,
        emerging_projects: Any,
        user_correlation: Any,
        for_you: Any,
        created_at: datetime | None,
    ) -> CorrelationSnapshot:
        """Rebuild a snapshot from stored JSON columns.

        Non-list columns become empty collections and malformed items are
        dropped, so a damaged row still reads as a valid snapshot.
        """
        projects = tuple(
            EmergingProject(
                name=str(item.get("name") or item.get("slug") or ""),
                slug=str(item.get("slug") or ""),
                category=item.get("category"),
                summary=item.get("summary"),
                source_url=item.get("sourceUrl"),
            )
            for item in _dict_items(emerging_projects)
        )
        correlations = tuple(
            Correlation(
                source=str(item.get("source") or ""),
                related=tuple(str(r) for r in item.get("related") or () if r is not None),
            )
            for item in _dict_items(user_correlation)
        )
        recommendations = tuple(
            Recommendation(
                slug=str(item.get("slug") or ""),
                name=str(item.get("name") or item.get("slug") or ""),
                reason=str(item.get("reason") or ""),
            )
            for item in _dict_items(for_you)
        )
        return cls(
            top_category=str(top_category) if top_category else None,
            emerging_projects=projects,
            user_correlation=correlations,
            for_you=recommendations,
            created_at=created_at,
        )


def _dict_items(value: Any) -> list[Mapping[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, Mapping)]


@dataclass(frozen=True)
class DiscoveryRunResult:
    """Outcome of one discovery pass. Partial success is the normal case."""

    items: tuple[DiscoveryRecord, ...] = ()
    failed: tuple[str, ...] = ()

    @property
    def added(self) -> int:
        return len(self.items)

    def to_wire(self) -> dict[str, Any]:
        return {
            "added": self.added,
            "items": [item.to_item() for item in self.items],
            "failed": list(self.failed),
        }
