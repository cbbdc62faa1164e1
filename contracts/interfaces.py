"""
Protocol definitions for the pipeline's external collaborators.

The engines only depend on these Protocols. Production wiring uses the
Postgres implementations in ``apps.backend.stores``; tests pass in-memory
fakes.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Protocol, runtime_checkable

from contracts.models import (
    CorrelationSnapshot,
    DiscoveryCandidate,
    DiscoveryRecord,
    Entity,
    InteractionEvent,
)


@runtime_checkable
class EventStore(Protocol):
    """Time-ranged access to the append-only interaction log."""

    def events_since(self, kinds: Sequence[str], since: datetime) -> list[InteractionEvent]:
        """Return events of the given kinds with ``occurred_at >= since``, newest first."""
        ...

    def append_event(self, event: InteractionEvent) -> None:
        """Append one captured event."""
        ...


@runtime_checkable
class CatalogReader(Protocol):
    """Read access to tracked entities (small enough to load wholesale)."""

    def list_entities(self) -> list[Entity]:
        """Return every tracked entity."""
        ...


@runtime_checkable
class SnapshotStore(Protocol):
    """Append-only persistence for snapshots and discovery records."""

    def insert_snapshot(self, snapshot: CorrelationSnapshot) -> CorrelationSnapshot:
        """Persist a new snapshot and return it as stored."""
        ...

    def latest_snapshot(self) -> CorrelationSnapshot | None:
        """Return the snapshot with the greatest ``created_at``, if any."""
        ...

    def recent_discoveries(self, limit: int) -> list[DiscoveryRecord]:
        """Return up to ``limit`` discovery records, newest first."""
        ...

    def discovery_slugs(self) -> set[str]:
        """Return every persisted discovery slug."""
        ...

    def insert_discovery(self, record: DiscoveryRecord) -> DiscoveryRecord | None:
        """Insert a record; return ``None`` if the slug is already taken.

        Implementations must enforce slug uniqueness across discovery records
        and catalog entities atomically, so concurrent writers cannot both win.
        """
        ...


@runtime_checkable
class AcquisitionAdapter(Protocol):
    """Independent fetcher of external candidate records."""

    name: str

    def fetch(self) -> Iterable[DiscoveryCandidate]:
        """Return candidates; raising is allowed and handled by the pipeline."""
        ...
