"""
Postgres implementations of the pipeline store protocols.

Tables (see migrations/001_init.sql):
- ``user_events``        append-only interaction log
- ``testnets``           catalog, read-only from here
- ``ai_discoveries``     discovery records, unique slug, never updated
- ``insight_snapshots``  correlation snapshots, never updated

Every method checks out its own pooled connection, so the stores are safe to
call from the fan-out worker threads.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Mapping, Sequence
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any

from psycopg2.errors import UniqueViolation

from apps.backend.db import (
    db_conn,
    execute_conn,
    fetch_all_conn,
    fetch_all_dict_conn,
    fetch_one_dict_conn,
    to_jsonb,
)
from contracts.models import (
    CorrelationSnapshot,
    DiscoveryRecord,
    Entity,
    InteractionEvent,
)
from contracts.normalization import optional_text, text_tuple
from infra.logging_config import StructuredLogger

ConnFactory = Callable[[], AbstractContextManager[Any]]

_LOGGER = StructuredLogger(__name__)

_DISCOVERY_COLUMNS = "name, slug, network, category, summary, source_url, metadata, created_at"

_INSERT_DISCOVERY_SQL = f"""
INSERT INTO ai_discoveries (name, slug, network, category, summary, source_url, metadata)
SELECT %s, %s, %s, %s, %s, %s, %s::jsonb
WHERE NOT EXISTS (SELECT 1 FROM testnets WHERE slug = %s)
ON CONFLICT (slug) DO NOTHING
RETURNING {_DISCOVERY_COLUMNS}
"""

_INSERT_SNAPSHOT_SQL = """
INSERT INTO insight_snapshots (top_category, emerging_projects, user_correlation, for_you, created_at)
VALUES (%s, %s::jsonb, %s::jsonb, %s::jsonb, COALESCE(%s, now()))
RETURNING created_at
"""


def _default_conn() -> AbstractContextManager[Any]:
    # Resolved at call time so tests can monkeypatch ``stores.db_conn``.
    return db_conn()


def row_to_discovery(row: Mapping[str, Any]) -> DiscoveryRecord:
    metadata = row.get("metadata")
    return DiscoveryRecord(
        name=str(row.get("name") or row.get("slug") or ""),
        slug=str(row.get("slug") or ""),
        network=optional_text(row.get("network")),
        category=optional_text(row.get("category")),
        summary=optional_text(row.get("summary")),
        source_url=optional_text(row.get("source_url")),
        metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
        created_at=row.get("created_at"),
    )


def row_to_entity(row: Mapping[str, Any]) -> Entity:
    return Entity(
        slug=str(row.get("slug") or ""),
        name=str(row.get("name") or ""),
        categories=text_tuple(row.get("categories")),
        tags=text_tuple(row.get("tags")),
        network=optional_text(row.get("network")),
    )


def row_to_event(row: Mapping[str, Any]) -> InteractionEvent:
    payload = row.get("payload")
    metadata = row.get("metadata")
    return InteractionEvent(
        event_name=str(row.get("event_name") or ""),
        payload=payload if isinstance(payload, Mapping) else {},
        occurred_at=row.get("created_at"),
        referrer=optional_text(row.get("referrer")),
        metadata=metadata if isinstance(metadata, Mapping) else None,
    )


class PostgresEventStore:
    def __init__(self, conn_factory: ConnFactory | None = None) -> None:
        self._conn = conn_factory or _default_conn

    def events_since(self, kinds: Sequence[str], since: datetime) -> list[InteractionEvent]:
        """Events of ``kinds`` at or after ``since``, newest first."""
        with self._conn() as conn:
            rows = fetch_all_dict_conn(
                conn,
                """
                SELECT event_name, payload, referrer, metadata, created_at
                FROM user_events
                WHERE event_name = ANY(%s) AND created_at >= %s
                ORDER BY created_at DESC, id DESC
                """,
                (list(kinds), since),
            )
        return [row_to_event(r) for r in rows]

    def append_event(self, event: InteractionEvent) -> None:
        with self._conn() as conn:
            execute_conn(
                conn,
                """
                INSERT INTO user_events (event_name, payload, referrer, metadata, created_at)
                VALUES (%s, %s::jsonb, %s, %s::jsonb, COALESCE(%s, now()))
                """,
                (
                    event.event_name,
                    to_jsonb(dict(event.payload or {})),
                    event.referrer,
                    to_jsonb(dict(event.metadata)) if event.metadata is not None else None,
                    event.occurred_at,
                ),
            )
            conn.commit()


class PostgresCatalogReader:
    def __init__(self, conn_factory: ConnFactory | None = None) -> None:
        self._conn = conn_factory or _default_conn

    def list_entities(self) -> list[Entity]:
        with self._conn() as conn:
            rows = fetch_all_dict_conn(
                conn,
                "SELECT slug, name, network, categories, tags FROM testnets ORDER BY slug",
            )
        return [row_to_entity(r) for r in rows]


class PostgresSnapshotStore:
    """Snapshots and discovery records, both append-only."""

    def __init__(self, conn_factory: ConnFactory | None = None) -> None:
        self._conn = conn_factory or _default_conn

    # -- snapshots -----------------------------------------------------

    def insert_snapshot(self, snapshot: CorrelationSnapshot) -> CorrelationSnapshot:
        wire = snapshot.to_wire()
        with self._conn() as conn:
            row = fetch_one_dict_conn(
                conn,
                _INSERT_SNAPSHOT_SQL,
                (
                    snapshot.top_category,
                    to_jsonb(wire["emergingProjects"]),
                    to_jsonb(wire["userCorrelation"]),
                    to_jsonb(wire["forYou"]),
                    snapshot.created_at,
                ),
            )
            conn.commit()
        created_at = (row or {}).get("created_at") or snapshot.created_at
        return dataclasses.replace(snapshot, created_at=created_at)

    def latest_snapshot(self) -> CorrelationSnapshot | None:
        with self._conn() as conn:
            row = fetch_one_dict_conn(
                conn,
                """
                SELECT top_category, emerging_projects, user_correlation, for_you, created_at
                FROM insight_snapshots
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
            )
        if row is None:
            return None
        return CorrelationSnapshot.from_wire_parts(
            top_category=row.get("top_category"),
            emerging_projects=row.get("emerging_projects"),
            user_correlation=row.get("user_correlation"),
            for_you=row.get("for_you"),
            created_at=row.get("created_at"),
        )

    # -- discoveries ---------------------------------------------------

    def recent_discoveries(self, limit: int) -> list[DiscoveryRecord]:
        with self._conn() as conn:
            rows = fetch_all_dict_conn(
                conn,
                f"SELECT {_DISCOVERY_COLUMNS} FROM ai_discoveries ORDER BY created_at DESC, id DESC LIMIT %s",
                (int(limit),),
            )
        return [row_to_discovery(r) for r in rows]

    def discovery_slugs(self) -> set[str]:
        with self._conn() as conn:
            rows = fetch_all_conn(conn, "SELECT slug FROM ai_discoveries")
        return {str(r[0]) for r in rows if r and r[0]}

    def insert_discovery(self, record: DiscoveryRecord) -> DiscoveryRecord | None:
        """Insert unless the slug is taken (catalog or discoveries); None when taken."""
        with self._conn() as conn:
            try:
                row = fetch_one_dict_conn(
                    conn,
                    _INSERT_DISCOVERY_SQL,
                    (
                        record.name,
                        record.slug,
                        record.network,
                        record.category,
                        record.summary,
                        record.source_url,
                        to_jsonb(dict(record.metadata or {})),
                        record.slug,
                    ),
                )
            except UniqueViolation:
                # Catalog trigger fired: the slug landed in testnets after our NOT EXISTS check.
                conn.rollback()
                _LOGGER.debug("discovery_slug_taken", slug=record.slug)
                return None
            conn.commit()
        if row is None:
            return None
        return row_to_discovery(row)
