"""Tests for the Postgres store implementations against a scripted fake connection."""

from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import timedelta
from typing import Any

import psycopg2.errors
import pytest

from apps.backend import stores
from apps.backend.stores import (
    PostgresCatalogReader,
    PostgresEventStore,
    PostgresSnapshotStore,
    row_to_entity,
    row_to_event,
)
from contracts.models import Correlation, CorrelationSnapshot, Recommendation
from tests.factories import BASE_TIME, make_record


class _Cursor:
    def __init__(self, conn: _Conn) -> None:
        self._conn = conn
        self.description: list[tuple[str]] = []

    def __enter__(self) -> _Cursor:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:  # type: ignore[no-untyped-def]
        return False

    def execute(self, sql: str, params: Any = None) -> None:
        self._conn.executed.append((" ".join(sql.split()), params))
        if self._conn.raises is not None:
            raise self._conn.raises
        columns, rows = self._conn.results.pop(0) if self._conn.results else ([], [])
        self.description = [(c,) for c in columns]
        self._rows = list(rows)

    def fetchone(self) -> tuple[Any, ...] | None:
        return self._rows[0] if self._rows else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        return list(self._rows)


class _Conn:
    def __init__(self, *results: tuple[list[str], list[tuple[Any, ...]]], raises: Exception | None = None) -> None:
        self.results = list(results)
        self.raises = raises
        self.executed: list[tuple[str, Any]] = []
        self.commits = 0
        self.rollbacks = 0

    def cursor(self) -> _Cursor:
        return _Cursor(self)

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1


def _factory(conn: _Conn) -> Any:
    @contextmanager
    def _ctx() -> Any:
        yield conn

    return _ctx


_DISCOVERY_COLS = ["name", "slug", "network", "category", "summary", "source_url", "metadata", "created_at"]


def test_events_since_filters_by_kind_and_window() -> None:
    conn = _Conn(
        (
            ["event_name", "payload", "referrer", "metadata", "created_at"],
            [("join", {"entitySlug": "fuel-beta"}, None, None, BASE_TIME)],
        )
    )
    store = PostgresEventStore(_factory(conn))
    since = BASE_TIME - timedelta(days=14)

    events = store.events_since(["join", "read_content"], since)

    sql, params = conn.executed[0]
    assert "event_name = ANY(%s)" in sql
    assert params == (["join", "read_content"], since)
    assert events[0].payload == {"entitySlug": "fuel-beta"}


def test_append_event_serialises_payload_and_commits() -> None:
    conn = _Conn()
    store = PostgresEventStore(_factory(conn))

    store.append_event(row_to_event({"event_name": "join", "payload": {"slug": "monad"}}))

    _, params = conn.executed[0]
    assert params[0] == "join"
    assert json.loads(params[1]) == {"slug": "monad"}
    assert params[3] is None
    assert conn.commits == 1


def test_catalog_rows_become_entities() -> None:
    conn = _Conn(
        (
            ["slug", "name", "network", "categories", "tags"],
            [("fuel-beta", "Fuel Beta", "Modular", None, ["zk-testing", None])],
        )
    )

    entities = PostgresCatalogReader(_factory(conn)).list_entities()

    assert entities[0].slug == "fuel-beta"
    assert entities[0].categories == ()
    assert entities[0].tags == ("zk-testing",)


def test_insert_discovery_is_guarded_against_catalog_and_duplicates() -> None:
    conn = _Conn((_DISCOVERY_COLS, [("Lyra", "lyra", None, "Modular", "s", None, {}, BASE_TIME)]))
    store = PostgresSnapshotStore(_factory(conn))

    stored = store.insert_discovery(make_record("lyra", created_at=None))

    sql, params = conn.executed[0]
    assert "WHERE NOT EXISTS (SELECT 1 FROM testnets WHERE slug = %s)" in sql
    assert "ON CONFLICT (slug) DO NOTHING" in sql
    assert params[1] == "lyra" and params[-1] == "lyra"
    assert stored is not None and stored.created_at == BASE_TIME
    assert conn.commits == 1


def test_insert_discovery_returns_none_when_slug_taken() -> None:
    conn = _Conn((_DISCOVERY_COLS, []))

    assert PostgresSnapshotStore(_factory(conn)).insert_discovery(make_record("lyra")) is None


def test_insert_discovery_treats_trigger_rejection_as_duplicate() -> None:
    conn = _Conn(raises=psycopg2.errors.UniqueViolation("slug exists in catalog"))

    assert PostgresSnapshotStore(_factory(conn)).insert_discovery(make_record("fuel-beta")) is None
    assert conn.rollbacks == 1
    assert conn.commits == 0


def test_insert_discovery_propagates_other_errors() -> None:
    conn = _Conn(raises=RuntimeError("disk full"))

    with pytest.raises(RuntimeError):
        PostgresSnapshotStore(_factory(conn)).insert_discovery(make_record("lyra"))


def test_insert_snapshot_uses_database_timestamp() -> None:
    stamped = BASE_TIME + timedelta(seconds=3)
    conn = _Conn((["created_at"], [(stamped,)]))
    snapshot = CorrelationSnapshot(
        top_category="ZK",
        user_correlation=(Correlation(source="Fuel Beta", related=("Monad",)),),
        for_you=(Recommendation(slug="fuel-beta", name="Fuel Beta", reason="Popular with 2 recent joins"),),
        created_at=BASE_TIME,
    )

    stored = PostgresSnapshotStore(_factory(conn)).insert_snapshot(snapshot)

    _, params = conn.executed[0]
    assert params[0] == "ZK"
    assert json.loads(params[2]) == [{"source": "Fuel Beta", "related": ["Monad"]}]
    assert stored.created_at == stamped
    assert stored.for_you == snapshot.for_you


def test_latest_snapshot_round_trips_stored_columns() -> None:
    conn = _Conn(
        (
            ["top_category", "emerging_projects", "user_correlation", "for_you", "created_at"],
            [(None, "corrupt", [{"source": "A", "related": ["B", None]}], [{"slug": "a", "reason": "r"}], BASE_TIME)],
        )
    )

    latest = PostgresSnapshotStore(_factory(conn)).latest_snapshot()

    assert latest is not None
    assert latest.top_category is None
    assert latest.emerging_projects == ()
    assert latest.user_correlation == (Correlation(source="A", related=("B",)),)
    assert latest.for_you[0].name == "a"


def test_latest_snapshot_none_when_empty() -> None:
    assert PostgresSnapshotStore(_factory(_Conn())).latest_snapshot() is None


def test_recent_discoveries_and_slugs() -> None:
    conn = _Conn(
        (_DISCOVERY_COLS, [("Monad", "monad", "Layer1", None, None, None, None, BASE_TIME)]),
        (["slug"], [("monad",), ("lyra",)]),
    )
    store = PostgresSnapshotStore(_factory(conn))

    records = store.recent_discoveries(5)
    slugs = store.discovery_slugs()

    assert records[0].metadata == {}
    assert conn.executed[0][1] == (5,)
    assert slugs == {"monad", "lyra"}


def test_default_connection_factory_is_resolved_at_call_time(monkeypatch: Any) -> None:
    conn = _Conn((["slug"], [("fuel",)]))
    monkeypatch.setattr(stores, "db_conn", _factory(conn))

    assert PostgresSnapshotStore().discovery_slugs() == {"fuel"}


def test_row_to_entity_tolerates_missing_columns() -> None:
    entity = row_to_entity({"slug": "bare"})

    assert entity.name == ""
    assert entity.display_name == "bare"
