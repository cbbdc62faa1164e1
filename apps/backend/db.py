"""
db.py

PostgreSQL (psycopg2) helpers with a process-global connection pool.

Pooling
-------
Both pipelines fetch their inputs concurrently from worker threads, so the
pool is a ``ThreadedConnectionPool``: every thread checks out its own
connection through ``db_conn()`` and returns it when done.

The *_conn helpers take an already checked-out connection so a store method
can run several statements in one transaction.
"""

from __future__ import annotations

import atexit
import json
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from apps.backend.db_metrics import measure_query
from infra.config import get_settings

_POOL = None
_POOL_DSN: str | None = None
_POOL_LOCK = threading.Lock()


def _db_url() -> str:
    url = get_settings().db.url
    if not url:
        raise RuntimeError("DB_URL is not set")
    return url


def _get_pool():
    """Return the process-global pool, creating it on first use."""
    global _POOL, _POOL_DSN

    dsn = _db_url()
    with _POOL_LOCK:
        if _POOL is not None and _POOL_DSN == dsn:
            return _POOL

        from psycopg2.pool import ThreadedConnectionPool  # type: ignore

        db_cfg = get_settings().db
        _POOL = ThreadedConnectionPool(
            minconn=1,
            maxconn=db_cfg.pool_maxconn,
            dsn=dsn,
            connect_timeout=db_cfg.connect_timeout,
        )
        _POOL_DSN = dsn
        return _POOL


def _close_pool() -> None:
    global _POOL
    try:
        if _POOL is not None:
            _POOL.closeall()
    except Exception:  # noqa: BLE001 - interpreter shutdown
        pass
    finally:
        _POOL = None


atexit.register(_close_pool)


@contextmanager
def db_conn() -> Iterator[Any]:
    """Yield a pooled psycopg2 connection.

    Callers commit their own writes. Any transaction still open on exit is
    rolled back before the connection goes back to the pool.
    """
    pool = _get_pool()
    conn = pool.getconn()
    try:
        yield conn
    finally:
        try:
            conn.rollback()
        except Exception:  # noqa: BLE001 - broken connection, putconn decides
            pass
        try:
            pool.putconn(conn)
        except Exception:  # noqa: BLE001
            try:
                conn.close()
            except Exception:  # noqa: BLE001
                pass


def _query_name(sql: str, *, operation: str) -> str:
    """Stable query label for metrics/logging: ``operation:first_keyword``."""
    text = " ".join(str(sql or "").strip().split())
    if not text:
        return operation
    first_token = text.split(" ", 1)[0].lower()
    return f"{operation}:{first_token}"


def fetch_one_conn(conn: Any, sql: str, params: Sequence[Any] | None = None) -> tuple[Any, ...] | None:
    with conn.cursor() as cur:
        with measure_query(_query_name(sql, operation="fetch_one_conn")):
            cur.execute(sql, params or ())
        return cur.fetchone()


def fetch_all_conn(conn: Any, sql: str, params: Sequence[Any] | None = None) -> list[tuple[Any, ...]]:
    with conn.cursor() as cur:
        with measure_query(_query_name(sql, operation="fetch_all_conn")):
            cur.execute(sql, params or ())
        return cur.fetchall()


def execute_conn(conn: Any, sql: str, params: Sequence[Any] | None = None) -> None:
    with conn.cursor() as cur:
        with measure_query(_query_name(sql, operation="execute_conn")):
            cur.execute(sql, params or ())


def to_jsonb(value: Any) -> str:
    """Serialize a Python object to a JSON string suitable for ``%s::jsonb``."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), default=str)


def _cols_from_description(desc: Any) -> list[str]:
    if not desc:
        return []
    cols: list[str] = []
    for i, d in enumerate(desc):
        try:
            name = d[0]
        except (IndexError, KeyError, TypeError):
            name = None
        cols.append(str(name) if name else f"col_{i}")
    return cols


def fetch_one_dict_conn(conn: Any, sql: str, params: Sequence[Any] | None = None) -> dict[str, Any] | None:
    """Execute a query and return one row as a dict (or None)."""
    with conn.cursor() as cur:
        with measure_query(_query_name(sql, operation="fetch_one_dict_conn")):
            cur.execute(sql, params or ())
        row = cur.fetchone()
        if row is None:
            return None
        cols = _cols_from_description(getattr(cur, "description", None))
        if not cols:
            return None
        return dict(zip(cols, row, strict=False))


def fetch_all_dict_conn(conn: Any, sql: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
    """Execute a query and return all rows as dicts."""
    with conn.cursor() as cur:
        with measure_query(_query_name(sql, operation="fetch_all_dict_conn")):
            cur.execute(sql, params or ())
        rows = cur.fetchall()
        cols = _cols_from_description(getattr(cur, "description", None))
        if not cols:
            return []
        return [dict(zip(cols, r, strict=False)) for r in rows]


def ping() -> bool:
    """Round-trip ``SELECT 1`` on a pooled connection."""
    with db_conn() as conn:
        row = fetch_one_conn(conn, "SELECT 1")
    return bool(row) and row[0] == 1
