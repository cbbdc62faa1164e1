"""
Migration runner for the insights schema.

``migrations/*.sql`` files are applied in name order, once each, and
recorded in ``schema_migrations``. The API refuses to serve while migrations
are pending (see ``ensure_schema_current``).

Usage:
  testnet-insights migrate
  testnet-insights migrate --dry-run
  python -m apps.backend.db_migrate --migrations-dir migrations
"""

from __future__ import annotations

import argparse
from pathlib import Path

from apps.backend.db import db_conn

DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


def _ensure_migrations_table(conn) -> None:
    with conn.cursor() as cur:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
              version TEXT PRIMARY KEY,
              applied_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
            """
        )
    conn.commit()


def _applied_versions(conn) -> set[str]:
    with conn.cursor() as cur:
        cur.execute("SELECT version FROM schema_migrations")
        rows = cur.fetchall() or []
    return {str(r[0]) for r in rows if r and r[0]}


def _dollar_tag_at(sql: str, i: int) -> str | None:
    """Return ``$tag$`` (or ``$$``) starting at ``i``, else None."""
    j = i + 1
    while j < len(sql) and (sql[j].isalnum() or sql[j] == "_"):
        j += 1
    if j < len(sql) and sql[j] == "$":
        return sql[i : j + 1]
    return None


def _end_of_quoted(sql: str, i: int) -> int:
    """Index just past the single-quoted literal opening at ``i``."""
    j = i + 1
    while j < len(sql):
        if sql[j] == "'":
            if sql.startswith("''", j):
                j += 2
                continue
            return j + 1
        j += 1
    return len(sql)


def _split_sql(sql: str) -> list[str]:
    """Split a SQL script on top-level ``;``.

    Semicolons inside quotes, comments and dollar-quoted bodies (plpgsql
    functions, DO blocks) do not terminate a statement.
    """
    statements: list[str] = []
    start = 0
    i = 0
    n = len(sql)
    while i < n:
        if sql.startswith("--", i):
            newline = sql.find("\n", i)
            i = n if newline == -1 else newline + 1
        elif sql.startswith("/*", i):
            close = sql.find("*/", i + 2)
            i = n if close == -1 else close + 2
        elif sql[i] == "'":
            i = _end_of_quoted(sql, i)
        elif sql[i] == "$" and _dollar_tag_at(sql, i):
            tag = _dollar_tag_at(sql, i) or "$$"
            close = sql.find(tag, i + len(tag))
            i = n if close == -1 else close + len(tag)
        elif sql[i] == ";":
            stmt = sql[start:i].strip()
            if stmt:
                statements.append(stmt)
            i += 1
            start = i
        else:
            i += 1

    tail = sql[start:].strip()
    if tail:
        statements.append(tail)
    return statements


def _apply_sql_migration(conn, path: Path) -> None:
    """Apply every statement of ``path`` in a single transaction."""
    with conn.cursor() as cur:
        for stmt in _split_sql(path.read_text(encoding="utf-8")):
            cur.execute(stmt)


def _iter_migration_files(migrations_dir: Path) -> list[Path]:
    if not migrations_dir.exists():
        return []
    files = [p for p in migrations_dir.iterdir() if p.is_file() and p.suffix == ".sql"]
    return sorted(files, key=lambda p: p.name)


def pending_migration_versions(conn, *, migrations_dir: Path) -> list[str]:
    _ensure_migrations_table(conn)
    applied = _applied_versions(conn)
    return [p.stem for p in _iter_migration_files(migrations_dir) if p.stem not in applied]


def ensure_schema_current(*, migrations_dir: Path = DEFAULT_MIGRATIONS_DIR) -> None:
    """Raise when the database is behind the local migrations."""
    with db_conn() as conn:
        pending = pending_migration_versions(conn, migrations_dir=migrations_dir)
    if pending:
        raise RuntimeError(
            f"Database schema is out of date. Pending migrations: {', '.join(pending)}. "
            "Run `testnet-insights migrate` first."
        )


def run_migrations(*, migrations_dir: Path = DEFAULT_MIGRATIONS_DIR, dry_run: bool = False) -> list[str]:
    """Apply pending migrations and return their versions (dry-run only lists them)."""
    with db_conn() as conn:
        pending_versions = set(pending_migration_versions(conn, migrations_dir=migrations_dir))
        pending = [p for p in _iter_migration_files(migrations_dir) if p.stem in pending_versions]

        if dry_run:
            for p in pending:
                print(f"PENDING: {p.name}")
            if not pending:
                print("No pending migrations.")
            return [p.stem for p in pending]

        for path in pending:
            print(f"Applying {path.name}...")
            try:
                _apply_sql_migration(conn, path)
                with conn.cursor() as cur:
                    cur.execute("INSERT INTO schema_migrations (version) VALUES (%s)", (path.stem,))
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            print(f"Applied {path.stem}")
        return [p.stem for p in pending]


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Apply database migrations.")
    parser.add_argument("--dry-run", action="store_true", help="Show pending migrations without applying.")
    parser.add_argument(
        "--migrations-dir",
        default=str(DEFAULT_MIGRATIONS_DIR),
        help="Path to migrations directory (default: ./migrations).",
    )
    args = parser.parse_args(argv)
    run_migrations(migrations_dir=Path(args.migrations_dir), dry_run=bool(args.dry_run))


if __name__ == "__main__":
    main()
