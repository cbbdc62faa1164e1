"""
testnet-insights CLI (flat-layout friendly).

Usage
-----
testnet-insights migrate [--dry-run] [--db-url "postgresql://..."]
testnet-insights discover [--db-url ...] [--json]
testnet-insights insights [--db-url ...] [--window-days 14] [--json]
testnet-insights serve [--host 0.0.0.0] [--port 5000]
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import List, Optional


def _env_default(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.environ.get(name)
    if v is None or v == "":
        return default
    return v


def _apply_db_url(args: argparse.Namespace) -> None:
    db_url = getattr(args, "db_url", None) or _env_default("DB_URL")
    if not db_url:
        raise SystemExit("Missing --db-url (or DB_URL env var).")
    os.environ["DB_URL"] = db_url


def cmd_migrate(args: argparse.Namespace) -> None:
    _apply_db_url(args)
    from apps.backend.db_migrate import DEFAULT_MIGRATIONS_DIR, run_migrations
    from infra.config import get_settings

    get_settings(reload=True)
    migrations_dir = Path(args.migrations_dir) if args.migrations_dir else DEFAULT_MIGRATIONS_DIR
    run_migrations(migrations_dir=migrations_dir, dry_run=bool(args.dry_run))


def cmd_discover(args: argparse.Namespace) -> None:
    from apps.worker import run_discovery

    argv = ["--json"] if args.json else []
    if args.db_url:
        argv += ["--db-url", args.db_url]
    run_discovery.main(argv)


def cmd_insights(args: argparse.Namespace) -> None:
    from apps.worker import refresh_insights

    argv = ["--json"] if args.json else []
    if args.db_url:
        argv += ["--db-url", args.db_url]
    if args.window_days is not None:
        argv += ["--window-days", str(args.window_days)]
    refresh_insights.main(argv)


def cmd_serve(args: argparse.Namespace) -> None:
    _apply_db_url(args)
    from apps.flask_api.flask_app import app
    from infra.config import get_settings

    api = get_settings(reload=True).api
    app.run(host=args.host or api.host, port=int(args.port or api.port))


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="testnet-insights", description="Testnet insights & discovery CLI")
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_db_url(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("--db-url", default=None, help="Database URL (or DB_URL env var).")

    sp = sub.add_parser("migrate", help="Apply pending SQL migrations.")
    add_db_url(sp)
    sp.add_argument("--dry-run", action="store_true", help="List pending migrations without applying.")
    sp.add_argument("--migrations-dir", default=None, help="Migrations directory. Default: ./migrations")
    sp.set_defaults(func=cmd_migrate)

    sp = sub.add_parser("discover", help="Run one discovery pass.")
    add_db_url(sp)
    sp.add_argument("--json", action="store_true", help="Print the run result as JSON.")
    sp.set_defaults(func=cmd_discover)

    sp = sub.add_parser("insights", help="Recompute the insight snapshot.")
    add_db_url(sp)
    sp.add_argument("--window-days", type=int, default=None, help="Event lookback in days.")
    sp.add_argument("--json", action="store_true", help="Print the snapshot as JSON.")
    sp.set_defaults(func=cmd_insights)

    sp = sub.add_parser("serve", help="Run the Flask API (development server).")
    add_db_url(sp)
    sp.add_argument("--host", default=None, help="Bind host (default: API_HOST or 0.0.0.0).")
    sp.add_argument("--port", type=int, default=None, help="Bind port (default: PORT or 5000).")
    sp.set_defaults(func=cmd_serve)

    return p


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
