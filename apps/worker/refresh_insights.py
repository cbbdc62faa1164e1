"""Compute a fresh insight snapshot (for cron or other external schedulers)."""

from __future__ import annotations

import argparse
import json
from datetime import timedelta

from apps.backend.pipelines import build_correlation_engine
from apps.worker._common import prepare_run
from contracts.models import CorrelationSnapshot


def refresh_insights(*, db_url: str | None = None, window_days: int | None = None) -> CorrelationSnapshot:
    settings = prepare_run(trigger="worker:insights", db_url=db_url)
    engine = build_correlation_engine(settings)
    window = timedelta(days=window_days) if window_days else None
    snapshot = engine.compute_insights(window)
    print(
        "OK: insights refreshed "
        f"top_category={snapshot.top_category} "
        f"for_you={len(snapshot.for_you)} correlations={len(snapshot.user_correlation)}"
    )
    return snapshot


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Recompute the insight snapshot.")
    parser.add_argument("--db-url", default=None, help="Database URL (or DB_URL env var).")
    parser.add_argument(
        "--window-days",
        type=int,
        default=None,
        help="Event lookback in days (default: INSIGHTS_WINDOW_DAYS or 14).",
    )
    parser.add_argument("--json", action="store_true", help="Print the snapshot as JSON.")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    if args.window_days is not None and args.window_days < 1:
        raise SystemExit("--window-days must be >= 1")
    snapshot = refresh_insights(db_url=args.db_url, window_days=args.window_days)
    if args.json:
        print(json.dumps(snapshot.to_wire(), ensure_ascii=False))


if __name__ == "__main__":
    main()
