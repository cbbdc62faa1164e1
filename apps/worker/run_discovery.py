"""Run one discovery pass (for cron or other external schedulers)."""

from __future__ import annotations

import argparse
import json

from apps.backend.pipelines import build_discovery_pipeline
from apps.worker._common import prepare_run
from contracts.models import DiscoveryRunResult


def run_discovery(*, db_url: str | None = None) -> DiscoveryRunResult:
    settings = prepare_run(trigger="worker:discovery", db_url=db_url)
    result = build_discovery_pipeline(settings).run_discovery()
    print(
        "OK: discovery complete "
        f"added={result.added} failed={len(result.failed)}"
    )
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run one AI discovery pass.")
    parser.add_argument("--db-url", default=None, help="Database URL (or DB_URL env var).")
    parser.add_argument("--json", action="store_true", help="Print the run result as JSON.")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    result = run_discovery(db_url=args.db_url)
    if args.json:
        print(json.dumps(result.to_wire(), ensure_ascii=False))


if __name__ == "__main__":
    main()
