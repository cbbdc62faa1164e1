"""Discovery endpoints.

- ``POST /api/ai-discovery`` runs one discovery pass (bearer-protected)
- ``GET /api/ai-discovery?limit=20`` lists the newest discovery records
"""

from datetime import UTC, datetime
from typing import Any

from flask import Blueprint

from apps.backend.pipelines import build_discovery_pipeline
from apps.backend.stores import PostgresSnapshotStore
from apps.flask_api.utils import _err, _ok, _parse_int, _q
from contracts.models import iso_z

discovery_bp = Blueprint("discovery", __name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def _snapshot_store() -> PostgresSnapshotStore:
    return PostgresSnapshotStore()


@discovery_bp.route("/api/ai-discovery", methods=["POST"])
def api_run_discovery() -> Any:
    result = build_discovery_pipeline().run_discovery()
    return _ok(result.to_wire())


@discovery_bp.route("/api/ai-discovery", methods=["GET"])
def api_latest_discoveries() -> Any:
    try:
        limit = _parse_int(_q("limit"), default=DEFAULT_LIMIT, min_v=1, max_v=MAX_LIMIT)
    except ValueError as exc:
        return _err("bad_request", str(exc), status=400)

    records = _snapshot_store().recent_discoveries(limit)
    return _ok(
        {
            "items": [record.to_wire() for record in records],
            "timestamp": iso_z(datetime.now(UTC)),
        }
    )
