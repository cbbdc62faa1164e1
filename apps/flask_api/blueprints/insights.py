"""Insight snapshot endpoints.

``GET`` serves the latest persisted snapshot (computing one on a cold start);
``POST`` forces a fresh computation. ``timestamp`` mirrors ``createdAt``.
"""

from typing import Any

from flask import Blueprint

from apps.backend.pipelines import build_correlation_engine
from apps.flask_api.utils import _json
from contracts.models import CorrelationSnapshot

insights_bp = Blueprint("insights", __name__)


def _snapshot_body(snapshot: CorrelationSnapshot) -> dict[str, Any]:
    body = snapshot.to_wire()
    body["timestamp"] = body["createdAt"]
    return body


@insights_bp.route("/api/insights", methods=["GET"])
def api_latest_insights() -> Any:
    return _json(_snapshot_body(build_correlation_engine().get_latest_insights()))


@insights_bp.route("/api/insights", methods=["POST"])
def api_compute_insights() -> Any:
    return _json(_snapshot_body(build_correlation_engine().compute_insights()))
