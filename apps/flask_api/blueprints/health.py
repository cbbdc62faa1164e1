"""Health and version endpoints."""

from typing import Any

from flask import Blueprint, jsonify

from apps.backend.db import ping
from apps.flask_api.utils import _json, _ok
from version import ENGINE_NAME, ENGINE_VERSION, KEYWORD_TABLE_VERSION, SCHEMA_VERSION

health_bp = Blueprint("health", __name__)

_API_VERSION: str = "v1"


def init_blueprint(api_version: str) -> None:
    global _API_VERSION
    _API_VERSION = api_version


@health_bp.route("/health", methods=["GET"])
def health() -> Any:
    return jsonify({"ok": True})


@health_bp.route("/api/health/db", methods=["GET"])
def api_health_db() -> Any:
    return _ok({"db": ping()})


@health_bp.route("/api/version", methods=["GET"])
def api_version() -> Any:
    return _json(
        {
            "version": _API_VERSION,
            "engine": ENGINE_NAME,
            "engine_version": ENGINE_VERSION,
            "keyword_table_version": KEYWORD_TABLE_VERSION,
            "schema_version": SCHEMA_VERSION,
        }
    )
