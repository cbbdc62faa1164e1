"""flask_app.py

HTTP API for the testnet insights and discovery pipelines.

Routes live in ``apps.flask_api.blueprints``; this module owns the
cross-cutting request handling:

- request context + one ``http_request`` log line per request
- bearer token on the trigger routes (running discovery, forcing insights)
- schema gate: 503 ``schema_mismatch`` while migrations are pending
- pipeline input failures -> 503, anything unhandled -> 500
- ``Cache-Control: no-store`` on every ``/api/*`` response

Env
---
- DB_URL (required), API_BEARER_TOKEN (optional), see infra/config.py

Run
---
FLASK_APP=apps.flask_api.flask_app flask run --host=0.0.0.0 --port=5000
"""

from __future__ import annotations

import hmac
import threading
import time
import uuid
from pathlib import Path
from typing import Any

from flask import Flask, Response, abort, request
from werkzeug.exceptions import HTTPException

from apps.flask_api.blueprints import discovery_bp, events_bp, health_bp, insights_bp
from apps.flask_api.blueprints.health import init_blueprint as init_health_blueprint
from apps.flask_api.utils import _api_internal_error_response, _err, set_debug_mode
from contracts.errors import CatalogUnavailable, InsightsInputUnavailable
from infra.config import get_settings
from infra.logging_config import (
    StructuredLogger,
    clear_request_context,
    set_request_context,
    setup_logging,
)

_SETTINGS = get_settings()
_LOGGER = StructuredLogger("apps.flask_api")

setup_logging()

app = Flask(__name__)
app.register_blueprint(health_bp)
app.register_blueprint(discovery_bp)
app.register_blueprint(insights_bp)
app.register_blueprint(events_bp)

_API_DEBUG_ERRORS = bool(_SETTINGS.api.debug_errors)
set_debug_mode(_API_DEBUG_ERRORS)
init_health_blueprint(_SETTINGS.api.version)

# Empty token disables auth (local dev).
_API_BEARER_TOKEN = (_SETTINGS.api.bearer_token or "").strip()
_PROTECTED_ROUTES = {
    ("POST", "/api/ai-discovery"),
    ("POST", "/api/insights"),
}
_GATE_EXEMPT_PATHS = {"/api/health/db", "/api/version"}

_schema_gate_lock = threading.Lock()
_schema_gate_checked = False
_schema_gate_enabled = bool(_SETTINGS.api.enforce_schema_gate)


def _merge_vary_header(current: str | None, token: str) -> str:
    """Return a Vary header value that includes token exactly once."""
    items = [x.strip() for x in str(current or "").split(",") if x.strip()]
    if token and token.lower() not in {x.lower() for x in items}:
        items.append(token)
    return ", ".join(items)


# --------------------
# Request lifecycle
# --------------------

@app.before_request
def _start_request() -> None:
    request.environ["_insights_t0"] = time.monotonic()
    set_request_context(
        request_id=request.headers.get("X-Request-Id") or uuid.uuid4().hex,
        method=request.method,
        path=request.path,
    )


@app.after_request
def _log_request(resp: Response) -> Response:
    t0 = float(request.environ.get("_insights_t0") or 0.0)
    ms = int(max(0.0, (time.monotonic() - t0) * 1000.0)) if t0 else None
    _LOGGER.info(
        "http_request",
        status=int(getattr(resp, "status_code", 0) or 0),
        ms=ms,
        ip=request.headers.get("X-Forwarded-For", request.remote_addr),
        ua=request.headers.get("User-Agent", ""),
    )

    if (request.path or "").startswith("/api/"):
        resp.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
        resp.headers["Pragma"] = "no-cache"
        resp.headers["Expires"] = "0"
        resp.headers["Vary"] = _merge_vary_header(resp.headers.get("Vary"), "Authorization")
    return resp


@app.teardown_request
def _end_request(_: BaseException | None) -> None:
    clear_request_context()


# --------------------
# Schema gate
# --------------------

def _schema_migrations_dir() -> Path:
    return Path(__file__).resolve().parents[2] / "migrations"


def _ensure_schema_gate() -> None:
    """Run the DB schema check once per process."""
    global _schema_gate_checked
    if not _schema_gate_enabled or _schema_gate_checked:
        return
    with _schema_gate_lock:
        if _schema_gate_checked:
            return
        from apps.backend.db_migrate import ensure_schema_current

        ensure_schema_current(migrations_dir=_schema_migrations_dir())
        _schema_gate_checked = True


@app.before_request
def _enforce_schema_gate() -> Any:
    path = request.path or ""
    if not path.startswith("/api/") or path in _GATE_EXEMPT_PATHS:
        return None
    try:
        _ensure_schema_gate()
    except RuntimeError as exc:
        _LOGGER.error("schema_gate_failed", detail=str(exc))
        return _err("schema_mismatch", str(exc), status=503)
    return None


# --------------------
# Auth (Bearer token)
# --------------------

def _check_bearer_token() -> None:
    """Abort with 401/403 when the bearer token is missing or wrong."""
    if not _API_BEARER_TOKEN:
        return

    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        abort(401)

    token = auth[len("Bearer ") :].strip()
    if not hmac.compare_digest(token, _API_BEARER_TOKEN):
        abort(403)


@app.before_request
def _enforce_api_auth() -> None:
    """Only the trigger routes are protected; reads and event capture stay public."""
    if (request.method, request.path or "") in _PROTECTED_ROUTES:
        _check_bearer_token()


# --------------------
# Error handling
# --------------------

@app.errorhandler(401)
def _err_401(_: Exception) -> Any:
    return _err("unauthorized", "missing bearer token", status=401)


@app.errorhandler(403)
def _err_403(_: Exception) -> Any:
    return _err("forbidden", "invalid bearer token", status=403)


@app.errorhandler(CatalogUnavailable)
def _err_catalog_unavailable(exc: CatalogUnavailable) -> Any:
    _LOGGER.error("catalog_unavailable", detail=str(exc))
    return _err("catalog_unavailable", "catalog is unavailable", status=503)


@app.errorhandler(InsightsInputUnavailable)
def _err_input_unavailable(exc: InsightsInputUnavailable) -> Any:
    _LOGGER.error("insights_input_unavailable", detail=str(exc))
    return _err("input_unavailable", "pipeline input is unavailable", status=503)


@app.errorhandler(Exception)
def _err_500(exc: Exception) -> Any:
    if isinstance(exc, HTTPException):
        return exc
    _LOGGER.exception("unhandled_exception", detail=str(exc))
    return _api_internal_error_response(exc)


def main() -> None:
    app.run(host=_SETTINGS.api.host, port=_SETTINGS.api.port)


if __name__ == "__main__":
    main()
