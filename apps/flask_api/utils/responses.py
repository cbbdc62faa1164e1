"""Response helpers for the Flask API.

Every JSON body carries ``ok``; errors add a stable ``error`` code and a
human-readable ``message``.
"""

import traceback
from typing import Any, Dict, Optional

from flask import jsonify

_API_DEBUG_ERRORS: bool = False


def set_debug_mode(enabled: bool) -> None:
    """Include exception detail and traceback in 500 bodies when enabled."""
    global _API_DEBUG_ERRORS
    _API_DEBUG_ERRORS = bool(enabled)


def _ok(data: Optional[Dict[str, Any]] = None, *, status: int = 200) -> Any:
    payload: Dict[str, Any] = {"ok": True}
    if data:
        payload.update(data)
    return jsonify(payload), status


def _err(
    code: str,
    message: str,
    *,
    status: int,
    extra: Optional[Dict[str, Any]] = None,
) -> Any:
    """Error body: ``{"ok": false, "error": code, "message": message, **extra}``."""
    payload: Dict[str, Any] = {"ok": False, "error": code, "message": message}
    if extra:
        payload.update(extra)
    return jsonify(payload), status


def _json(payload: Dict[str, Any], *, status: int = 200) -> Any:
    """Plain JSON body; ``ok`` is inferred from ``status`` when missing."""
    if "ok" not in payload:
        payload = dict(payload)
        payload["ok"] = status < 400
    return jsonify(payload), status


def _api_internal_error_response(exc: BaseException) -> Any:
    extra = None
    if _API_DEBUG_ERRORS:
        extra = {"detail": str(exc), "traceback": traceback.format_exc()}
    return _err("internal_error", "internal error", status=500, extra=extra)
