"""Query and JSON body parameter helpers for the Flask API."""

from typing import Any, Dict

from flask import request


def _q(name: str, default: str | None = None) -> str | None:
    """Query parameter value, or ``default`` when missing or empty."""
    v = request.args.get(name)
    if v is None or v == "":
        return default
    return v


def _parse_int(value: str | None, *, default: int, min_v: int, max_v: int) -> int:
    """Parse an integer query parameter with bounds checking.

    Raises:
        ValueError: If value is not an integer or outside ``[min_v, max_v]``
    """
    if value is None or value == "":
        return default
    try:
        n = int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid integer value: {value!r}") from exc
    if n < min_v or n > max_v:
        raise ValueError(f"Value {n} out of range [{min_v}, {max_v}]")
    return n


def _coerce_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _json_body() -> Dict[str, Any]:
    """Request JSON object.

    Raises:
        ValueError: If the body is not a JSON object
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object")
    return payload


def _payload_dict(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}
