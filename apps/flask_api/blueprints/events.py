"""Interaction event capture (``POST /api/events``)."""

from datetime import UTC, datetime
from typing import Any

from flask import Blueprint, request

from apps.backend.stores import PostgresEventStore
from apps.flask_api.utils import _coerce_optional_text, _err, _json_body, _ok, _payload_dict
from contracts.models import InteractionEvent

events_bp = Blueprint("events", __name__)


def _event_store() -> PostgresEventStore:
    return PostgresEventStore()


@events_bp.route("/api/events", methods=["POST"])
def api_capture_event() -> Any:
    try:
        body = _json_body()
    except ValueError as exc:
        return _err("bad_request", str(exc), status=400)

    event_name = _coerce_optional_text(body.get("eventName"))
    if not event_name:
        return _err("bad_request", "eventName is required", status=400)

    event = InteractionEvent(
        event_name=event_name,
        payload=_payload_dict(body.get("payload")),
        occurred_at=datetime.now(UTC),
        referrer=_coerce_optional_text(body.get("referrer")) or _coerce_optional_text(request.referrer),
        metadata={"userAgent": request.headers.get("User-Agent")},
    )
    _event_store().append_event(event)
    return _ok()
