"""Shared normalization helpers.

- slug normalization (single namespace for catalog entities and discoveries)
- alias-based decoding of loosely-typed event payloads
- summary truncation for discovery records
- small coercions used by the stores and API (text, string tuples, ISO dates)
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

ENTITY_SLUG_ALIASES: tuple[str, ...] = ("entitySlug", "slug", "testnet")
SESSION_ID_ALIASES: tuple[str, ...] = ("sessionId", "session_id", "session")

SUMMARY_MAX_CHARS = 320
ELLIPSIS = "..."

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def normalize_slug(name: Any) -> str:
    """Lowercase, collapse runs of non ``[a-z0-9]`` into ``-``, trim hyphens.

    Returns ``""`` when nothing usable remains; callers treat that as absent.
    """
    if name is None:
        return ""
    return _NON_SLUG_CHARS.sub("-", str(name).lower()).strip("-")


def first_alias(payload: Any, aliases: Sequence[str]) -> str | None:
    """Decode one value from a payload by trying ``aliases`` in order.

    The first key holding a non-``None`` value wins, even when that value
    turns out to be unusable (blank or a container), in which case the
    result is ``None``. Later aliases are never consulted once one matched.
    """
    if not isinstance(payload, Mapping):
        return None
    for key in aliases:
        value = payload.get(key)
        if value is None:
            continue
        if isinstance(value, (Mapping, list, tuple, set)):
            return None
        text = str(value).strip()
        return text or None
    return None


def decode_entity_slug(payload: Any) -> str | None:
    return first_alias(payload, ENTITY_SLUG_ALIASES)


def decode_session_id(payload: Any) -> str | None:
    return first_alias(payload, SESSION_ID_ALIASES)


def summarise(text: str | None, *, limit: int = SUMMARY_MAX_CHARS) -> str | None:
    """Return the stripped text, truncated to ``limit`` chars with an ellipsis."""
    if text is None:
        return None
    trimmed = str(text).strip()
    if not trimmed:
        return None
    if len(trimmed) <= limit:
        return trimmed
    return trimmed[: limit - len(ELLIPSIS)] + ELLIPSIS


def optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def text_tuple(value: Any) -> tuple[str, ...]:
    """Coerce an array-ish column (list, tuple, None) to a tuple of non-empty strings."""
    if value is None or isinstance(value, (str, bytes, Mapping)):
        return ()
    try:
        items = list(value)
    except TypeError:
        return ()
    return tuple(str(item) for item in items if item is not None and str(item).strip())


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)
