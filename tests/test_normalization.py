"""Unit tests for slug normalization, payload alias decoding and summaries."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from contracts.normalization import (
    decode_entity_slug,
    decode_session_id,
    ensure_utc,
    normalize_slug,
    summarise,
    text_tuple,
)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Lyra Testnet", "lyra-testnet"),
        ("  Dymension RollApp Hub  ", "dymension-rollapp-hub"),
        ("zkSync Era (Sepolia)", "zksync-era-sepolia"),
        ("Berachain  --  bArtio!", "berachain-bartio"),
        ("---", ""),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_slug(name, expected) -> None:  # type: ignore[no-untyped-def]
    assert normalize_slug(name) == expected


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        ({"entitySlug": "fuel-beta"}, "fuel-beta"),
        ({"slug": "monad"}, "monad"),
        ({"testnet": "  scroll  "}, "scroll"),
        ({"entitySlug": "first", "slug": "second"}, "first"),
        ({"entitySlug": None, "slug": "second"}, "second"),
        ({"entitySlug": "", "slug": "second"}, None),
        ({"entitySlug": {"nested": True}}, None),
        ({"entitySlug": ["fuel-beta"]}, None),
        ({"entitySlug": 42}, "42"),
        ({}, None),
        (None, None),
        ("fuel-beta", None),
    ],
)
def test_decode_entity_slug(payload, expected) -> None:  # type: ignore[no-untyped-def]
    assert decode_entity_slug(payload) == expected


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        ({"sessionId": "abc"}, "abc"),
        ({"session_id": "snake"}, "snake"),
        ({"session": "short"}, "short"),
        ({"session_id": "snake", "session": "short"}, "snake"),
        ({"sessionId": "   "}, None),
        ({"entitySlug": "fuel-beta"}, None),
    ],
)
def test_decode_session_id(payload, expected) -> None:  # type: ignore[no-untyped-def]
    assert decode_session_id(payload) == expected


def test_summarise_keeps_short_text() -> None:
    assert summarise("  A modular testnet.  ") == "A modular testnet."


def test_summarise_truncates_with_ellipsis() -> None:
    summary = summarise("a" * 400)

    assert summary is not None
    assert len(summary) == 320
    assert summary == "a" * 317 + "..."


def test_summarise_boundary_is_not_truncated() -> None:
    assert summarise("b" * 320) == "b" * 320


@pytest.mark.parametrize("text", [None, "", "   "])
def test_summarise_absent(text) -> None:  # type: ignore[no-untyped-def]
    assert summarise(text) is None


def test_text_tuple_coercion() -> None:
    assert text_tuple(["ZK", None, " ", "DeFi"]) == ("ZK", "DeFi")
    assert text_tuple(None) == ()
    assert text_tuple("ZK") == ()
    assert text_tuple(7) == ()


def test_ensure_utc() -> None:
    naive = datetime(2026, 3, 1, 12, 0)
    shifted = datetime(2026, 3, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

    assert ensure_utc(naive) == datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
    assert ensure_utc(shifted).tzinfo == UTC
    assert ensure_utc(shifted).hour == 12
