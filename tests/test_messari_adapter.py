"""Tests for the Messari acquisition adapter (HTTP stubbed out)."""

from __future__ import annotations

from typing import Any

import pytest
import requests

from contracts.errors import ProviderFailure
from infra.config import DiscoveryConfigSettings
from pipeline.discovery.adapters import messari
from pipeline.discovery.adapters.messari import MessariAdapter, project_to_candidate


class _Response:
    def __init__(self, status_code: int = 200, payload: Any = None, *, bad_json: bool = False) -> None:
        self.status_code = status_code
        self._payload = payload
        self._bad_json = bad_json

    def json(self) -> Any:
        if self._bad_json:
            raise ValueError("Expecting value")
        return self._payload


def _stub_get(monkeypatch: Any, response: _Response) -> list[dict[str, Any]]:
    calls: list[dict[str, Any]] = []

    def _get(url: str, **kwargs: Any) -> _Response:
        calls.append({"url": url, **kwargs})
        return response

    monkeypatch.setattr(messari.requests, "get", _get)
    return calls


def _project(slug: str, **general: Any) -> dict[str, Any]:
    return {"name": slug.title(), "slug": slug, "profile": {"general": general}}


def test_fetch_maps_projects_to_candidates(monkeypatch: Any) -> None:
    payload = {
        "data": [
            _project(
                "lyra",
                overview="Lyra public testnet",
                sector="Modular",
                official_links=[{"link": "https://lyra.example"}],
            ),
            "not-a-project",
        ]
    }
    calls = _stub_get(monkeypatch, _Response(payload=payload))
    adapter = MessariAdapter(DiscoveryConfigSettings(messari_api_key="k", adapter_timeout_seconds=3))

    candidates = adapter.fetch()

    assert len(candidates) == 1
    lyra = candidates[0]
    assert lyra.name == "Lyra"
    assert lyra.description == "Lyra public testnet"
    assert lyra.network == "Modular"
    assert lyra.website == "https://lyra.example"
    assert lyra.source_url == "https://messari.io/asset/lyra"
    assert calls[0]["timeout"] == 3
    assert calls[0]["headers"]["x-messari-api-key"] == "k"


def test_fetch_omits_key_header_without_api_key(monkeypatch: Any) -> None:
    calls = _stub_get(monkeypatch, _Response(payload={"data": []}))

    assert MessariAdapter(DiscoveryConfigSettings()).fetch() == []
    assert "x-messari-api-key" not in calls[0]["headers"]


def test_fetch_caps_project_count(monkeypatch: Any) -> None:
    payload = {"data": [_project(f"p{i}", overview="beta") for i in range(150)]}
    _stub_get(monkeypatch, _Response(payload=payload))

    assert len(MessariAdapter(DiscoveryConfigSettings()).fetch()) == messari.MAX_PROJECTS


@pytest.mark.parametrize("payload", [{"data": None}, {"data": {"a": 1}}, [], None])
def test_fetch_tolerates_unexpected_shapes(monkeypatch: Any, payload: Any) -> None:
    _stub_get(monkeypatch, _Response(payload=payload))

    assert MessariAdapter(DiscoveryConfigSettings()).fetch() == []


def test_non_success_status_is_provider_failure(monkeypatch: Any) -> None:
    _stub_get(monkeypatch, _Response(status_code=429))

    with pytest.raises(ProviderFailure, match="429"):
        MessariAdapter(DiscoveryConfigSettings()).fetch()


def test_invalid_json_is_provider_failure(monkeypatch: Any) -> None:
    _stub_get(monkeypatch, _Response(bad_json=True))

    with pytest.raises(ProviderFailure, match="not JSON"):
        MessariAdapter(DiscoveryConfigSettings()).fetch()


def test_transport_error_is_provider_failure(monkeypatch: Any) -> None:
    def _boom(url: str, **kwargs: Any) -> _Response:
        raise requests.ConnectionError("dns failure")

    monkeypatch.setattr(messari.requests, "get", _boom)

    with pytest.raises(ProviderFailure) as excinfo:
        MessariAdapter(DiscoveryConfigSettings()).fetch()
    assert excinfo.value.adapter == "messari"


def test_injected_session_is_used() -> None:
    class _Session:
        def __init__(self) -> None:
            self.urls: list[str] = []

        def get(self, url: str, **kwargs: Any) -> _Response:
            self.urls.append(url)
            return _Response(payload={"data": [_project("monad", description="devnet")]})

    session = _Session()
    settings = DiscoveryConfigSettings(messari_url="https://feed.example/projects")

    candidates = MessariAdapter(settings, session=session).fetch()  # type: ignore[arg-type]

    assert session.urls == ["https://feed.example/projects"]
    assert candidates[0].description == "devnet"


def test_project_to_candidate_falls_back_on_missing_fields() -> None:
    candidate = project_to_candidate({"slug": "ghost", "description": "top-level text"})

    assert candidate.name == "ghost"
    assert candidate.description == "top-level text"
    assert candidate.network is None
    assert candidate.website is None


def test_project_to_candidate_without_name_or_slug() -> None:
    candidate = project_to_candidate({"profile": "garbage"})

    assert candidate.name == messari.UNKNOWN_PROJECT
    assert candidate.source_url is None
