"""Messari projects feed.

Pulls the public project list and maps each entry to a ``DiscoveryCandidate``.
Relevance filtering (testnet / devnet / beta) is left to the pipeline.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import requests

from contracts.errors import ProviderFailure
from contracts.models import DiscoveryCandidate
from contracts.normalization import optional_text
from infra.config import DiscoveryConfigSettings
from pipeline.discovery.registry import register_adapter

ADAPTER_NAME = "messari"
MAX_PROJECTS = 100
ASSET_URL = "https://messari.io/asset/{slug}"
UNKNOWN_PROJECT = "Unknown Project"


def _get(obj: Any, *path: str | int) -> Any:
    """Walk nested mappings/lists; ``None`` as soon as a step is missing."""
    current = obj
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or len(current) <= step:
                return None
            current = current[step]
        else:
            if not isinstance(current, Mapping):
                return None
            current = current.get(step)
        if current is None:
            return None
    return current


def _first(*values: Any) -> str | None:
    for value in values:
        text = optional_text(value) if isinstance(value, (str, int, float)) else None
        if text is not None:
            return text
    return None


def project_to_candidate(item: Mapping[str, Any]) -> DiscoveryCandidate:
    general = _get(item, "profile", "general")
    slug = optional_text(item.get("slug")) if isinstance(item.get("slug"), str) else None
    return DiscoveryCandidate(
        name=_first(item.get("name"), slug) or UNKNOWN_PROJECT,
        description=_first(
            _get(general, "overview"),
            _get(general, "description"),
            item.get("description"),
        ),
        network=_first(_get(general, "sector"), _get(general, "category")),
        website=_first(_get(general, "website"), _get(general, "official_links", 0, "link")),
        source_url=ASSET_URL.format(slug=slug) if slug else None,
    )


@register_adapter(ADAPTER_NAME)
class MessariAdapter:
    """Acquisition adapter over ``GET /api/v2/projects``."""

    name = ADAPTER_NAME

    def __init__(
        self,
        settings: DiscoveryConfigSettings,
        *,
        session: requests.Session | None = None,
    ) -> None:
        self._url = settings.messari_url
        self._api_key = settings.messari_api_key
        self._timeout = settings.adapter_timeout_seconds
        self._session = session

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["x-messari-api-key"] = self._api_key
        return headers

    def fetch(self) -> list[DiscoveryCandidate]:
        getter = self._session.get if self._session is not None else requests.get
        try:
            response = getter(self._url, headers=self._headers(), timeout=self._timeout)
        except requests.RequestException as exc:
            raise ProviderFailure(self.name, f"request failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise ProviderFailure(self.name, f"responded with {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderFailure(self.name, "response body is not JSON") from exc

        data = payload.get("data") if isinstance(payload, Mapping) else None
        if not isinstance(data, list):
            return []
        return [
            project_to_candidate(item)
            for item in data[:MAX_PROJECTS]
            if isinstance(item, Mapping)
        ]
