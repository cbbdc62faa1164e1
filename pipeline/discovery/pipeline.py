"""
pipeline/discovery/pipeline.py

Deduplication & classification: candidates from acquisition adapters ->
new, uniquely-slugged discovery records.

One run
-------
1) Call every adapter concurrently. A failing or slow adapter is logged and
   contributes nothing.
2) Nothing at all from the adapters -> use the pre-vetted fallback list.
3) Existing slugs = catalog slugs + already discovered slugs.
4) Adapter candidates need a description mentioning testnet/devnet/beta.
5) Keep the first ``max_candidates_per_run`` qualifying candidates.
6) Per candidate: slug, skip known slugs, classify, summarise, persist, and
   remember the slug for the rest of the run.

A single failed write is logged and reported in ``failed``; the run goes on.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from contracts.errors import (
    CatalogUnavailable,
    InsightsInputUnavailable,
    PersistenceFailure,
    ProviderFailure,
)
from contracts.interfaces import AcquisitionAdapter, CatalogReader, SnapshotStore
from contracts.models import DiscoveryCandidate, DiscoveryRecord, DiscoveryRunResult
from contracts.normalization import normalize_slug, optional_text, summarise
from infra.logging_config import StructuredLogger
from pipeline.concurrency import fan_out
from pipeline.discovery.classification import KEYWORD_TABLE, KeywordTable, classify
from pipeline.discovery.fallback import FALLBACK_CANDIDATES
from version import ENGINE_VERSION, KEYWORD_TABLE_VERSION

_LOGGER = StructuredLogger(__name__)

DEFAULT_MAX_CANDIDATES_PER_RUN = 30
RELEVANCE_PATTERN = re.compile(r"testnet|devnet|beta", re.IGNORECASE)


@dataclass(frozen=True)
class DiscoveryConfig:
    keyword_table: KeywordTable = KEYWORD_TABLE
    fallback_candidates: tuple[DiscoveryCandidate, ...] = FALLBACK_CANDIDATES
    max_candidates_per_run: int = DEFAULT_MAX_CANDIDATES_PER_RUN
    relevance_pattern: re.Pattern[str] = RELEVANCE_PATTERN
    adapter_timeout_seconds: float = 15.0
    existing_slugs_timeout_seconds: float = 10.0


def build_record(candidate: DiscoveryCandidate, slug: str, table: KeywordTable) -> DiscoveryRecord:
    """Classify and summarise ``candidate`` into an unsaved record.

    ``metadata["description"]`` keeps the adapter's text untouched.
    """
    website = optional_text(candidate.website)
    return DiscoveryRecord(
        name=candidate.name,
        slug=slug,
        network=optional_text(candidate.network),
        category=classify(candidate.description, candidate.network, table),
        summary=summarise(optional_text(candidate.description)),
        source_url=optional_text(candidate.source_url) or website,
        metadata={"website": website, "description": candidate.description},
    )


class DiscoveryPipeline:
    def __init__(
        self,
        *,
        adapters: Sequence[AcquisitionAdapter],
        catalog: CatalogReader,
        store: SnapshotStore,
        config: DiscoveryConfig | None = None,
    ) -> None:
        self._adapters = list(adapters)
        self._catalog = catalog
        self._store = store
        self._config = config or DiscoveryConfig()

    @property
    def config(self) -> DiscoveryConfig:
        return self._config

    @property
    def adapters(self) -> tuple[AcquisitionAdapter, ...]:
        return tuple(self._adapters)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def gather_candidates(self) -> tuple[list[DiscoveryCandidate], bool]:
        """Return ``(candidates, used_fallback)``."""
        tasks = {}
        for index, adapter in enumerate(self._adapters):
            key = str(getattr(adapter, "name", "") or f"adapter-{index}")
            if key in tasks:
                key = f"{key}#{index}"
            tasks[key] = lambda adapter=adapter: list(adapter.fetch() or [])

        outcomes = fan_out(tasks, timeout=self._config.adapter_timeout_seconds)
        combined: list[DiscoveryCandidate] = []
        for key, outcome in outcomes.items():
            if not outcome.ok:
                error = outcome.error
                failure = error if isinstance(error, ProviderFailure) else ProviderFailure(key, str(error))
                _LOGGER.warning(
                    "discovery_adapter_failed",
                    adapter=key,
                    timed_out=outcome.timed_out,
                    detail=str(failure),
                    elapsed_ms=outcome.elapsed_ms,
                )
                continue
            fetched = [c for c in outcome.value if isinstance(c, DiscoveryCandidate)]
            _LOGGER.debug("discovery_adapter_fetched", adapter=key, candidates=len(fetched))
            combined.extend(fetched)

        if combined:
            return combined, False
        _LOGGER.info("discovery_fallback_used", candidates=len(self._config.fallback_candidates))
        return list(self._config.fallback_candidates), True

    def existing_slugs(self) -> set[str]:
        outcomes = fan_out(
            {
                "catalog": self._catalog.list_entities,
                "discoveries": self._store.discovery_slugs,
            },
            timeout=self._config.existing_slugs_timeout_seconds,
        )
        catalog = outcomes["catalog"]
        if not catalog.ok:
            raise CatalogUnavailable(f"catalog fetch failed: {catalog.error}") from catalog.error
        discoveries = outcomes["discoveries"]
        if not discoveries.ok:
            raise InsightsInputUnavailable(
                f"discovery slugs fetch failed: {discoveries.error}"
            ) from discoveries.error

        slugs = {entity.slug for entity in catalog.value or []}
        slugs.update(discoveries.value or ())
        return slugs

    def qualifying(self, candidates: Sequence[DiscoveryCandidate], *, used_fallback: bool) -> list[DiscoveryCandidate]:
        pattern = self._config.relevance_pattern
        kept = [
            c
            for c in candidates
            if used_fallback or c.from_fallback or pattern.search(c.description or "")
        ]
        return kept[: max(0, self._config.max_candidates_per_run)]

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run_discovery(self) -> DiscoveryRunResult:
        cfg = self._config
        _LOGGER.info(
            "discovery_run_started",
            adapters=[getattr(a, "name", "?") for a in self._adapters],
            engine_version=ENGINE_VERSION,
            keyword_table_version=KEYWORD_TABLE_VERSION,
        )

        candidates, used_fallback = self.gather_candidates()
        existing = self.existing_slugs()
        selected = self.qualifying(candidates, used_fallback=used_fallback)

        inserted: list[DiscoveryRecord] = []
        failed: list[str] = []
        duplicates = 0
        for candidate in selected:
            slug = normalize_slug(candidate.name)
            if not slug or slug in existing:
                duplicates += 1 if slug else 0
                continue

            record = build_record(candidate, slug, cfg.keyword_table)
            try:
                stored = self._store.insert_discovery(record)
            except Exception as exc:  # noqa: BLE001 - one bad write must not abort the batch
                failure = PersistenceFailure(slug, exc)
                _LOGGER.error("discovery_write_failed", slug=slug, detail=str(failure))
                failed.append(slug)
                continue
            finally:
                existing.add(slug)

            if stored is None:
                duplicates += 1
                _LOGGER.debug("discovery_duplicate_slug", slug=slug)
                continue
            inserted.append(stored)

        result = DiscoveryRunResult(items=tuple(inserted), failed=tuple(failed))
        _LOGGER.info(
            "discovery_run_finished",
            candidates=len(candidates),
            qualifying=len(selected),
            used_fallback=used_fallback,
            added=result.added,
            duplicates=duplicates,
            failed=len(failed),
        )
        return result
