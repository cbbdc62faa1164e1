"""Unit tests for the dedup & classification discovery pipeline."""

from __future__ import annotations

import threading

import pytest

from contracts.errors import CatalogUnavailable
from pipeline.discovery import DiscoveryConfig, DiscoveryPipeline, build_record
from pipeline.discovery.classification import KEYWORD_TABLE
from pipeline.discovery.fallback import FALLBACK_CANDIDATES
from tests.factories import make_candidate, make_entity, make_record
from tests.fakes import (
    CrashingAdapter,
    FailingAdapter,
    FailingCatalog,
    InMemoryCatalog,
    InMemorySnapshotStore,
    StaticAdapter,
)


def _pipeline(adapters, *, catalog=None, store=None, **config):  # type: ignore[no-untyped-def]
    catalog = catalog or InMemoryCatalog()
    store = store or InMemorySnapshotStore(catalog=catalog)
    pipeline = DiscoveryPipeline(
        adapters=adapters,
        catalog=catalog,
        store=store,
        config=DiscoveryConfig(**config),
    )
    return pipeline, store


def test_new_candidate_is_classified_and_persisted() -> None:
    candidate = make_candidate(
        "Lyra Testnet",
        description="Lyra is building a modular stack and opened its public testnet.",
        website="https://lyra.example",
    )
    pipeline, store = _pipeline([StaticAdapter("static", [candidate])])

    result = pipeline.run_discovery()

    assert result.added == 1
    record = result.items[0]
    assert record.slug == "lyra-testnet"
    assert record.category == "Modular"
    assert record.source_url == "https://lyra.example"
    assert record.metadata == {"website": "https://lyra.example", "description": candidate.description}
    assert [r.slug for r in store.discoveries] == ["lyra-testnet"]


def test_modular_rollup_candidate_is_persisted_as_layer2() -> None:
    # "rollup" sits in the Layer2 row, which outranks the Modular row.
    candidate = make_candidate(
        "Lyra Testnet",
        description="Lyra: a modular rollup opening its public testnet",
    )
    pipeline, store = _pipeline([StaticAdapter("static", [candidate])])

    result = pipeline.run_discovery()

    assert result.added == 1
    assert result.items[0].slug == "lyra-testnet"
    assert result.items[0].category == "Layer2"
    assert [r.category for r in store.discoveries] == ["Layer2"]


def test_metadata_keeps_the_raw_description() -> None:
    raw = "  Padded devnet announcement.  \n"
    pipeline, _store = _pipeline([StaticAdapter("static", [make_candidate("Padded", description=raw)])])

    record = pipeline.run_discovery().items[0]

    assert record.metadata["description"] == raw
    assert record.summary == "Padded devnet announcement."


def test_second_run_adds_nothing() -> None:
    adapter = StaticAdapter("static", [make_candidate("Monad Testnet")])
    pipeline, store = _pipeline([adapter])

    first = pipeline.run_discovery()
    second = pipeline.run_discovery()

    assert first.added == 1
    assert second.added == 0
    assert second.to_wire() == {"added": 0, "items": [], "failed": []}
    assert len(store.discoveries) == 1


def test_catalog_slug_is_never_rediscovered() -> None:
    catalog = InMemoryCatalog([make_entity("fuel-beta")])
    adapter = StaticAdapter("static", [make_candidate("Fuel Beta"), make_candidate("Berachain bArtio")])
    pipeline, store = _pipeline([adapter], catalog=catalog)

    result = pipeline.run_discovery()

    assert [r.slug for r in result.items] == ["berachain-bartio"]
    assert "fuel-beta" not in store.insert_attempts


def test_same_run_slug_collision_keeps_first() -> None:
    adapter = StaticAdapter(
        "static",
        [
            make_candidate("Nova Net", description="first devnet listing"),
            make_candidate("nova-net!", description="second devnet listing"),
        ],
    )
    pipeline, store = _pipeline([adapter])

    result = pipeline.run_discovery()

    assert result.added == 1
    assert result.items[0].summary == "first devnet listing"
    assert store.insert_attempts == ["nova-net"]


def test_candidates_merge_across_adapters() -> None:
    adapters = [
        StaticAdapter("one", [make_candidate("Alpha Chain")]),
        StaticAdapter("two", [make_candidate("Beta Chain")]),
    ]
    pipeline, _ = _pipeline(adapters)

    result = pipeline.run_discovery()

    assert {r.slug for r in result.items} == {"alpha-chain", "beta-chain"}


def test_relevance_filter_drops_unrelated_descriptions() -> None:
    adapter = StaticAdapter(
        "static",
        [
            make_candidate("Mainnet Only", description="A production DEX on mainnet."),
            make_candidate("No Description", description=None),
            make_candidate("Beta Program", description="Closed BETA for early users."),
        ],
    )
    pipeline, _ = _pipeline([adapter])

    result = pipeline.run_discovery()

    assert [r.slug for r in result.items] == ["beta-program"]


@pytest.mark.parametrize("adapter", [FailingAdapter(), CrashingAdapter()])
def test_failing_adapter_falls_back_to_vetted_list(adapter) -> None:  # type: ignore[no-untyped-def]
    pipeline, _ = _pipeline([adapter])

    result = pipeline.run_discovery()

    assert [r.slug for r in result.items] == ["lyra-testnet", "monad-testnet", "dymension-rollapp-hub"]
    assert result.failed == ()


def test_fallback_is_not_used_when_any_adapter_returns_candidates() -> None:
    adapters = [FailingAdapter(), StaticAdapter("ok", [make_candidate("Only One")])]
    pipeline, _ = _pipeline(adapters)

    result = pipeline.run_discovery()

    assert [r.slug for r in result.items] == ["only-one"]


def test_irrelevant_candidates_do_not_trigger_fallback() -> None:
    adapter = StaticAdapter("static", [make_candidate("Mainnet Dex", description="production swap")])
    pipeline, _ = _pipeline([adapter])

    result = pipeline.run_discovery()

    assert result.added == 0


def test_slow_adapter_times_out_and_fallback_applies() -> None:
    slow = StaticAdapter("slow", [make_candidate("Too Late")], delay=0.5)
    pipeline, _ = _pipeline([slow], adapter_timeout_seconds=0.05)

    candidates, used_fallback = pipeline.gather_candidates()

    assert used_fallback is True
    assert candidates == list(FALLBACK_CANDIDATES)


def test_duplicate_adapter_names_are_all_called() -> None:
    adapters = [
        StaticAdapter("dup", [make_candidate("First Chain")]),
        StaticAdapter("dup", [make_candidate("Second Chain")]),
    ]
    pipeline, _ = _pipeline(adapters)

    candidates, used_fallback = pipeline.gather_candidates()

    assert used_fallback is False
    assert sorted(c.name for c in candidates) == ["First Chain", "Second Chain"]


def test_run_is_capped_per_configuration() -> None:
    adapter = StaticAdapter("bulk", [make_candidate(f"Chain {i}") for i in range(40)])
    pipeline, _ = _pipeline([adapter], max_candidates_per_run=10)

    result = pipeline.run_discovery()

    assert result.added == 10
    assert result.items[-1].slug == "chain-9"


def test_default_cap_is_thirty() -> None:
    adapter = StaticAdapter("bulk", [make_candidate(f"Chain {i}") for i in range(40)])
    pipeline, _ = _pipeline([adapter])

    assert pipeline.run_discovery().added == 30


def test_write_failure_is_isolated_and_reported() -> None:
    catalog = InMemoryCatalog()
    store = InMemorySnapshotStore(catalog=catalog, fail_slugs={"broken-chain"})
    adapter = StaticAdapter(
        "static",
        [make_candidate("Good Chain"), make_candidate("Broken Chain"), make_candidate("Other Chain")],
    )
    pipeline, _ = _pipeline([adapter], catalog=catalog, store=store)

    result = pipeline.run_discovery()

    assert [r.slug for r in result.items] == ["good-chain", "other-chain"]
    assert result.failed == ("broken-chain",)
    assert result.to_wire()["failed"] == ["broken-chain"]


def test_existing_discovery_is_skipped_before_write() -> None:
    catalog = InMemoryCatalog()
    store = InMemorySnapshotStore([make_record("known-chain")], catalog=catalog)
    adapter = StaticAdapter("static", [make_candidate("Known Chain")])
    pipeline, _ = _pipeline([adapter], catalog=catalog, store=store)

    result = pipeline.run_discovery()

    assert result.added == 0
    assert store.insert_attempts == []


def test_name_without_slug_characters_is_skipped() -> None:
    adapter = StaticAdapter("static", [make_candidate("!!!", description="testnet !!!")])
    pipeline, store = _pipeline([adapter])

    assert pipeline.run_discovery().added == 0
    assert store.insert_attempts == []


def test_catalog_failure_aborts_the_run() -> None:
    adapter = StaticAdapter("static", [make_candidate("Any Chain")])
    pipeline, store = _pipeline([adapter], catalog=FailingCatalog(), store=InMemorySnapshotStore())

    with pytest.raises(CatalogUnavailable):
        pipeline.run_discovery()

    assert store.insert_attempts == []


def test_concurrent_runs_never_duplicate_a_slug() -> None:
    catalog = InMemoryCatalog()
    store = InMemorySnapshotStore(catalog=catalog)
    candidates = [make_candidate(f"Parallel {i}") for i in range(12)]
    results = []

    def _run() -> None:
        pipeline, _ = _pipeline([StaticAdapter("static", candidates)], catalog=catalog, store=store)
        results.append(pipeline.run_discovery())

    threads = [threading.Thread(target=_run) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    slugs = [r.slug for r in store.discoveries]
    assert len(slugs) == len(set(slugs)) == 12
    assert sum(result.added for result in results) == 12


def test_build_record_truncates_long_descriptions() -> None:
    candidate = make_candidate("Long Chain", description="  " + "x" * 400 + "  ")

    record = build_record(candidate, "long-chain", KEYWORD_TABLE)

    assert len(record.summary) == 320
    assert record.summary.endswith("...")
    assert record.metadata["description"] == candidate.description


def test_build_record_prefers_explicit_source_url() -> None:
    candidate = make_candidate(
        "Sourced",
        website="https://sourced.example",
        source_url="https://blog.sourced.example/testnet",
    )

    record = build_record(candidate, "sourced", KEYWORD_TABLE)

    assert record.source_url == "https://blog.sourced.example/testnet"
    assert record.metadata["website"] == "https://sourced.example"
