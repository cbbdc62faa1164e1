"""Discovery: acquisition adapters, dedup, keyword classification."""

from pipeline.discovery.classification import KEYWORD_TABLE, classify, classify_text
from pipeline.discovery.fallback import FALLBACK_CANDIDATES
from pipeline.discovery.pipeline import (
    DEFAULT_MAX_CANDIDATES_PER_RUN,
    RELEVANCE_PATTERN,
    DiscoveryConfig,
    DiscoveryPipeline,
    build_record,
)
from pipeline.discovery.registry import AdapterRegistry, register_adapter

__all__ = [
    "DEFAULT_MAX_CANDIDATES_PER_RUN",
    "FALLBACK_CANDIDATES",
    "KEYWORD_TABLE",
    "RELEVANCE_PATTERN",
    "AdapterRegistry",
    "DiscoveryConfig",
    "DiscoveryPipeline",
    "build_record",
    "classify",
    "classify_text",
    "register_adapter",
]
