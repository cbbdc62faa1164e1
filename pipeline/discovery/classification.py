"""Keyword classification for discovery candidates.

``KEYWORD_TABLE`` is an ordered priority list: the first category with any
keyword contained in the text wins. Reordering rows changes results.
"""

from __future__ import annotations

from collections.abc import Sequence

KeywordTable = Sequence[tuple[str, Sequence[str]]]

KEYWORD_TABLE: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("ZK", ("zk", "zero-knowledge", "starknet", "scroll", "zksync", "mina")),
    ("Layer2", ("rollup", "optimism", "arbitrum", "op stack", "layer 2", "l2")),
    ("Modular", ("modular", "celestia", "fuel", "dymension", "avail")),
    ("Points", ("points", "airdrop", "campaign", "quest")),
    ("Appchain", ("appchain", "cosmos", "parachain", "substrate")),
)


def classify_text(text: str, table: KeywordTable = KEYWORD_TABLE) -> str | None:
    """First category whose keyword is a substring of ``text`` (case-insensitive)."""
    haystack = (text or "").lower()
    for label, keywords in table:
        for keyword in keywords:
            if keyword.lower() in haystack:
                return label
    return None


def classify(
    description: str | None,
    network: str | None,
    table: KeywordTable = KEYWORD_TABLE,
) -> str | None:
    return classify_text(f"{description or ''} {network or ''}", table)
