"""Pre-vetted candidates used when every acquisition adapter comes back empty."""

from __future__ import annotations

from contracts.models import DiscoveryCandidate

FALLBACK_CANDIDATES: tuple[DiscoveryCandidate, ...] = (
    DiscoveryCandidate(
        name="Lyra Testnet",
        description=(
            "Lyra is building a modular rollup with shared sequencing and is recruiting "
            "early builders for its public testnet."
        ),
        network="Modular",
        website="https://lyra.finance",
        source_url="https://blog.lyra.finance/testnet-announcement",
        from_fallback=True,
    ),
    DiscoveryCandidate(
        name="Monad Testnet",
        description=(
            "Monad is an EVM-compatible L1 focused on parallel execution and currently "
            "running an incentivised testnet."
        ),
        network="Layer1",
        website="https://monad.xyz",
        source_url="https://monad.xyz/testnet",
        from_fallback=True,
    ),
    DiscoveryCandidate(
        name="Dymension RollApp Hub",
        description=(
            "Dymension enables modular rollapps with high throughput. Their latest devnet "
            "invites teams to launch app-chains."
        ),
        network="Modular",
        website="https://dymension.xyz",
        source_url="https://blog.dymension.xyz/devnet",
        from_fallback=True,
    ),
)
