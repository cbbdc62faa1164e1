"""Registry and discovery for acquisition adapter implementations.

Adapter modules under ``pipeline.discovery.adapters`` register a factory with
``@register_adapter("name")``. The factory receives the discovery settings
section and returns an ``AcquisitionAdapter``.
"""

from __future__ import annotations

import importlib
import pkgutil
from collections.abc import Callable, Iterable

from contracts.interfaces import AcquisitionAdapter
from infra.config import DiscoveryConfigSettings
from infra.logging_config import StructuredLogger

AdapterFactory = Callable[[DiscoveryConfigSettings], AcquisitionAdapter]

_LOGGER = StructuredLogger(__name__)
_ADAPTER_REGISTRY: dict[str, AdapterFactory] = {}


def _normalize_name(name: str) -> str:
    return str(name or "").strip().lower()


def register_adapter(name: str) -> Callable[[AdapterFactory], AdapterFactory]:
    """Register an adapter factory (usually the adapter class) under ``name``."""

    normalized = _normalize_name(name)
    if not normalized:
        raise ValueError("adapter name must be non-empty")

    def _decorator(factory: AdapterFactory) -> AdapterFactory:
        if normalized in _ADAPTER_REGISTRY:
            raise KeyError(f"Adapter already registered for '{normalized}'")
        _ADAPTER_REGISTRY[normalized] = factory
        return factory

    return _decorator


def unregister_adapter(name: str) -> None:
    _ADAPTER_REGISTRY.pop(_normalize_name(name), None)


def list_adapter_names() -> list[str]:
    """Return registered adapter names in deterministic order."""
    return sorted(_ADAPTER_REGISTRY.keys())


class AdapterRegistry:
    """Adapter registry facade with discovery and instantiation helpers."""

    def discover(self, package_name: str = "pipeline.discovery.adapters") -> None:
        """Import all modules under the adapters package."""
        package = importlib.import_module(package_name)
        package_path = getattr(package, "__path__", None)
        if package_path is None:
            return
        prefix = package.__name__ + "."
        for module_info in pkgutil.walk_packages(package_path, prefix):
            importlib.import_module(module_info.name)

    def list_names(self) -> list[str]:
        return list_adapter_names()

    def get_factory(self, name: str) -> AdapterFactory | None:
        key = _normalize_name(name)
        if not key:
            return None
        return _ADAPTER_REGISTRY.get(key)

    def create(self, name: str, settings: DiscoveryConfigSettings) -> AcquisitionAdapter:
        """Instantiate a registered adapter."""
        factory = self.get_factory(name)
        if factory is None:
            raise KeyError(f"Unknown adapter: {name!r}")
        return factory(settings)

    def create_enabled(
        self,
        settings: DiscoveryConfigSettings,
        names: Iterable[str] | None = None,
    ) -> list[AcquisitionAdapter]:
        """Instantiate every enabled adapter; unknown names are logged and skipped."""
        adapters: list[AcquisitionAdapter] = []
        for name in settings.adapters if names is None else names:
            try:
                adapters.append(self.create(name, settings))
            except KeyError:
                _LOGGER.warning(
                    "discovery_adapter_unknown",
                    adapter=name,
                    registered=self.list_names(),
                )
        return adapters
