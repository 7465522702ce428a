"""Provider factory: builds the imagery provider named by configuration.

Adapters live in a name -> loader registry. A loader is a zero-argument
callable returning the adapter class; the built-in loaders import their
module on first use, so ``earthengine-api`` is never imported unless the
Earth Engine adapter is chosen.

Usage::

    from progress_monitor.providers.factory import get_provider

    provider = get_provider("earth_engine", config, object_store=store)
    snapshot = provider.capture_snapshot(lat, lng, project_id=project.id)

Callers normally pass ``MonitoringConfig.effective_provider``, which folds
``USE_REAL_IMAGERY`` and ``IMAGERY_PROVIDER`` into one name.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from progress_monitor.core.constants import EARTH_ENGINE, MOCK, SENTINEL_HUB
from progress_monitor.models.imagery import ProviderConfig
from progress_monitor.providers.base import ImageryProvider, ProviderError

if TYPE_CHECKING:
    from collections.abc import Callable

    from progress_monitor.storage.objects import ObjectStore

    AdapterLoader = Callable[[], type[ImageryProvider]]

logger = logging.getLogger("progress_monitor.providers.factory")


# ---------------------------------------------------------------------------
# Built-in adapters (imported on first use)
# ---------------------------------------------------------------------------


def _load_mock() -> type[ImageryProvider]:
    from progress_monitor.providers.mock import MockProvider

    return MockProvider


def _load_earth_engine() -> type[ImageryProvider]:
    from progress_monitor.providers.earth_engine import EarthEngineProvider

    return EarthEngineProvider


def _load_sentinel_hub() -> type[ImageryProvider]:
    from progress_monitor.providers.sentinel_hub import SentinelHubProvider

    return SentinelHubProvider


_ADAPTER_REGISTRY: dict[str, AdapterLoader] = {
    MOCK: _load_mock,
    EARTH_ENGINE: _load_earth_engine,
    SENTINEL_HUB: _load_sentinel_hub,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def register_provider(name: str, loader: AdapterLoader) -> None:
    """Add (or replace) the adapter loader for *name*.

    Raises:
        ValueError: If *name* is empty.
    """
    if not name:
        msg = "Provider name must be non-empty"
        raise ValueError(msg)
    _ADAPTER_REGISTRY[name] = loader
    logger.debug("Provider adapter registered | provider=%s", name)


def get_provider(
    name: str,
    config: ProviderConfig | None = None,
    *,
    object_store: ObjectStore | None = None,
) -> ImageryProvider:
    """Instantiate the adapter registered under *name*.

    Args:
        name: ``"mock"``, ``"earth_engine"``, ``"sentinel_hub"`` or a name
            added with ``register_provider``.
        config: Provider settings; defaults to ``ProviderConfig(name=name)``.
        object_store: Where rendered rasters are uploaded (real providers).

    Raises:
        ProviderError: If *name* is unknown or ``config.name`` differs from it.
    """
    loader = _ADAPTER_REGISTRY.get(name)
    if loader is None:
        msg = f"Unknown imagery provider: {name!r}. Available: {', '.join(list_providers())}"
        raise ProviderError(provider=name, message=msg)

    if config is None:
        config = ProviderConfig(name=name)
    elif config.name != name:
        msg = f"ProviderConfig.name {config.name!r} does not match requested provider {name!r}"
        raise ProviderError(provider=name, message=msg)

    logger.info("Creating imagery provider | provider=%s", name)
    return loader()(config, object_store)


def list_providers() -> list[str]:
    """Names of all registered adapters, sorted."""
    return sorted(_ADAPTER_REGISTRY)
