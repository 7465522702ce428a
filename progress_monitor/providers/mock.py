"""Mock imagery provider for local development and tests.

Produces a snapshot with deterministic bounds, a placeholder image
reference and a random cloud cover in [0, 30]. A short sleep simulates
provider latency. No network or object-storage access.

Parameters (``ProviderConfig.extra_params``):
    ``delay_seconds``: simulated latency, default ``0.1``.
"""

from __future__ import annotations

import logging
import random
import time
from typing import TYPE_CHECKING

from progress_monitor.core.constants import DEFAULT_MONITORING_RADIUS_M
from progress_monitor.models.snapshot import Snapshot
from progress_monitor.providers.base import ImageryProvider, today_utc
from progress_monitor.utils.geo import compute_bounds

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import date

    from progress_monitor.models.imagery import ProviderConfig
    from progress_monitor.storage.objects import ObjectStore

logger = logging.getLogger("progress_monitor.providers.mock")

MAX_MOCK_CLOUD_COVER_PCT = 30.0
DEFAULT_MOCK_DELAY_S = 0.1


class MockProvider(ImageryProvider):
    """Placeholder imagery with no external dependencies.

    Args:
        config: Provider configuration.
        object_store: Ignored; accepted for factory compatibility.
        rng: Random source for cloud cover (seed it for reproducible tests).
        sleep: Sleep function used for the simulated delay.
    """

    def __init__(
        self,
        config: ProviderConfig,
        object_store: ObjectStore | None = None,
        *,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(config, object_store)
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._delay_s = float(config.param("delay_seconds", str(DEFAULT_MOCK_DELAY_S)))

    def capture_snapshot(
        self,
        lat: float,
        lng: float,
        radius_m: float = DEFAULT_MONITORING_RADIUS_M,
        target_date: date | None = None,
        *,
        project_id: str = "",
    ) -> Snapshot:
        target = target_date or today_utc()
        if self._delay_s > 0:
            self._sleep(self._delay_s)

        snapshot = Snapshot(
            date=target,
            image_url=f"mock://snapshots/{lat},{lng}/{target.isoformat()}",
            bounds=compute_bounds(lat, lng, radius_m),
            cloud_coverage_pct=self._rng.uniform(0.0, MAX_MOCK_CLOUD_COVER_PCT),
        )
        logger.debug(
            "Mock snapshot | project=%s | date=%s | cloud=%.1f",
            project_id,
            target.isoformat(),
            snapshot.cloud_coverage_pct,
        )
        return snapshot
