"""ImageryProvider abstract base class.

Defines the contract that every imagery provider adapter must implement.
The monitoring job and the HTTP routes interact exclusively with this
interface; they never know which concrete provider is behind it.

Capabilities:
    1. ``capture_snapshot(lat, lng, radius_m, target_date)``: one snapshot
       for one point and date.
    2. ``get_historical_snapshots(lat, lng, radius_m, start, end, interval)``:
       a series of snapshots, implemented once here via the historical
       sampler.
    3. ``check_status()``: configuration and authentication health.

Concrete adapters: ``MockProvider``, ``EarthEngineProvider``,
``SentinelHubProvider``.
"""

from __future__ import annotations

import abc
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from progress_monitor.activities.sample_history import sample_history
from progress_monitor.core.constants import (
    DEFAULT_HISTORY_INTERVAL_DAYS,
    DEFAULT_MONITORING_RADIUS_M,
)
from progress_monitor.core.exceptions import PipelineError

if TYPE_CHECKING:
    from datetime import date

    from progress_monitor.models.imagery import ProviderConfig
    from progress_monitor.models.snapshot import Snapshot
    from progress_monitor.storage.objects import ObjectStore


class ImageryProvider(abc.ABC):
    """Abstract base class for imagery provider adapters.

    Concrete implementations must override ``capture_snapshot``. The
    constructor receives a ``ProviderConfig`` carrying credentials and
    provider-specific parameters, and an optional ``ObjectStore`` used by
    adapters that render rasters.

    Example usage::

        provider = get_provider("mock")
        snapshot = provider.capture_snapshot(-0.3031, 36.08, project_id="p-1")
    """

    def __init__(
        self,
        config: ProviderConfig,
        object_store: ObjectStore | None = None,
    ) -> None:
        self._config = config
        self._object_store = object_store

    @property
    def name(self) -> str:
        """Return the provider name from configuration."""
        return self._config.name

    @property
    def config(self) -> ProviderConfig:
        """Return the provider configuration (read-only)."""
        return self._config

    # ------------------------------------------------------------------
    # Abstract methods
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def capture_snapshot(
        self,
        lat: float,
        lng: float,
        radius_m: float = DEFAULT_MONITORING_RADIUS_M,
        target_date: date | None = None,
        *,
        project_id: str = "",
    ) -> Snapshot:
        """Capture one snapshot of the area around (lat, lng).

        Args:
            lat: Latitude in decimal degrees.
            lng: Longitude in decimal degrees.
            radius_m: Capture radius in metres.
            target_date: Acquisition date; today (UTC) when ``None``.
            project_id: Used to build object-storage paths.

        Returns:
            A ``Snapshot`` whose bounds enclose (lat, lng). ``captured_at``
            and ``analysis`` are left for the caller to stamp.

        Raises:
            ProviderError: On authentication, search, render or upload failure.
        """

    # ------------------------------------------------------------------
    # Shared behaviour
    # ------------------------------------------------------------------

    def get_historical_snapshots(
        self,
        lat: float,
        lng: float,
        radius_m: float,
        start: date,
        end: date,
        interval_days: int = DEFAULT_HISTORY_INTERVAL_DAYS,
        *,
        project_id: str = "",
    ) -> list[Snapshot]:
        """Capture one snapshot every *interval_days* across ``[start, end]``.

        Failed samples are skipped. See ``sample_history``.

        Raises:
            SamplingRangeError: If ``start > end`` or ``interval_days < 1``.
        """
        return sample_history(
            self.capture_snapshot,
            lat,
            lng,
            radius_m,
            start,
            end,
            interval_days,
            project_id=project_id,
        )

    def check_status(self) -> dict[str, object]:
        """Return ``{provider, configured, authenticated}``.

        Adapters that need credentials override this to attempt
        authentication and add an ``error`` key on failure.
        """
        return {"provider": self.name, "configured": True, "authenticated": True}

    def _require_object_store(self) -> ObjectStore:
        if self._object_store is None:
            msg = "No object store configured for rendered snapshots"
            raise ProviderUploadError(self.name, msg)
        return self._object_store


def today_utc() -> date:
    """Return the current UTC calendar date."""
    return datetime.now(UTC).date()


# ---------------------------------------------------------------------------
# Provider exceptions
# ---------------------------------------------------------------------------


class ProviderError(PipelineError):
    """Raised by an imagery adapter when a capture cannot be completed.

    Attributes:
        provider: Adapter name, shown as a ``[provider]`` prefix.
        message: What failed.
        retryable: Whether a later run could succeed.
    """

    default_stage = "capture_snapshot"
    default_code = "PROVIDER_ERROR"

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        retryable: bool = False,
    ) -> None:
        super().__init__(message, retryable=retryable)
        self.provider = provider

    def __str__(self) -> str:
        return f"[{self.provider}] {self.message}"


class ProviderAuthError(ProviderError):
    """Authentication or initialisation failure with the provider API."""

    default_code = "PROVIDER_AUTH_FAILED"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(provider, message, retryable=False)


class ProviderSearchError(ProviderError):
    """No usable scenes matched the location, window and cloud filter."""

    default_code = "PROVIDER_SEARCH_FAILED"


class ProviderRenderError(ProviderError):
    """Compositing, rendering or fetching the rendered image failed."""

    default_code = "PROVIDER_RENDER_FAILED"


class ProviderUploadError(ProviderError):
    """The rendered image could not be written to object storage."""

    default_stage = "upload_snapshot"
    default_code = "PROVIDER_UPLOAD_FAILED"


class ProviderFallbackError(ProviderError):
    """Both the primary and the fallback imagery paths failed.

    Attributes:
        primary_error: The exception raised by the primary path.
        fallback_error: The exception raised by the fallback path.
    """

    default_code = "PROVIDER_FALLBACK_EXHAUSTED"

    def __init__(
        self,
        provider: str,
        primary_error: BaseException,
        fallback_error: BaseException,
    ) -> None:
        self.primary_error = primary_error
        self.fallback_error = fallback_error
        retryable = all(
            isinstance(err, PipelineError) and err.retryable
            for err in (primary_error, fallback_error)
        )
        msg = (
            f"Primary imagery failed ({primary_error}); "
            f"fallback imagery failed ({fallback_error})"
        )
        super().__init__(provider, msg, retryable=retryable)
