"""Google Earth Engine adapter: composite imagery with a Landsat fallback.

Renders a sharpened true-colour median composite for the area around a
point and stores it in object storage.

Capture procedure (per collection):
    1. Filter the collection by region, date window and cloud cover (< 20 %).
    2. Median-composite the matching scenes and apply reflectance scaling.
    3. Clip to the region and apply an unsharp mask.
    4. Visualise RGB with per-collection min/max/gamma and render a
       1200 px PNG through a thumbnail URL, fetched with ``httpx``.
    5. Upload to ``satellite/<project>/<date>-<unique>.png``.

Sentinel-2 SR is the primary collection. Any failure on that path
(authentication, no scenes, render, upload) repeats the identical
procedure against Landsat 8 Collection 2 Level 2. If both fail the
caller gets a single ``ProviderFallbackError`` carrying both causes.

Parameters (``ProviderConfig.extra_params``):
    ``project_id``: Google Cloud project registered for Earth Engine.
    ``service_account_key``: service-account JSON key (string).
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import ee
import httpx

from progress_monitor.core.constants import DEFAULT_DATE_WINDOW_DAYS, DEFAULT_MONITORING_RADIUS_M
from progress_monitor.models.snapshot import Snapshot
from progress_monitor.providers.base import (
    ImageryProvider,
    ProviderAuthError,
    ProviderFallbackError,
    ProviderRenderError,
    ProviderSearchError,
    ProviderUploadError,
    today_utc,
)
from progress_monitor.storage.objects import ObjectStoreError
from progress_monitor.utils.blob_paths import build_snapshot_blob_path
from progress_monitor.utils.geo import compute_bounds, compute_date_window

if TYPE_CHECKING:
    from datetime import date

    from progress_monitor.models.imagery import ProviderConfig
    from progress_monitor.models.snapshot import Bounds
    from progress_monitor.storage.objects import ObjectStore

logger = logging.getLogger("progress_monitor.providers.earth_engine")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MIN_CAPTURE_RADIUS_M = 800.0
MAX_CLOUD_COVER_PCT = 20
THUMBNAIL_DIMENSIONS_PX = 1200

SHARPEN_AMOUNT = 0.6
GAUSSIAN_RADIUS_PX = 3
GAUSSIAN_SIGMA_PX = 1.5

_DOWNLOAD_TIMEOUT_S = 60.0


@dataclass(frozen=True, slots=True)
class CollectionSpec:
    """Calibration for one Earth Engine image collection."""

    label: str
    collection_id: str
    cloud_property: str
    bands: tuple[str, str, str]
    scale: float
    offset: float
    vis_min: float
    vis_max: float
    gamma: float


SENTINEL2_SR = CollectionSpec(
    label="sentinel-2",
    collection_id="COPERNICUS/S2_SR_HARMONIZED",
    cloud_property="CLOUDY_PIXEL_PERCENTAGE",
    bands=("B4", "B3", "B2"),
    scale=1 / 10_000,
    offset=0.0,
    vis_min=0.0,
    vis_max=0.28,
    gamma=1.2,
)

LANDSAT8_L2 = CollectionSpec(
    label="landsat-8",
    collection_id="LANDSAT/LC08/C02/T1_L2",
    cloud_property="CLOUD_COVER",
    bands=("SR_B4", "SR_B3", "SR_B2"),
    scale=0.0000275,
    offset=-0.2,
    vis_min=0.0,
    vis_max=0.3,
    gamma=1.3,
)


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class EarthEngineProvider(ImageryProvider):
    """Composite real imagery from Google Earth Engine.

    Args:
        config: Provider configuration with Earth Engine credentials.
        object_store: Destination for rendered PNGs.
        http_client: Optional ``httpx.Client`` for thumbnail downloads.
            A short-lived client is created per download when omitted.
    """

    def __init__(
        self,
        config: ProviderConfig,
        object_store: ObjectStore | None = None,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(config, object_store)
        self._http_client = http_client
        self._init_lock = threading.Lock()
        self._initialized = False
        self._window_days = (
            config.date_window_days
            if config.date_window_days is not None
            else DEFAULT_DATE_WINDOW_DAYS
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def capture_snapshot(
        self,
        lat: float,
        lng: float,
        radius_m: float = DEFAULT_MONITORING_RADIUS_M,
        target_date: date | None = None,
        *,
        project_id: str = "",
    ) -> Snapshot:
        """Capture a sharpened composite, falling back to Landsat 8.

        Raises:
            ProviderFallbackError: If both collections fail.
        """
        target = target_date or today_utc()
        bounds = compute_bounds(lat, lng, max(radius_m, MIN_CAPTURE_RADIUS_M))

        try:
            return self._capture_from(SENTINEL2_SR, bounds, target, project_id)
        except Exception as primary_exc:
            logger.warning(
                "Primary imagery failed, trying fallback | project=%s | collection=%s | error=%s",
                project_id,
                SENTINEL2_SR.label,
                primary_exc,
            )
            try:
                return self._capture_from(LANDSAT8_L2, bounds, target, project_id)
            except Exception as fallback_exc:
                logger.error(
                    "Fallback imagery failed | project=%s | collection=%s | error=%s",
                    project_id,
                    LANDSAT8_L2.label,
                    fallback_exc,
                )
                raise ProviderFallbackError(self.name, primary_exc, fallback_exc) from fallback_exc

    def check_status(self) -> dict[str, object]:
        """Attempt Earth Engine initialisation and report the outcome."""
        status: dict[str, object] = {
            "provider": self.name,
            "configured": bool(
                self.config.param("project_id") and self.config.param("service_account_key")
            ),
            "authenticated": False,
        }
        try:
            self._ensure_initialized()
        except ProviderAuthError as exc:
            status["error"] = exc.message
        else:
            status["authenticated"] = True
        return status

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _ensure_initialized(self) -> None:
        """Initialise the Earth Engine client once per adapter.

        Raises:
            ProviderAuthError: If credentials are missing or rejected.
        """
        with self._init_lock:
            if self._initialized:
                return

            project = self.config.param("project_id")
            raw_key = self.config.param("service_account_key")
            if not project or not raw_key:
                msg = "Earth Engine requires project_id and service_account_key"
                raise ProviderAuthError(self.name, msg)

            try:
                key_data = json.loads(raw_key)
                email = key_data["client_email"]
            except (ValueError, KeyError, TypeError) as exc:
                msg = f"Invalid Earth Engine service-account key: {exc}"
                raise ProviderAuthError(self.name, msg) from exc

            try:
                credentials = ee.ServiceAccountCredentials(email, key_data=raw_key)
                ee.Initialize(credentials=credentials, project=project)
            except Exception as exc:
                msg = f"Earth Engine initialisation failed: {exc}"
                raise ProviderAuthError(self.name, msg) from exc

            self._initialized = True
            logger.info("Earth Engine initialised | project=%s | account=%s", project, email)

    def _capture_from(
        self,
        spec: CollectionSpec,
        bounds: Bounds,
        target: date,
        project_id: str,
    ) -> Snapshot:
        """Run the full render-and-upload procedure against one collection."""
        self._ensure_initialized()

        start, end = compute_date_window(target, self._window_days)
        region = ee.Geometry.Rectangle([bounds.west, bounds.south, bounds.east, bounds.north])

        try:
            collection = (
                ee.ImageCollection(spec.collection_id)
                .filterBounds(region)
                .filterDate(start.isoformat(), end.isoformat())
                .filter(ee.Filter.lt(spec.cloud_property, MAX_CLOUD_COVER_PCT))
            )
            scene_count = int(collection.size().getInfo())
        except Exception as exc:
            msg = f"{spec.label} query failed: {exc}"
            raise ProviderSearchError(self.name, msg, retryable=True) from exc

        if scene_count == 0:
            msg = (
                f"No {spec.label} scenes below {MAX_CLOUD_COVER_PCT}% cloud "
                f"between {start.isoformat()} and {end.isoformat()}"
            )
            raise ProviderSearchError(self.name, msg)

        try:
            thumb_url = _render_thumbnail_url(collection, region, spec)
            cloud_pct = _mean_cloud_cover(collection, spec)
        except Exception as exc:
            msg = f"{spec.label} render failed: {exc}"
            raise ProviderRenderError(self.name, msg, retryable=True) from exc

        image_bytes = self._fetch(thumb_url, spec)
        image_url = self._upload(image_bytes, project_id, target)

        logger.info(
            "Snapshot captured | project=%s | provider=%s | collection=%s | scenes=%d",
            project_id,
            self.name,
            spec.label,
            scene_count,
        )
        return Snapshot(
            date=target,
            image_url=image_url,
            bounds=bounds,
            cloud_coverage_pct=cloud_pct,
        )

    def _fetch(self, url: str, spec: CollectionSpec) -> bytes:
        try:
            if self._http_client is not None:
                response = self._http_client.get(url)
                response.raise_for_status()
                return response.content
            with httpx.Client(timeout=_DOWNLOAD_TIMEOUT_S, follow_redirects=True) as client:
                response = client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as exc:
            msg = f"{spec.label} thumbnail download failed: {exc}"
            raise ProviderRenderError(self.name, msg, retryable=True) from exc

    def _upload(self, data: bytes, project_id: str, target: date) -> str:
        store = self._require_object_store()
        path = build_snapshot_blob_path(project_id, target)
        try:
            return store.upload(path, data, "image/png")
        except ObjectStoreError as exc:
            raise ProviderUploadError(self.name, exc.message, retryable=exc.retryable) from exc


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def _render_thumbnail_url(collection: Any, region: Any, spec: CollectionSpec) -> str:
    """Composite, scale, clip, sharpen and visualise; return a PNG URL."""
    composite = (
        collection.median()
        .select(list(spec.bands))
        .multiply(spec.scale)
        .add(spec.offset)
        .clip(region)
    )
    sharpened = unsharp_mask(composite)
    visual = sharpened.visualize(
        bands=list(spec.bands),
        min=spec.vis_min,
        max=spec.vis_max,
        gamma=spec.gamma,
    )
    return str(
        visual.getThumbURL(
            {"dimensions": THUMBNAIL_DIMENSIONS_PX, "region": region, "format": "png"},
        )
    )


def unsharp_mask(image: Any, amount: float = SHARPEN_AMOUNT) -> Any:
    """Return ``image + (image - gaussian(image)) * amount``."""
    kernel = ee.Kernel.gaussian(radius=GAUSSIAN_RADIUS_PX, sigma=GAUSSIAN_SIGMA_PX, units="pixels")
    blurred = image.convolve(kernel)
    return image.add(image.subtract(blurred).multiply(amount))


def _mean_cloud_cover(collection: Any, spec: CollectionSpec) -> float:
    """Mean scene cloud cover clamped to [0, 100]; 0 when unreported."""
    raw = collection.aggregate_mean(spec.cloud_property).getInfo()
    if raw is None:
        return 0.0
    return min(max(float(raw), 0.0), 100.0)
