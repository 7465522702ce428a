"""Sentinel Hub adapter: direct Process API rendering.

Requests a 1024 x 1024 true-colour PNG of Sentinel-2 L2A for the area
around a point, then uploads it to object storage. Authentication uses
the OAuth client-credentials flow; tokens are cached in an
``OAuthTokenCache`` and reused until 60 seconds before expiry.

This adapter is an alternative to Earth Engine selected by configuration
(``IMAGERY_PROVIDER=sentinel_hub``); it has no fallback chain.

Parameters (``ProviderConfig.extra_params``):
    ``client_id``: OAuth client id.
    ``client_secret``: OAuth client secret.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from progress_monitor.core.constants import DEFAULT_MONITORING_RADIUS_M
from progress_monitor.models.snapshot import Snapshot
from progress_monitor.providers.base import (
    ImageryProvider,
    ProviderAuthError,
    ProviderRenderError,
    ProviderUploadError,
    today_utc,
)
from progress_monitor.storage.objects import ObjectStoreError
from progress_monitor.utils.blob_paths import build_snapshot_blob_path
from progress_monitor.utils.geo import compute_bounds, compute_date_window

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import date

    from progress_monitor.models.imagery import ProviderConfig
    from progress_monitor.models.snapshot import Bounds
    from progress_monitor.storage.objects import ObjectStore

logger = logging.getLogger("progress_monitor.providers.sentinel_hub")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_API_BASE_URL = "https://services.sentinel-hub.com"
TOKEN_PATH = "/oauth/token"
PROCESS_PATH = "/api/v1/process"

TOKEN_REFRESH_MARGIN_S = 60.0
DEFAULT_TOKEN_TTL_S = 3600.0

DATE_WINDOW_DAYS = 7
MAX_CLOUD_COVER_PCT = 30
OUTPUT_SIZE_PX = 1024
DATA_COLLECTION = "sentinel-2-l2a"

_REQUEST_TIMEOUT_S = 60.0

TRUE_COLOUR_EVALSCRIPT = """//VERSION=3
function setup() {
  return {
    input: [{ bands: ["B04", "B03", "B02"], units: "REFLECTANCE" }],
    output: { bands: 3, sampleType: "UINT8" }
  };
}

function evaluatePixel(sample) {
  return [sample.B04 * 255, sample.B03 * 255, sample.B02 * 255];
}"""


# ---------------------------------------------------------------------------
# Token cache
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AccessToken:
    value: str
    expires_at: float


class OAuthTokenCache:
    """Thread-safe cache for one client-credentials access token.

    ``get(fetch)`` returns the cached token while it has more than
    ``refresh_margin_s`` seconds left, otherwise calls *fetch* (under the
    lock, so concurrent callers trigger a single refresh).

    Args:
        refresh_margin_s: Seconds before expiry at which to refresh.
        clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        *,
        refresh_margin_s: float = TOKEN_REFRESH_MARGIN_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._refresh_margin_s = refresh_margin_s
        self._clock = clock
        self._lock = threading.Lock()
        self._token: AccessToken | None = None

    def get(self, fetch: Callable[[], tuple[str, float]]) -> str:
        """Return a valid token, refreshing it with *fetch* when needed.

        *fetch* returns ``(access_token, expires_in_seconds)``.
        """
        with self._lock:
            now = self._clock()
            if self._token is not None and self._token.expires_at > now + self._refresh_margin_s:
                return self._token.value
            value, expires_in = fetch()
            self._token = AccessToken(value=value, expires_at=now + expires_in)
            return value

    def clear(self) -> None:
        with self._lock:
            self._token = None


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class SentinelHubProvider(ImageryProvider):
    """Sentinel-2 L2A true-colour imagery via the Sentinel Hub Process API.

    Args:
        config: Provider configuration with OAuth client credentials.
        object_store: Destination for rendered PNGs.
        http_client: Optional ``httpx.Client``; one is created if omitted.
        token_cache: Optional shared ``OAuthTokenCache``.
    """

    def __init__(
        self,
        config: ProviderConfig,
        object_store: ObjectStore | None = None,
        *,
        http_client: httpx.Client | None = None,
        token_cache: OAuthTokenCache | None = None,
    ) -> None:
        super().__init__(config, object_store)
        self._base_url = (config.api_base_url or DEFAULT_API_BASE_URL).rstrip("/")
        self._client = http_client or httpx.Client(timeout=_REQUEST_TIMEOUT_S)
        self._tokens = token_cache or OAuthTokenCache()

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
        bounds = compute_bounds(lat, lng, radius_m)
        token = self._tokens.get(self._fetch_token)

        try:
            response = self._client.post(
                f"{self._base_url}{PROCESS_PATH}",
                json=build_process_request(bounds, target),
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            code = exc.response.status_code
            msg = f"Process API returned {code}: {exc.response.text[:200]}"
            raise ProviderRenderError(self.name, msg, retryable=code >= 500 or code == 429) from exc
        except httpx.HTTPError as exc:
            msg = f"Process API request failed: {exc}"
            raise ProviderRenderError(self.name, msg, retryable=True) from exc

        path = build_snapshot_blob_path(project_id, target)
        store = self._require_object_store()
        try:
            image_url = store.upload(path, response.content, "image/png")
        except ObjectStoreError as exc:
            raise ProviderUploadError(self.name, exc.message, retryable=exc.retryable) from exc

        logger.info(
            "Snapshot captured | project=%s | provider=%s | size=%d bytes",
            project_id,
            self.name,
            len(response.content),
        )
        return Snapshot(date=target, image_url=image_url, bounds=bounds)

    def check_status(self) -> dict[str, object]:
        """Attempt a token fetch (or reuse) and report the outcome."""
        status: dict[str, object] = {
            "provider": self.name,
            "configured": bool(
                self.config.param("client_id") and self.config.param("client_secret")
            ),
            "authenticated": False,
        }
        try:
            self._tokens.get(self._fetch_token)
        except ProviderAuthError as exc:
            status["error"] = exc.message
        else:
            status["authenticated"] = True
        return status

    def _fetch_token(self) -> tuple[str, float]:
        """Request a new client-credentials token.

        Raises:
            ProviderAuthError: If credentials are missing or rejected.
        """
        client_id = self.config.param("client_id")
        client_secret = self.config.param("client_secret")
        if not client_id or not client_secret:
            msg = "Sentinel Hub credentials are not configured"
            raise ProviderAuthError(self.name, msg)

        try:
            response = self._client.post(
                f"{self._base_url}{TOKEN_PATH}",
                data={
                    "grant_type": "client_credentials",
                    "client_id": client_id,
                    "client_secret": client_secret,
                },
            )
            response.raise_for_status()
            payload = response.json()
            access_token = str(payload["access_token"])
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            msg = f"Failed to obtain Sentinel Hub access token: {exc}"
            raise ProviderAuthError(self.name, msg) from exc

        expires_in = float(payload.get("expires_in") or DEFAULT_TOKEN_TTL_S)
        logger.info("Sentinel Hub token refreshed | expires_in=%.0fs", expires_in)
        return access_token, expires_in


def build_process_request(bounds: Bounds, target: date) -> dict[str, object]:
    """Build the Process API request body for a true-colour PNG."""
    start, end = compute_date_window(target, DATE_WINDOW_DAYS)
    return {
        "input": {
            "bounds": {"bbox": [bounds.west, bounds.south, bounds.east, bounds.north]},
            "data": [
                {
                    "type": DATA_COLLECTION,
                    "dataFilter": {
                        "timeRange": {
                            "from": f"{start.isoformat()}T00:00:00Z",
                            "to": f"{end.isoformat()}T23:59:59Z",
                        },
                        "maxCloudCoverage": MAX_CLOUD_COVER_PCT,
                    },
                },
            ],
        },
        "output": {
            "width": OUTPUT_SIZE_PX,
            "height": OUTPUT_SIZE_PX,
            "responses": [{"identifier": "default", "format": {"type": "image/png"}}],
        },
        "evalscript": TRUE_COLOUR_EVALSCRIPT,
    }
