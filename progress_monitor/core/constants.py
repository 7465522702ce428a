"""Shared pipeline constants: single source of truth.

Centralises provider names, capture parameters, and storage names that
are used by the job, the providers and the function app.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Imagery provider names
# ---------------------------------------------------------------------------

MOCK: str = "mock"
EARTH_ENGINE: str = "earth_engine"
SENTINEL_HUB: str = "sentinel_hub"

REAL_PROVIDERS: frozenset[str] = frozenset({EARTH_ENGINE, SENTINEL_HUB})
"""Providers that call external imagery APIs and write to object storage."""

# ---------------------------------------------------------------------------
# Monitoring run parameters
# ---------------------------------------------------------------------------

DEFAULT_MONITORING_RADIUS_M: float = 500.0
"""Capture radius used by the scheduled monitoring run."""

DEFAULT_INTER_PROJECT_DELAY_S: float = 2.0
"""Pause between projects to stay within upstream provider quotas."""

DEFAULT_DATE_WINDOW_DAYS: int = 30
"""Half-width of the acquisition window around the target date."""

DEFAULT_HISTORY_INTERVAL_DAYS: int = 30
"""Default spacing between historical samples."""

MONITORING_SCHEDULE: str = "0 0 2 1 * *"
"""NCRONTAB expression: 02:00 UTC on the 1st of every month."""

MONITORING_JOB_NAME: str = "satellite_monitoring"

# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

DEFAULT_SNAPSHOT_CONTAINER: str = "satellite-snapshots"
"""Blob container for rendered snapshot rasters."""

PROJECTS_TABLE: str = "initiatives"
"""Managed data store table that holds monitored projects."""

ACTIVE_PROJECT_STATUSES: tuple[str, ...] = ("active", "published")
