"""Monitoring configuration loaded from environment variables.

Azure Functions app settings (or ``local.settings.json`` for local dev)
are the source of truth. Configuration is read once, when the job and its
provider are constructed.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if a numeric value is
    out of range, or if a real imagery provider is selected without the
    credentials it needs. A missing credential never silently produces
    placeholder imagery: either ``USE_REAL_IMAGERY`` is off and the mock
    provider is used, or startup fails with an actionable error.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass

from progress_monitor.core.constants import (
    DEFAULT_DATE_WINDOW_DAYS,
    DEFAULT_INTER_PROJECT_DELAY_S,
    DEFAULT_MONITORING_RADIUS_M,
    DEFAULT_SNAPSHOT_CONTAINER,
    EARTH_ENGINE,
    MOCK,
    REAL_PROVIDERS,
    SENTINEL_HUB,
)
from progress_monitor.core.exceptions import PipelineError

_TRUTHY = frozenset({"1", "true", "yes", "on"})


class ConfigValidationError(PipelineError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class MonitoringConfig:
    """Immutable monitoring configuration.

    Attributes:
        use_real_imagery: Feature flag; when false the mock provider is used.
        imagery_provider: Real backend (``earth_engine`` or ``sentinel_hub``).
        monitoring_radius_m: Capture radius for scheduled runs, in metres.
        inter_project_delay_s: Pause between projects, in seconds.
        date_window_days: Half-width of the acquisition window, in days.
        mock_delay_s: Simulated latency of the mock provider, in seconds.
        snapshot_container: Blob container for rendered snapshots.
        snapshot_public_base_url: Public URL prefix for uploaded snapshots
            (empty to use the blob URL).
        gee_project_id: Google Cloud project for Earth Engine.
        gee_service_account_key: Service-account JSON key for Earth Engine.
        sentinel_client_id: Sentinel Hub OAuth client id.
        sentinel_client_secret: Sentinel Hub OAuth client secret.
        supabase_url: Base URL of the managed project store.
        supabase_service_key: Service-role key for the project store.
    """

    use_real_imagery: bool = False
    imagery_provider: str = EARTH_ENGINE
    monitoring_radius_m: float = DEFAULT_MONITORING_RADIUS_M
    inter_project_delay_s: float = DEFAULT_INTER_PROJECT_DELAY_S
    date_window_days: int = DEFAULT_DATE_WINDOW_DAYS
    mock_delay_s: float = 0.1
    snapshot_container: str = DEFAULT_SNAPSHOT_CONTAINER
    snapshot_public_base_url: str = ""
    gee_project_id: str = ""
    gee_service_account_key: str = ""
    sentinel_client_id: str = ""
    sentinel_client_secret: str = ""
    supabase_url: str = ""
    supabase_service_key: str = ""

    @property
    def effective_provider(self) -> str:
        """Return the provider the job should use after the feature flag."""
        return self.imagery_provider if self.use_real_imagery else MOCK

    @classmethod
    def from_env(cls) -> MonitoringConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or a selected
                real provider is missing credentials.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``MONITORING_RADIUS_M=abc``).
        """
        config = cls(
            use_real_imagery=os.getenv("USE_REAL_IMAGERY", "false").strip().lower() in _TRUTHY,
            imagery_provider=os.getenv("IMAGERY_PROVIDER", EARTH_ENGINE).strip().lower(),
            monitoring_radius_m=float(os.getenv("MONITORING_RADIUS_M", "500")),
            inter_project_delay_s=float(os.getenv("INTER_PROJECT_DELAY_S", "2")),
            date_window_days=int(os.getenv("IMAGERY_DATE_WINDOW_DAYS", "30")),
            mock_delay_s=float(os.getenv("MOCK_DELAY_S", "0.1")),
            snapshot_container=os.getenv("SNAPSHOT_CONTAINER", DEFAULT_SNAPSHOT_CONTAINER),
            snapshot_public_base_url=os.getenv("SNAPSHOT_PUBLIC_BASE_URL", ""),
            gee_project_id=os.getenv("GEE_PROJECT_ID", ""),
            gee_service_account_key=os.getenv("GEE_SERVICE_ACCOUNT_KEY", ""),
            sentinel_client_id=os.getenv("SENTINEL_CLIENT_ID", ""),
            sentinel_client_secret=os.getenv("SENTINEL_CLIENT_SECRET", ""),
            supabase_url=os.getenv("SUPABASE_URL", ""),
            supabase_service_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY", ""),
        )
        _validate(config)
        return config


def _validate(config: MonitoringConfig) -> None:
    """Validate ranges and provider credentials.  Raises ``ConfigValidationError``."""
    if config.imagery_provider not in REAL_PROVIDERS:
        raise ConfigValidationError(
            "IMAGERY_PROVIDER",
            config.imagery_provider,
            f"must be one of {', '.join(sorted(REAL_PROVIDERS))}",
        )

    if not math.isfinite(config.monitoring_radius_m) or config.monitoring_radius_m <= 0:
        raise ConfigValidationError(
            "MONITORING_RADIUS_M",
            config.monitoring_radius_m,
            "must be a finite number > 0 (metres)",
        )

    if not math.isfinite(config.inter_project_delay_s) or config.inter_project_delay_s < 0:
        raise ConfigValidationError(
            "INTER_PROJECT_DELAY_S",
            config.inter_project_delay_s,
            "must be a finite number >= 0 (seconds)",
        )

    if config.date_window_days < 0:
        raise ConfigValidationError(
            "IMAGERY_DATE_WINDOW_DAYS",
            config.date_window_days,
            "must be >= 0 (days)",
        )

    if not math.isfinite(config.mock_delay_s) or config.mock_delay_s < 0:
        raise ConfigValidationError(
            "MOCK_DELAY_S",
            config.mock_delay_s,
            "must be a finite number >= 0 (seconds)",
        )

    if not config.snapshot_container:
        raise ConfigValidationError(
            "SNAPSHOT_CONTAINER",
            config.snapshot_container,
            "must not be empty",
        )

    if not config.use_real_imagery:
        return

    if config.imagery_provider == EARTH_ENGINE:
        if not config.gee_project_id:
            raise ConfigValidationError(
                "GEE_PROJECT_ID",
                config.gee_project_id,
                "required when IMAGERY_PROVIDER=earth_engine",
            )
        if not config.gee_service_account_key:
            raise ConfigValidationError(
                "GEE_SERVICE_ACCOUNT_KEY",
                "<unset>",
                "required when IMAGERY_PROVIDER=earth_engine",
            )

    if config.imagery_provider == SENTINEL_HUB and not (
        config.sentinel_client_id and config.sentinel_client_secret
    ):
        raise ConfigValidationError(
            "SENTINEL_CLIENT_ID",
            config.sentinel_client_id,
            "SENTINEL_CLIENT_ID and SENTINEL_CLIENT_SECRET are required "
            "when IMAGERY_PROVIDER=sentinel_hub",
        )
