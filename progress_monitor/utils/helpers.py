"""Shared helper functions used by the triggers and the HTTP routes."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from progress_monitor.core.constants import EARTH_ENGINE, MOCK, SENTINEL_HUB
from progress_monitor.models.imagery import ProviderConfig

if TYPE_CHECKING:
    from progress_monitor.core.config import MonitoringConfig


def build_provider_config(config: MonitoringConfig, name: str | None = None) -> ProviderConfig:
    """Build the ``ProviderConfig`` for *name* (default: the effective provider).

    Only the credentials the named provider needs are copied into
    ``extra_params``.
    """
    provider_name = name or config.effective_provider

    extra: dict[str, str] = {}
    if provider_name == EARTH_ENGINE:
        extra = {
            "project_id": config.gee_project_id,
            "service_account_key": config.gee_service_account_key,
        }
    elif provider_name == SENTINEL_HUB:
        extra = {
            "client_id": config.sentinel_client_id,
            "client_secret": config.sentinel_client_secret,
        }
    elif provider_name == MOCK:
        extra = {"delay_seconds": str(config.mock_delay_s)}

    return ProviderConfig(
        name=provider_name,
        date_window_days=config.date_window_days,
        extra_params=extra,
    )


def utc_now() -> datetime:
    """Return the current timezone-aware UTC time."""
    return datetime.now(UTC)
