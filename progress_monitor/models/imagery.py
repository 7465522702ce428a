"""Provider configuration model.

A ``ProviderConfig`` is built once from ``MonitoringConfig`` and handed to
the provider factory. Credentials travel in ``extra_params`` so that every
adapter shares a single constructor signature.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from progress_monitor.models.snapshot import ModelValidationError


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Configuration for a specific imagery provider.

    Attributes:
        name: Provider identifier (must match the adapter registry key).
        api_base_url: Base URL override for the provider's API.
        date_window_days: Half-width of the acquisition window, in days.
        extra_params: Provider-specific parameters and credentials
            (e.g. ``project_id``, ``service_account_key``, ``client_id``).
    """

    name: str
    api_base_url: str = ""
    date_window_days: int | None = None
    extra_params: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ModelValidationError("ProviderConfig", "name", self.name, "must not be empty")
        if self.date_window_days is not None and self.date_window_days < 0:
            raise ModelValidationError(
                "ProviderConfig", "date_window_days", self.date_window_days, "must be >= 0"
            )

    def param(self, key: str, default: str = "") -> str:
        """Return ``extra_params[key]`` or *default*."""
        return self.extra_params.get(key, default)
