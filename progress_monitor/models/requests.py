"""Pydantic request models for the HTTP trigger surface.

Each HTTP route validates its JSON body against one of these models
before touching a provider or the project store. Validation failures are
reported to the caller as HTTP 400 with the pydantic error list.

Coordinates are strict: JSON numbers only, finite, and within the WGS 84
range. Strings such as ``"36.08"`` are rejected rather than coerced.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, model_validator

from progress_monitor.core.constants import (
    DEFAULT_HISTORY_INTERVAL_DAYS,
    DEFAULT_MONITORING_RADIUS_M,
)

MIN_RADIUS_M = 10.0
MAX_RADIUS_M = 10_000.0


class _RequestModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SnapshotRequest(_RequestModel):
    """Body of ``POST /api/satellite/snapshot``."""

    lat: float = Field(ge=-90, le=90, strict=True, allow_inf_nan=False)
    lng: float = Field(ge=-180, le=180, strict=True, allow_inf_nan=False)
    radius_m: float = Field(
        default=DEFAULT_MONITORING_RADIUS_M,
        alias="radiusMeters",
        ge=MIN_RADIUS_M,
        le=MAX_RADIUS_M,
        allow_inf_nan=False,
    )
    target_date: date | None = Field(default=None, alias="date")


class HistoricalRequest(_RequestModel):
    """Body of ``POST /api/satellite/historical``."""

    lat: float = Field(ge=-90, le=90, strict=True, allow_inf_nan=False)
    lng: float = Field(ge=-180, le=180, strict=True, allow_inf_nan=False)
    radius_m: float = Field(
        default=DEFAULT_MONITORING_RADIUS_M,
        alias="radiusMeters",
        ge=MIN_RADIUS_M,
        le=MAX_RADIUS_M,
        allow_inf_nan=False,
    )
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")
    interval_days: int = Field(default=DEFAULT_HISTORY_INTERVAL_DAYS, alias="intervalDays", ge=1)

    @model_validator(mode="after")
    def _check_range(self) -> HistoricalRequest:
        if self.start_date > self.end_date:
            msg = "startDate must be on or before endDate"
            raise ValueError(msg)
        return self


class BackfillRequest(_RequestModel):
    """Body of ``POST /api/satellite/backfill-project``."""

    project_id: str = Field(alias="projectId", min_length=1)
    start_date: date | None = Field(default=None, alias="startDate")
    end_date: date | None = Field(default=None, alias="endDate")
    interval_days: int = Field(default=15, alias="intervalDays", ge=1)
    force_refresh: bool = Field(default=False, alias="forceRefresh")

    @model_validator(mode="after")
    def _check_range(self) -> BackfillRequest:
        if (
            self.start_date is not None
            and self.end_date is not None
            and self.start_date > self.end_date
        ):
            msg = "startDate must be on or before endDate"
            raise ValueError(msg)
        return self
