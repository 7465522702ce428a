"""Typed models for satellite snapshots and their progress analysis.

- ``Bounds``: geographic rectangle in WGS 84 degrees
- ``ProgressStatus``: classification outcome enum
- ``ProgressAnalysis``: the analysis attached to a snapshot at creation
- ``Snapshot``: one captured image plus metadata and analysis

Design notes:
- All models are frozen dataclasses; a snapshot is never edited once
  appended to a project's history.
- Serialised form keeps the key names already used in the project store
  (``imageUrl``, ``cloudCoverage``, ``ai_analysis``) so existing histories
  round-trip unchanged.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from typing import Any

from progress_monitor.core.exceptions import ValidationError

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, ValidationError):
    """Raised when a domain model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        ValidationError.__init__(self, formatted)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ProgressStatus(enum.Enum):
    """Physical-progress status assigned to a snapshot.

    Values:
        BASELINE:  First snapshot of a project; nothing to compare against.
        PROGRESS:  Change detected since the previous snapshot.
        STALLED:   No significant change since the previous snapshot.
        COMPLETED: Project judged complete.
    """

    BASELINE = "baseline"
    PROGRESS = "progress"
    STALLED = "stalled"
    COMPLETED = "completed"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Bounds:
    """Geographic rectangle in decimal degrees (EPSG:4326)."""

    north: float
    south: float
    east: float
    west: float

    def __post_init__(self) -> None:
        for name in ("north", "south", "east", "west"):
            _check_finite("Bounds", name, getattr(self, name))
        if self.north < self.south:
            raise ModelValidationError(
                "Bounds", "north", self.north, f"must be >= south ({self.south})"
            )
        if self.east < self.west:
            raise ModelValidationError("Bounds", "east", self.east, f"must be >= west ({self.west})")

    def contains(self, lat: float, lng: float) -> bool:
        """Return ``True`` if (lat, lng) lies inside or on the rectangle."""
        return self.south <= lat <= self.north and self.west <= lng <= self.east

    def to_dict(self) -> dict[str, float]:
        return {"north": self.north, "south": self.south, "east": self.east, "west": self.west}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Bounds:
        return cls(
            north=float(data["north"]),
            south=float(data["south"]),
            east=float(data["east"]),
            west=float(data["west"]),
        )


@dataclass(frozen=True, slots=True)
class ProgressAnalysis:
    """Result of comparing a new snapshot against the previous one.

    Attributes:
        status: Classification outcome.
        notes: Human-readable explanation.
        change_percentage: Estimated change (0-100), only for ``PROGRESS``.
    """

    status: ProgressStatus
    notes: str
    change_percentage: float | None = None

    def __post_init__(self) -> None:
        if self.change_percentage is not None:
            _check_range("ProgressAnalysis", "change_percentage", self.change_percentage, 0, 100)

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {"status": self.status.value, "notes": self.notes}
        if self.change_percentage is not None:
            data["changePercentage"] = self.change_percentage
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProgressAnalysis:
        raw_pct = data.get("changePercentage")
        return cls(
            status=ProgressStatus(str(data.get("status", ""))),
            notes=str(data.get("notes", "")),
            change_percentage=float(raw_pct) if raw_pct is not None else None,
        )


@dataclass(frozen=True, slots=True)
class Snapshot:
    """One satellite capture for one project at one point in time.

    Attributes:
        date: Target date the imagery was requested for.
        image_url: Publicly resolvable image reference.
        bounds: Region covered by the image.
        cloud_coverage_pct: Cloud cover (0-100); 0 when unknown.
        captured_at: When the capture was taken (timezone-aware UTC).
            ``None`` for records written without a capture time.
        analysis: Progress analysis attached when the snapshot was recorded.
    """

    date: date
    image_url: str
    bounds: Bounds
    cloud_coverage_pct: float = 0.0
    captured_at: datetime | None = None
    analysis: ProgressAnalysis | None = None

    def __post_init__(self) -> None:
        _check_non_empty("Snapshot", "image_url", self.image_url)
        _check_range("Snapshot", "cloud_coverage_pct", self.cloud_coverage_pct, 0, 100)
        if self.captured_at is not None and self.captured_at.tzinfo is None:
            raise ModelValidationError(
                "Snapshot", "captured_at", self.captured_at, "must be timezone-aware"
            )

    @property
    def reference_time(self) -> datetime:
        """Time used for change comparison.

        ``captured_at`` when recorded, otherwise midnight UTC of ``date``.
        """
        if self.captured_at is not None:
            return self.captured_at
        return datetime.combine(self.date, time.min, tzinfo=UTC)

    def to_dict(self) -> dict[str, object]:
        """Serialise to the project-store JSON shape."""
        data: dict[str, object] = {
            "date": self.date.isoformat(),
            "imageUrl": self.image_url,
            "cloudCoverage": self.cloud_coverage_pct,
            "bounds": self.bounds.to_dict(),
        }
        if self.captured_at is not None:
            data["captured_at"] = self.captured_at.isoformat()
        if self.analysis is not None:
            data["ai_analysis"] = self.analysis.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Snapshot:
        """Deserialise from the project-store JSON shape.

        Raises:
            ModelValidationError: If a field is invalid.
            KeyError: If ``date``, ``imageUrl`` or ``bounds`` is missing.
        """
        raw_date = str(data["date"])
        try:
            snap_date = date.fromisoformat(raw_date[:10])
        except ValueError as exc:
            raise ModelValidationError("Snapshot", "date", raw_date, "must be ISO 8601") from exc

        captured_at = _parse_timestamp(data.get("captured_at"))
        raw_analysis = data.get("ai_analysis")
        analysis = (
            ProgressAnalysis.from_dict(raw_analysis) if isinstance(raw_analysis, dict) else None
        )
        raw_cloud = data.get("cloudCoverage")

        return cls(
            date=snap_date,
            image_url=str(data["imageUrl"]),
            bounds=Bounds.from_dict(data["bounds"]),
            cloud_coverage_pct=float(raw_cloud) if raw_cloud is not None else 0.0,
            captured_at=captured_at,
            analysis=analysis,
        )


# ---------------------------------------------------------------------------
# Helpers (module-private)
# ---------------------------------------------------------------------------


def _parse_timestamp(raw: object) -> datetime | None:
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError as exc:
        raise ModelValidationError("Snapshot", "captured_at", raw, "must be ISO 8601") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _check_range(model: str, field_name: str, value: float, lo: float, hi: float) -> None:
    """Raise `ModelValidationError` if *value* falls outside [lo, hi]."""
    if math.isnan(value) or value < lo or value > hi:
        raise ModelValidationError(model, field_name, value, f"must be between {lo} and {hi}")


def _check_finite(model: str, field_name: str, value: float) -> None:
    if not math.isfinite(value):
        raise ModelValidationError(model, field_name, value, "must be a finite number")


def _check_non_empty(model: str, field_name: str, value: str) -> None:
    """Raise `ModelValidationError` if *value* is empty or blank."""
    if not value or not value.strip():
        raise ModelValidationError(model, field_name, value, "must not be empty")
