"""Data model for a monitored project, as read from the project store.

Projects are owned by the managed data store; this subsystem reads them
and appends to their snapshot history. Coordinates are kept exactly as
stored so that invalid records can be detected and skipped rather than
failing at construction time.

Stored snapshot entries are kept as the raw JSON objects the store
returned. Appending writes them back unchanged, so entries this code
cannot parse and keys it does not know survive every run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from progress_monitor.core.exceptions import SnapshotHistoryError
from progress_monitor.models.snapshot import ModelValidationError, Snapshot
from progress_monitor.utils.geo import validate_coordinates


@dataclass(frozen=True, slots=True)
class Project:
    """A development project whose physical progress is monitored.

    Attributes:
        id: Store identifier.
        title: Display title.
        status: Publication status (``"active"``, ``"published"``, ...).
        latitude: Raw latitude value from the store (unvalidated).
        longitude: Raw longitude value from the store (unvalidated).
        records: Stored snapshot entries, oldest first, exactly as read.
    """

    id: str
    title: str = ""
    status: str = ""
    latitude: object = None
    longitude: object = None
    records: tuple[Any, ...] = field(default_factory=tuple)

    def coordinates(self) -> tuple[float, float] | None:
        """Return validated ``(lat, lng)``, or ``None`` if unusable."""
        return validate_coordinates(self.latitude, self.longitude)

    @property
    def last_snapshot(self) -> Snapshot | None:
        """The most recently appended entry, parsed.

        Raises:
            SnapshotHistoryError: If that entry cannot be parsed.
        """
        if not self.records:
            return None
        return _parse(self.id, len(self.records) - 1, self.records[-1])

    @property
    def snapshots(self) -> tuple[Snapshot, ...]:
        """Every stored entry, parsed.

        Raises:
            SnapshotHistoryError: On the first entry that cannot be parsed.
        """
        return tuple(_parse(self.id, i, raw) for i, raw in enumerate(self.records))

    def appended(self, snapshot: Snapshot) -> list[Any]:
        """Stored entries followed by *snapshot* in store shape."""
        return [*self.records, snapshot.to_dict()]

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Project:
        """Build a project from a project-store row.

        Coordinates are read from ``location.coordinates.{lat,lng}``.

        Raises:
            ModelValidationError: If the record has no identifier.
        """
        project_id = str(record.get("id") or "").strip()
        if not project_id:
            raise ModelValidationError("Project", "id", record.get("id"), "must not be empty")

        location = record.get("location")
        coords = location.get("coordinates") if isinstance(location, dict) else None
        if not isinstance(coords, dict):
            coords = {}

        return cls(
            id=project_id,
            title=str(record.get("title") or ""),
            status=str(record.get("status") or ""),
            latitude=coords.get("lat"),
            longitude=coords.get("lng"),
            records=tuple(record.get("satellite_snapshots") or ()),
        )


def _parse(project_id: str, index: int, raw: Any) -> Snapshot:
    try:
        return Snapshot.from_dict(raw)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        msg = f"Stored snapshot {index} of project {project_id} cannot be parsed: {exc}"
        raise SnapshotHistoryError(msg) from exc
