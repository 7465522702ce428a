"""Tests for the Project model built from project-store records."""

from __future__ import annotations

import math
import unittest
from typing import Any

import pytest

from progress_monitor.core.exceptions import SnapshotHistoryError
from progress_monitor.models.project import Project
from progress_monitor.models.snapshot import ModelValidationError, Snapshot

_BOUNDS = {"north": 1.0, "south": -1.0, "east": 37.0, "west": 35.0}


def _record(**overrides: Any) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": "proj-1",
        "title": "Molo Borehole",
        "status": "active",
        "location": {"coordinates": {"lat": -0.3031, "lng": 36.08}},
        "satellite_snapshots": [],
    }
    record.update(overrides)
    return record


class TestProjectFromRecord(unittest.TestCase):
    """Project.from_record reads the store shape."""

    def test_basic_fields(self) -> None:
        project = Project.from_record(_record())
        assert project.id == "proj-1"
        assert project.title == "Molo Borehole"
        assert project.status == "active"
        assert project.coordinates() == (-0.3031, 36.08)
        assert project.snapshots == ()
        assert project.last_snapshot is None

    def test_snapshots_parsed_in_order(self) -> None:
        raw = [
            {"date": "2025-01-01", "imageUrl": "a", "bounds": _BOUNDS},
            {"date": "2025-02-01", "imageUrl": "b", "bounds": _BOUNDS},
        ]
        project = Project.from_record(_record(satellite_snapshots=raw))
        assert [s.image_url for s in project.snapshots] == ["a", "b"]
        assert project.last_snapshot is not None
        assert project.last_snapshot.image_url == "b"

    def test_stored_entries_kept_verbatim(self) -> None:
        raw = [
            {"date": "2025-01-01", "imageUrl": "a", "bounds": _BOUNDS, "reviewer": "ops"},
            {"date": "2025-02-01"},
            "not-a-dict",
            {"date": "2025-03-01", "imageUrl": "c", "bounds": _BOUNDS},
        ]
        project = Project.from_record(_record(satellite_snapshots=raw))
        assert project.records == tuple(raw)
        assert project.last_snapshot is not None
        assert project.last_snapshot.image_url == "c"

    def test_appended_passes_history_through(self) -> None:
        raw = [{"date": "2025-01-01", "imageUrl": "", "legacy": True}]
        project = Project.from_record(_record(satellite_snapshots=raw))
        new = Snapshot.from_dict({"date": "2025-02-01", "imageUrl": "b", "bounds": _BOUNDS})

        written = project.appended(new)

        assert written[0] is raw[0]
        assert written[1] == new.to_dict()

    def test_unparseable_last_entry_raises(self) -> None:
        raw = [
            {"date": "2025-01-01", "imageUrl": "a", "bounds": _BOUNDS},
            {"date": "2025-02-01", "imageUrl": "", "bounds": _BOUNDS},
        ]
        project = Project.from_record(_record(satellite_snapshots=raw))
        with self.assertRaises(SnapshotHistoryError) as ctx:
            _ = project.last_snapshot
        assert ctx.exception.code == "MALFORMED_SNAPSHOT_HISTORY"
        assert "Stored snapshot 1 of project proj-1" in str(ctx.exception)

    def test_unknown_analysis_status_raises(self) -> None:
        raw = [
            {
                "date": "2025-01-01",
                "imageUrl": "a",
                "bounds": _BOUNDS,
                "ai_analysis": {"status": "paused", "notes": ""},
            }
        ]
        project = Project.from_record(_record(satellite_snapshots=raw))
        with self.assertRaises(SnapshotHistoryError):
            _ = project.snapshots

    def test_missing_location(self) -> None:
        project = Project.from_record(_record(location=None))
        assert project.coordinates() is None

    def test_null_snapshots(self) -> None:
        assert Project.from_record(_record(satellite_snapshots=None)).snapshots == ()

    def test_empty_id_rejected(self) -> None:
        with self.assertRaises(ModelValidationError):
            Project.from_record(_record(id=""))


class TestProjectCoordinates:
    """Coordinates are kept raw and validated on demand."""

    @pytest.mark.parametrize(
        ("lat", "lng"),
        [
            (None, 36.08),
            ("-0.3", "36.08"),
            (True, 36.08),
            (math.nan, 36.08),
            (-0.3, math.inf),
            (91.0, 0.0),
            (0.0, -180.5),
        ],
    )
    def test_invalid_coordinates(self, lat: object, lng: object) -> None:
        project = Project(id="p", latitude=lat, longitude=lng)
        assert project.coordinates() is None

    def test_integer_coordinates_accepted(self) -> None:
        assert Project(id="p", latitude=0, longitude=36).coordinates() == (0.0, 36.0)
