"""Tests for the backfill activity."""

from __future__ import annotations

from datetime import UTC, date, datetime
from unittest.mock import MagicMock

import pytest

from progress_monitor.activities.backfill_project import backfill_project
from progress_monitor.core.constants import MONITORING_JOB_NAME
from progress_monitor.core.exceptions import (
    InvalidCoordinatesError,
    SamplingRangeError,
    SnapshotHistoryError,
)
from progress_monitor.core.run_lock import RunInProgressError, SingleFlight
from progress_monitor.models.snapshot import (
    Bounds,
    ProgressAnalysis,
    ProgressStatus,
    Snapshot,
)
from progress_monitor.orchestrators.monitoring_job import MonitoringJob
from progress_monitor.providers.base import ProviderSearchError
from progress_monitor.storage.projects import ProjectNotFoundError

NOW = datetime(2025, 6, 30, 12, 0, tzinfo=UTC)
START = date(2025, 1, 1)
END = date(2025, 3, 1)


def _clock() -> datetime:
    return NOW


def _existing(day: date) -> Snapshot:
    return Snapshot(
        date=day,
        image_url=f"mock://existing/{day.isoformat()}",
        bounds=Bounds(north=0.0, south=-1.0, east=37.0, west=36.0),
        analysis=ProgressAnalysis(ProgressStatus.BASELINE, "kept as recorded"),
    )


class TestBackfill:
    def test_default_range_is_last_180_days(self, project_store, mock_provider) -> None:
        result = backfill_project("p-1", project_store, mock_provider, clock=_clock)

        assert result.end == date(2025, 6, 30)
        assert result.start == date(2025, 1, 1)
        assert result.created == 13
        assert result.total_snapshots == 13
        assert result.errors == 0

    def test_history_is_classified_in_order(self, project_store, mock_provider) -> None:
        backfill_project(
            "p-1",
            project_store,
            mock_provider,
            start=START,
            end=END,
            interval_days=30,
            clock=_clock,
        )

        history = project_store.projects["p-1"].snapshots
        assert [s.date for s in history] == [date(2025, 1, 1), date(2025, 1, 31)]
        assert history[0].analysis.status is ProgressStatus.BASELINE
        assert history[1].analysis.status is ProgressStatus.PROGRESS
        assert history[1].analysis.change_percentage == 60
        assert history[0].captured_at == datetime(2025, 1, 1, tzinfo=UTC)

    def test_short_interval_is_stalled(self, project_store, mock_provider) -> None:
        backfill_project(
            "p-1", project_store, mock_provider, start=START, end=END, clock=_clock
        )

        second = project_store.projects["p-1"].snapshots[1]
        assert second.analysis.status is ProgressStatus.STALLED
        assert "15 days ago" in second.analysis.notes

    def test_existing_dates_are_skipped(
        self, store_factory, project_factory, mock_provider
    ) -> None:
        kept = _existing(date(2025, 1, 31))
        store = store_factory([project_factory(snapshots=(kept,))])

        result = backfill_project(
            "p-1", store, mock_provider, start=START, end=END, interval_days=30, clock=_clock
        )

        assert result.skipped == 1
        assert result.created == 1
        history = store.projects["p-1"].snapshots
        assert history[0].analysis.status is ProgressStatus.BASELINE
        assert history[1] == kept

    def test_new_snapshot_after_existing_is_classified_against_it(
        self, store_factory, project_factory, mock_provider
    ) -> None:
        store = store_factory([project_factory(snapshots=(_existing(date(2024, 12, 2)),))])

        backfill_project(
            "p-1", store, mock_provider, start=START, end=START, clock=_clock
        )

        history = store.projects["p-1"].snapshots
        assert history[1].analysis.status is ProgressStatus.PROGRESS
        assert history[1].analysis.change_percentage == 60

    def test_force_refresh_discards_history(
        self, store_factory, project_factory, mock_provider
    ) -> None:
        store = store_factory([project_factory(snapshots=(_existing(START),))])

        result = backfill_project(
            "p-1",
            store,
            mock_provider,
            start=START,
            end=START,
            force_refresh=True,
            clock=_clock,
        )

        assert result.skipped == 0
        assert result.created == 1
        (only,) = store.projects["p-1"].snapshots
        assert only.image_url.startswith("mock://snapshots/")
        assert only.analysis.status is ProgressStatus.BASELINE

    def test_capture_failures_are_counted(self, project_store, mock_provider) -> None:
        provider = MagicMock(wraps=mock_provider)

        def capture(lat, lng, radius_m, target_date=None, *, project_id=""):
            if target_date == date(2025, 1, 16):
                raise ProviderSearchError("mock", "No scenes found")
            return mock_provider.capture_snapshot(
                lat, lng, radius_m, target_date, project_id=project_id
            )

        provider.capture_snapshot.side_effect = capture

        result = backfill_project(
            "p-1", project_store, provider, start=START, end=END, clock=_clock
        )

        assert result.errors == 1
        assert result.created == 3
        assert date(2025, 1, 16) not in {s.date for s in project_store.projects["p-1"].snapshots}

    def test_result_dict(self, project_store, mock_provider) -> None:
        result = backfill_project(
            "p-1", project_store, mock_provider, start=START, end=START, clock=_clock
        )
        assert result.to_dict() == {
            "projectId": "p-1",
            "totalSnapshots": 1,
            "created": 1,
            "skipped": 0,
            "errors": 0,
            "startDate": "2025-01-01",
            "endDate": "2025-01-01",
        }


class TestBackfillErrors:
    def test_unknown_project(self, store_factory, mock_provider) -> None:
        with pytest.raises(ProjectNotFoundError):
            backfill_project("missing", store_factory(), mock_provider, clock=_clock)

    def test_invalid_coordinates(self, store_factory, project_factory, mock_provider) -> None:
        store = store_factory([project_factory(lat=120.0)])
        with pytest.raises(InvalidCoordinatesError) as exc_info:
            backfill_project("p-1", store, mock_provider, clock=_clock)
        assert exc_info.value.stage == "backfill_project"

    def test_bad_range_fails_before_loading_project(self, mock_provider) -> None:
        store = MagicMock()
        with pytest.raises(SamplingRangeError):
            backfill_project(
                "p-1", store, mock_provider, start=END, end=START, clock=_clock
            )
        store.get_project.assert_not_called()


class TestBackfillStoredHistory:
    def test_stored_entries_written_back_unchanged(
        self, store_factory, project_factory, mock_provider
    ) -> None:
        stored = {
            **_existing(date(2025, 1, 31)).to_dict(),
            "reviewedBy": "field-team",
        }
        store = store_factory([project_factory(records=(stored,))])

        backfill_project(
            "p-1", store, mock_provider, start=START, end=END, interval_days=30, clock=_clock
        )

        ((_, written),) = store.writes
        assert written[1] is stored

    def test_unreadable_entry_refuses_backfill(
        self, store_factory, project_factory, mock_provider
    ) -> None:
        broken = {"date": "2025-01-10", "imageUrl": ""}
        store = store_factory([project_factory(records=(broken,))])

        with pytest.raises(SnapshotHistoryError):
            backfill_project("p-1", store, mock_provider, start=START, end=END, clock=_clock)
        assert store.writes == []

    def test_force_refresh_ignores_unreadable_entries(
        self, store_factory, project_factory, mock_provider
    ) -> None:
        store = store_factory([project_factory(records=({"date": "2025-01-10"},))])

        result = backfill_project(
            "p-1",
            store,
            mock_provider,
            start=START,
            end=START,
            force_refresh=True,
            clock=_clock,
        )

        assert result.total_snapshots == 1


class TestBackfillExclusion:
    def test_rejected_while_monitoring_run_holds_guard(
        self, project_store, mock_provider
    ) -> None:
        guard = SingleFlight()

        with guard.hold(MONITORING_JOB_NAME), pytest.raises(RunInProgressError):
            backfill_project(
                "p-1",
                project_store,
                mock_provider,
                start=START,
                end=END,
                clock=_clock,
                guard=guard,
            )

        assert project_store.writes == []
        assert not guard.is_running(MONITORING_JOB_NAME)

    def test_backfill_during_run_cannot_lose_history(
        self, project_store, mock_provider
    ) -> None:
        guard = SingleFlight()
        outcomes: list[BaseException] = []
        provider = MagicMock(wraps=mock_provider)
        provider.name = mock_provider.name

        def capture(lat, lng, radius_m, target_date=None, *, project_id=""):
            try:
                backfill_project(
                    "p-1",
                    project_store,
                    mock_provider,
                    start=START,
                    end=date(2025, 2, 1),
                    clock=_clock,
                    guard=guard,
                )
            except RunInProgressError as exc:
                outcomes.append(exc)
            return mock_provider.capture_snapshot(
                lat, lng, radius_m, target_date, project_id=project_id
            )

        provider.capture_snapshot.side_effect = capture
        job = MonitoringJob(
            project_store, provider, inter_project_delay_s=0, clock=_clock, guard=guard
        )

        result = job.run()

        assert result.success_count == 1
        assert len(outcomes) == 1
        assert [pid for pid, _ in project_store.writes] == ["p-1"]
        assert len(project_store.projects["p-1"].records) == 1

    def test_guard_released_after_backfill(self, project_store, mock_provider) -> None:
        guard = SingleFlight()
        backfill_project(
            "p-1",
            project_store,
            mock_provider,
            start=START,
            end=START,
            clock=_clock,
            guard=guard,
        )
        assert not guard.is_running(MONITORING_JOB_NAME)
