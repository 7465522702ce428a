"""Backfill activity: populate a project's history with past captures.

Loads one project, captures a snapshot every ``interval_days`` across a
date range, classifies each new snapshot against the one before it and
persists the merged history in chronological order.

Dates that already have a snapshot are skipped unless ``force_refresh``
is set, in which case the existing history is discarded first. Failed
captures are counted and logged, never raised. Stored entries are written
back unchanged; if any of them cannot be parsed the backfill is refused
rather than rewriting a history it cannot order.

A backfill rewrites the whole snapshot list, so it holds the same
single-flight guard as the monitoring job. Either one started while the
other is running fails with ``RunInProgressError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime, time, timedelta
from typing import TYPE_CHECKING, Any

from progress_monitor.activities.classify_change import classify_change
from progress_monitor.activities.sample_history import sample_dates
from progress_monitor.core.constants import MONITORING_JOB_NAME
from progress_monitor.core.exceptions import InvalidCoordinatesError
from progress_monitor.core.run_lock import RUN_GUARD, SingleFlight
from progress_monitor.utils.helpers import utc_now

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import date

    from progress_monitor.activities.classify_change import ChangeClassifier
    from progress_monitor.models.snapshot import Snapshot
    from progress_monitor.providers.base import ImageryProvider
    from progress_monitor.storage.projects import ProjectStore

logger = logging.getLogger("progress_monitor.activities.backfill_project")

DEFAULT_BACKFILL_INTERVAL_DAYS = 15
DEFAULT_BACKFILL_LOOKBACK_DAYS = 180
DEFAULT_BACKFILL_RADIUS_M = 300.0


@dataclass(frozen=True, slots=True)
class BackfillResult:
    """Outcome of one backfill.

    Attributes:
        project_id: The backfilled project.
        total_snapshots: Length of the persisted history.
        created: New snapshots captured.
        skipped: Sample dates that already had a snapshot.
        errors: Sample dates whose capture failed.
        start: First sample date.
        end: Last possible sample date.
    """

    project_id: str
    total_snapshots: int
    created: int
    skipped: int
    errors: int
    start: date
    end: date

    def to_dict(self) -> dict[str, object]:
        return {
            "projectId": self.project_id,
            "totalSnapshots": self.total_snapshots,
            "created": self.created,
            "skipped": self.skipped,
            "errors": self.errors,
            "startDate": self.start.isoformat(),
            "endDate": self.end.isoformat(),
        }


def backfill_project(
    project_id: str,
    store: ProjectStore,
    provider: ImageryProvider,
    *,
    start: date | None = None,
    end: date | None = None,
    interval_days: int = DEFAULT_BACKFILL_INTERVAL_DAYS,
    force_refresh: bool = False,
    radius_m: float = DEFAULT_BACKFILL_RADIUS_M,
    classifier: ChangeClassifier = classify_change,
    clock: Callable[[], datetime] = utc_now,
    guard: SingleFlight = RUN_GUARD,
) -> BackfillResult:
    """Backfill the snapshot history of *project_id*.

    Args:
        project_id: Project to backfill.
        store: Project store (read and write).
        provider: Imagery provider used for captures.
        start: First sample date; defaults to 180 days before *end*.
        end: Last sample date; defaults to today (UTC).
        interval_days: Days between samples.
        force_refresh: Discard the existing history and re-capture all dates.
        radius_m: Capture radius in metres.
        classifier: Change classifier applied to each new snapshot.
        clock: Source of the current time (UTC).
        guard: Single-flight guard shared with the monitoring job.

    Returns:
        A ``BackfillResult`` with counters.

    Raises:
        ProjectNotFoundError: If the project does not exist.
        InvalidCoordinatesError: If the project has unusable coordinates.
        SamplingRangeError: If ``start > end`` or ``interval_days < 1``.
        RunInProgressError: If a monitoring run or another backfill is active.
        SnapshotHistoryError: If a stored entry cannot be parsed and
            ``force_refresh`` is not set.
        StorageWriteError: If the merged history cannot be persisted.
    """
    now = clock()
    end = end or now.date()
    start = start or end - timedelta(days=DEFAULT_BACKFILL_LOOKBACK_DAYS)
    dates = list(sample_dates(start, end, interval_days))

    with guard.hold(MONITORING_JOB_NAME):
        return _backfill(
            project_id,
            store,
            provider,
            dates,
            start=start,
            end=end,
            force_refresh=force_refresh,
            radius_m=radius_m,
            classifier=classifier,
        )


def _backfill(
    project_id: str,
    store: ProjectStore,
    provider: ImageryProvider,
    dates: list[date],
    *,
    start: date,
    end: date,
    force_refresh: bool,
    radius_m: float,
    classifier: ChangeClassifier,
) -> BackfillResult:
    project = store.get_project(project_id)
    coords = project.coordinates()
    if coords is None:
        msg = f"Project {project_id} has no usable coordinates"
        raise InvalidCoordinatesError(msg, stage="backfill_project")
    lat, lng = coords

    existing: list[tuple[Snapshot, Any]] = []
    if force_refresh:
        if project.records:
            logger.info(
                "Force refresh | project=%s | discarded=%d",
                project_id,
                len(project.records),
            )
    else:
        existing = list(zip(project.snapshots, project.records, strict=True))
    existing_dates = {snapshot.date for snapshot, _ in existing}

    captured: list[Snapshot] = []
    skipped = 0
    errors = 0
    for sample_date in dates:
        if sample_date in existing_dates:
            skipped += 1
            continue
        try:
            snapshot = provider.capture_snapshot(
                lat, lng, radius_m, sample_date, project_id=project_id
            )
        except Exception:
            errors += 1
            logger.warning(
                "Backfill capture failed | project=%s | date=%s",
                project_id,
                sample_date.isoformat(),
                exc_info=True,
            )
            continue
        captured.append(
            replace(snapshot, captured_at=datetime.combine(sample_date, time.min, tzinfo=UTC))
        )

    history = _merge_and_classify(existing, captured, classifier)
    store.update_project_snapshots(project_id, history)

    result = BackfillResult(
        project_id=project_id,
        total_snapshots=len(history),
        created=len(captured),
        skipped=skipped,
        errors=errors,
        start=start,
        end=end,
    )
    logger.info(
        "Backfill complete | project=%s | created=%d | skipped=%d | errors=%d | total=%d",
        project_id,
        result.created,
        result.skipped,
        result.errors,
        result.total_snapshots,
    )
    return result


def _merge_and_classify(
    existing: list[tuple[Snapshot, Any]],
    captured: list[Snapshot],
    classifier: ChangeClassifier,
) -> list[Any]:
    """Sort both lists together and attach analyses to the new snapshots.

    Existing entries are written back exactly as stored. Each new snapshot
    is classified against its chronological predecessor at its own capture
    time.
    """
    merged = sorted(
        [*existing, *((snapshot, None) for snapshot in captured)],
        key=lambda pair: pair[0].reference_time,
    )

    history: list[Any] = []
    previous: Snapshot | None = None
    for snapshot, stored in merged:
        if stored is None:
            assessment = classifier(previous, snapshot.reference_time)
            snapshot = replace(snapshot, analysis=assessment.analysis)
            stored = snapshot.to_dict()
        history.append(stored)
        previous = snapshot
    return history
