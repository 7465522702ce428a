"""Monitoring job: one pass over every active project.

Steps per run:

1. List active projects (a store failure here is fatal to the run).
2. For each project, sequentially:
   a. Skip it when its coordinates are absent or invalid.
   b. Capture a snapshot through the imagery provider.
   c. Classify it against the project's previous snapshot (an unparseable
      last entry fails the project instead).
   d. Stamp ``captured_at``, attach the analysis, append it to the stored
      entries (passed through unchanged) and persist.
   e. Notify on escalation (best effort).
   f. Record any failure in b–d and continue with the next project.
   g. Pause between projects to respect provider rate limits.
3. Return a ``RunResult``.

Runs are single-flight: a second ``run()`` while one is in progress raises
``RunInProgressError``. A ``threading.Event`` passed to ``run()`` stops the
job before the next project and interrupts the inter-project pause.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import TYPE_CHECKING

from progress_monitor.activities.classify_change import classify_change
from progress_monitor.core.constants import (
    DEFAULT_INTER_PROJECT_DELAY_S,
    DEFAULT_MONITORING_RADIUS_M,
    MONITORING_JOB_NAME,
)
from progress_monitor.core.exceptions import SnapshotBoundsError, error_payload
from progress_monitor.core.run_lock import RUN_GUARD, SingleFlight
from progress_monitor.models.run import RunResult
from progress_monitor.notifications import LoggingNotifier
from progress_monitor.utils.helpers import utc_now

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable
    from datetime import datetime

    from progress_monitor.activities.classify_change import ChangeClassifier
    from progress_monitor.models.project import Project
    from progress_monitor.notifications import Notifier
    from progress_monitor.providers.base import ImageryProvider
    from progress_monitor.storage.projects import ProjectStore

logger = logging.getLogger("progress_monitor.orchestrators.monitoring_job")


class MonitoringJob:
    """Captures, classifies and persists one snapshot per active project.

    Args:
        store: Project store.
        provider: Imagery provider.
        notifier: Receives stall escalations.
        classifier: Change classifier.
        radius_m: Capture radius in metres.
        inter_project_delay_s: Pause between projects, in seconds.
        clock: Source of the current UTC time.
        sleep: Sleep function used when no cancel event is given.
        guard: Single-flight guard shared with other triggers.
    """

    def __init__(
        self,
        store: ProjectStore,
        provider: ImageryProvider,
        *,
        notifier: Notifier | None = None,
        classifier: ChangeClassifier = classify_change,
        radius_m: float = DEFAULT_MONITORING_RADIUS_M,
        inter_project_delay_s: float = DEFAULT_INTER_PROJECT_DELAY_S,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
        guard: SingleFlight = RUN_GUARD,
    ) -> None:
        self._store = store
        self._provider = provider
        self._notifier = notifier or LoggingNotifier()
        self._classifier = classifier
        self._radius_m = radius_m
        self._delay_s = inter_project_delay_s
        self._clock = clock
        self._sleep = sleep
        self._guard = guard

    @property
    def provider(self) -> ImageryProvider:
        return self._provider

    @property
    def store(self) -> ProjectStore:
        return self._store

    def run(self, cancel_event: threading.Event | None = None) -> RunResult:
        """Execute one monitoring pass.

        Raises:
            RunInProgressError: If another run holds the guard.
            StorageUnavailableError: If active projects cannot be listed.
        """
        with self._guard.hold(MONITORING_JOB_NAME):
            return self._run(cancel_event)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run(self, cancel_event: threading.Event | None) -> RunResult:
        started = time.monotonic()
        logger.info("Monitoring run started | provider=%s", self._provider.name)

        projects = self._store.list_active_projects()
        if not projects:
            logger.info("Monitoring run complete | no active projects")
            return RunResult(duration_seconds=time.monotonic() - started)

        success = failed = skipped = 0
        errors: list[dict[str, object]] = []
        cancelled = False

        for index, project in enumerate(projects):
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                logger.warning(
                    "Monitoring run cancelled | remaining=%d",
                    len(projects) - index,
                )
                break

            coords = project.coordinates()
            if coords is None:
                skipped += 1
                logger.warning(
                    "Skipping project with invalid coordinates | project=%s | lat=%r | lng=%r",
                    project.id,
                    project.latitude,
                    project.longitude,
                )
                continue

            try:
                self._process(project, *coords)
            except Exception as exc:
                failed += 1
                errors.append({"project_id": project.id, **error_payload(exc)})
                logger.exception(
                    "Project failed | project=%s | title=%s", project.id, project.title
                )
            else:
                success += 1

            if index < len(projects) - 1 and self._pause(cancel_event):
                cancelled = True
                logger.warning("Monitoring run cancelled during delay | processed=%d", index + 1)
                break

        result = RunResult(
            success_count=success,
            error_count=failed,
            total_count=success + failed,
            skipped_count=skipped,
            duration_seconds=time.monotonic() - started,
            cancelled=cancelled,
            errors=errors,
        )
        logger.info(
            "Monitoring run complete | %s | duration=%.1fs",
            result.summary(),
            result.duration_seconds,
        )
        return result

    def _process(self, project: Project, lat: float, lng: float) -> None:
        previous = project.last_snapshot
        snapshot = self._provider.capture_snapshot(
            lat,
            lng,
            self._radius_m,
            project_id=project.id,
        )
        if not snapshot.bounds.contains(lat, lng):
            msg = f"Snapshot bounds do not contain ({lat}, {lng}) for project {project.id}"
            raise SnapshotBoundsError(msg)

        now = self._clock()
        assessment = self._classifier(previous, now)
        recorded = replace(snapshot, captured_at=now, analysis=assessment.analysis)

        self._store.update_project_snapshots(project.id, project.appended(recorded))
        logger.info(
            "Snapshot recorded | project=%s | status=%s | history=%d",
            project.id,
            assessment.analysis.status.value,
            len(project.records) + 1,
        )

        if assessment.escalate:
            try:
                self._notifier.notify_stall(project.id, project.title)
            except Exception:
                logger.warning("Stall notification failed | project=%s", project.id, exc_info=True)

    def _pause(self, cancel_event: threading.Event | None) -> bool:
        """Wait the inter-project delay. Return ``True`` if cancelled."""
        if self._delay_s <= 0:
            return cancel_event is not None and cancel_event.is_set()
        if cancel_event is not None:
            return cancel_event.wait(self._delay_s)
        self._sleep(self._delay_s)
        return False
