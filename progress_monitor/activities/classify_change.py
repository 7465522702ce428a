"""Change classifier: decide progress status from elapsed time.

Pure function of the previous snapshot and the current time. The new
snapshot's own content is not inspected; only the time since the previous
capture drives the outcome:

- no previous snapshot → ``baseline``
- fewer than 20 days since the previous capture → ``stalled``
- otherwise → ``progress`` with ``change_percentage = min(100, days × 2)``

The ``ChangeClassifier`` type is the seam for a future image-diffing
implementation: ``MonitoringJob`` accepts any callable with this shape.
"""

from __future__ import annotations

import math
from datetime import timedelta
from typing import TYPE_CHECKING, Protocol

from progress_monitor.models.run import ChangeAssessment
from progress_monitor.models.snapshot import ProgressAnalysis, ProgressStatus

if TYPE_CHECKING:
    from datetime import datetime

    from progress_monitor.models.snapshot import Snapshot

STALL_THRESHOLD_DAYS = 20
ESCALATION_THRESHOLD_DAYS = 60
PERCENT_PER_DAY = 2
MAX_CHANGE_PERCENTAGE = 100

_ONE_DAY = timedelta(days=1)


class ChangeClassifier(Protocol):
    """Callable that classifies a new capture against the previous one."""

    def __call__(self, previous: Snapshot | None, now: datetime) -> ChangeAssessment: ...


def days_since(previous: Snapshot, now: datetime) -> int:
    """Whole days between the previous capture and *now* (floored)."""
    return math.floor((now - previous.reference_time) / _ONE_DAY)


def classify_change(previous: Snapshot | None, now: datetime) -> ChangeAssessment:
    """Classify progress since *previous* as of *now*.

    Args:
        previous: The project's most recent snapshot, or ``None``.
        now: Timezone-aware current time.

    Returns:
        The analysis for the new snapshot and whether to escalate.
    """
    if previous is None:
        return ChangeAssessment(
            analysis=ProgressAnalysis(
                status=ProgressStatus.BASELINE,
                notes="first monitoring snapshot",
            ),
        )

    days = days_since(previous, now)

    if days < STALL_THRESHOLD_DAYS:
        # Escalation is evaluated inside the stalled branch, so it never fires.
        return ChangeAssessment(
            analysis=ProgressAnalysis(
                status=ProgressStatus.STALLED,
                notes=f"no significant change detected; last capture {days} days ago",
            ),
            escalate=days > ESCALATION_THRESHOLD_DAYS,
        )

    return ChangeAssessment(
        analysis=ProgressAnalysis(
            status=ProgressStatus.PROGRESS,
            notes=f"progress detected; {days} days since last capture",
            change_percentage=float(min(MAX_CHANGE_PERCENTAGE, days * PERCENT_PER_DAY)),
        ),
    )
