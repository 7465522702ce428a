"""Historical sampler: capture one snapshot per interval over a date range.

Walks ``[start, end]`` in steps of ``interval_days`` and asks the capture
function for a snapshot at each sample date. A failed sample is logged and
skipped; the walk always continues to ``end``. Only a caller-contract
violation (``start > end`` or a non-positive interval) raises.

Guarantees:
    - Output is ordered by sample date, strictly ascending.
    - Every snapshot's date lies within ``[start, end]``.
    - ``len(output) <= ceil((end - start) / interval_days) + 1``.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Protocol

from progress_monitor.core.exceptions import SamplingRangeError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import date

    from progress_monitor.models.snapshot import Snapshot

logger = logging.getLogger("progress_monitor.activities.sample_history")


class CaptureFn(Protocol):
    """Signature of ``ImageryProvider.capture_snapshot``."""

    def __call__(
        self,
        lat: float,
        lng: float,
        radius_m: float = ...,
        target_date: date | None = ...,
        *,
        project_id: str = ...,
    ) -> Snapshot: ...


def sample_dates(start: date, end: date, interval_days: int) -> Iterator[date]:
    """Yield ``start, start + d, start + 2d, ...`` while ``<= end``.

    Raises:
        SamplingRangeError: If ``start > end`` or ``interval_days < 1``.
    """
    if start > end:
        msg = f"start date {start.isoformat()} is after end date {end.isoformat()}"
        raise SamplingRangeError(msg)
    if interval_days < 1:
        msg = f"interval_days must be >= 1, got {interval_days}"
        raise SamplingRangeError(msg)

    step = timedelta(days=interval_days)
    cursor = start
    while cursor <= end:
        yield cursor
        cursor += step


def sample_history(
    capture: CaptureFn,
    lat: float,
    lng: float,
    radius_m: float,
    start: date,
    end: date,
    interval_days: int,
    *,
    project_id: str = "",
) -> list[Snapshot]:
    """Capture snapshots at fixed intervals across ``[start, end]``.

    Args:
        capture: Capture function, usually a provider's ``capture_snapshot``.
        lat: Latitude of the capture point.
        lng: Longitude of the capture point.
        radius_m: Capture radius in metres.
        start: First sample date (inclusive).
        end: Last possible sample date (inclusive).
        interval_days: Days between samples.
        project_id: Forwarded to *capture* for object-storage paths.

    Returns:
        Successful snapshots in ascending date order.

    Raises:
        SamplingRangeError: If the range or interval is invalid.
    """
    dates = list(sample_dates(start, end, interval_days))
    snapshots: list[Snapshot] = []
    failures = 0

    for sample_date in dates:
        try:
            snapshots.append(
                capture(lat, lng, radius_m, sample_date, project_id=project_id),
            )
        except Exception:
            failures += 1
            logger.warning(
                "Historical sample failed | date=%s | lat=%.5f | lng=%.5f",
                sample_date.isoformat(),
                lat,
                lng,
                exc_info=True,
            )

    logger.info(
        "Historical sampling complete | samples=%d | captured=%d | failed=%d",
        len(dates),
        len(snapshots),
        failures,
    )
    return snapshots
