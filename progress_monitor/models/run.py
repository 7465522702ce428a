"""Run-level result models.

``RunResult`` is produced once per monitoring run and only used for
logging and the manual-trigger response. ``ChangeAssessment`` is the
classifier's output: the analysis to attach plus the escalation signal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from progress_monitor.models.snapshot import ProgressAnalysis


@dataclass(frozen=True, slots=True)
class ChangeAssessment:
    """Classifier output.

    Attributes:
        analysis: The analysis to attach to the new snapshot.
        escalate: Whether a downstream stall notification should be sent.
    """

    analysis: ProgressAnalysis
    escalate: bool = False


@dataclass(frozen=True, slots=True)
class RunResult:
    """Aggregate outcome of one monitoring run.

    Attributes:
        success_count: Projects that received a new snapshot.
        error_count: Projects whose capture, classification or write failed.
        total_count: Projects processed (skipped projects excluded).
        skipped_count: Projects skipped for unusable coordinates.
        duration_seconds: Wall-clock duration of the run.
        cancelled: ``True`` if the run stopped early on cancellation.
        errors: Per-project error payloads (``project_id`` + error dict).
    """

    success_count: int = 0
    error_count: int = 0
    total_count: int = 0
    skipped_count: int = 0
    duration_seconds: float = 0.0
    cancelled: bool = False
    errors: list[dict[str, object]] = field(default_factory=list)

    def summary(self) -> str:
        """Return e.g. ``"12 succeeded, 2 failed"`` (plus skips/cancellation)."""
        text = f"{self.success_count} succeeded, {self.error_count} failed"
        if self.skipped_count:
            text += f", {self.skipped_count} skipped"
        if self.cancelled:
            text += " (cancelled)"
        return text

    def to_dict(self) -> dict[str, object]:
        return {
            "success_count": self.success_count,
            "error_count": self.error_count,
            "total_count": self.total_count,
            "skipped_count": self.skipped_count,
            "duration_seconds": round(self.duration_seconds, 3),
            "cancelled": self.cancelled,
            "errors": list(self.errors),
        }
