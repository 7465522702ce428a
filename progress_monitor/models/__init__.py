"""Domain models for the satellite progress monitoring pipeline.

``Project`` lives in ``progress_monitor.models.project`` and is imported
from there directly (it depends on ``progress_monitor.utils.geo``).
"""

from progress_monitor.models.run import ChangeAssessment, RunResult
from progress_monitor.models.snapshot import (
    Bounds,
    ModelValidationError,
    ProgressAnalysis,
    ProgressStatus,
    Snapshot,
)

__all__ = [
    "Bounds",
    "ChangeAssessment",
    "ModelValidationError",
    "ProgressAnalysis",
    "ProgressStatus",
    "RunResult",
    "Snapshot",
]
