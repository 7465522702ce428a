"""Error taxonomy for the monitoring pipeline.

All domain errors derive from ``PipelineError``. Each one knows where it
happened (``stage``), what went wrong in machine-readable form (``code``)
and whether a later run could succeed (``retryable``). The monitoring job
uses those fields to keep one project's failure out of the others, and the
HTTP routes use them to pick a status code.

Categories:

``ValidationError``
    Bad input: coordinates, date ranges, model fields. Not retryable.
``TransientError``
    The store or a network hop was unavailable. Retryable.
``PermanentError``
    The request cannot succeed as issued. Not retryable.
``ContractError``
    A request body does not match the expected shape. Not retryable.

``to_error_dict()`` and ``error_payload()`` give every failure the same
six-key shape in run summaries and HTTP responses.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for every monitoring-domain error.

    Subclasses set ``default_stage``, ``default_code`` and, for the
    category bases, ``default_retryable`` and ``category_name``.

    Attributes:
        message: Human-readable description.
        stage: Pipeline step that failed, e.g. ``"capture_snapshot"``.
        code: Stable machine code, e.g. ``"PROVIDER_SEARCH_FAILED"``.
        retryable: ``True`` if a later run may succeed unchanged.
        correlation_id: Optional run or request identifier.
    """

    default_stage: str = ""
    default_code: str = ""
    default_retryable: bool = False
    category_name: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool | None = None,
        correlation_id: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = self.default_retryable if retryable is None else retryable
        self.correlation_id = correlation_id

    @property
    def category(self) -> str:
        """``validation``, ``transient``, ``permanent`` or ``contract``.

        Errors outside the four category bases are classed by ``retryable``.
        """
        if self.category_name:
            return self.category_name
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category bases
# ---------------------------------------------------------------------------


class ValidationError(PipelineError):
    """Input or model validation failure."""

    category_name = "validation"


class TransientError(PipelineError):
    """Temporary failure; a later run may succeed."""

    default_retryable = True
    category_name = "transient"


class PermanentError(PipelineError):
    """Failure that will repeat until something changes upstream."""

    category_name = "permanent"


class ContractError(PipelineError):
    """Request payload does not match the expected shape."""

    category_name = "contract"


# ---------------------------------------------------------------------------
# Shared domain errors
# ---------------------------------------------------------------------------


class InvalidCoordinatesError(ValidationError):
    """Project or request coordinates are absent, non-numeric, or out of range."""

    default_stage = "validate_coordinates"
    default_code = "INVALID_COORDINATES"


class SamplingRangeError(ValidationError):
    """A date range or sampling interval violates the caller contract."""

    default_stage = "sample_history"
    default_code = "INVALID_SAMPLING_RANGE"


class SnapshotBoundsError(PermanentError):
    """A captured snapshot's bounds do not enclose the capture point."""

    default_stage = "capture_snapshot"
    default_code = "SNAPSHOT_BOUNDS_MISMATCH"


class SnapshotHistoryError(PermanentError):
    """A stored snapshot entry needed for comparison cannot be parsed."""

    default_stage = "load_history"
    default_code = "MALFORMED_SNAPSHOT_HISTORY"


def error_payload(exc: BaseException, *, stage: str = "") -> dict[str, object]:
    """Return a ``to_error_dict()``-shaped payload for any exception.

    Non-pipeline exceptions are reported as permanent with code
    ``UNEXPECTED_ERROR`` so that run summaries keep a single shape.
    """
    if isinstance(exc, PipelineError):
        payload = exc.to_error_dict()
        if stage and not payload["stage"]:
            payload["stage"] = stage
        return payload
    return {
        "category": "permanent",
        "code": "UNEXPECTED_ERROR",
        "stage": stage,
        "message": f"{type(exc).__name__}: {exc}",
        "retryable": False,
        "correlation_id": "",
    }
