"""Azure Functions entry point: Satellite Progress Monitoring.

This module registers all Azure Functions (timer and HTTP triggers) using
the Python v2 programming model.

All business logic lives in the progress_monitor package. This file is
purely the wiring layer between Azure Functions bindings and application
code.
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING

import azure.functions as func
from pydantic import ValidationError as RequestValidationError

from progress_monitor.core.config import MonitoringConfig
from progress_monitor.core.constants import MONITORING_SCHEDULE
from progress_monitor.core.exceptions import (
    ContractError,
    InvalidCoordinatesError,
    PipelineError,
    SamplingRangeError,
    error_payload,
)
from progress_monitor.core.ingress import json_response, parse_json_body
from progress_monitor.core.run_lock import RunInProgressError
from progress_monitor.providers.base import ProviderError
from progress_monitor.storage.projects import ProjectNotFoundError

if TYPE_CHECKING:
    from progress_monitor.orchestrators.monitoring_job import MonitoringJob
    from progress_monitor.providers.base import ImageryProvider

app = func.FunctionApp()

logger = logging.getLogger("progress_monitor.function_app")


# ---------------------------------------------------------------------------
# Lazily built collaborators (configuration is read once per worker)
# ---------------------------------------------------------------------------


@functools.cache
def _config() -> MonitoringConfig:
    return MonitoringConfig.from_env()


@functools.cache
def _monitoring_job() -> MonitoringJob:
    from progress_monitor.orchestrators.triggers import build_monitoring_job

    return build_monitoring_job(_config())


@functools.cache
def _provider() -> ImageryProvider:
    from progress_monitor.orchestrators.triggers import build_provider

    return build_provider(_config())


def _error_response(exc: BaseException, status_code: int) -> func.HttpResponse:
    return json_response({"success": False, "error": error_payload(exc)}, status_code)


def _status_for(exc: PipelineError) -> int:
    if isinstance(exc, (ContractError, InvalidCoordinatesError, SamplingRangeError)):
        return 400
    if isinstance(exc, ProjectNotFoundError):
        return 404
    if isinstance(exc, RunInProgressError):
        return 409
    if isinstance(exc, ProviderError):
        return 502
    return 500


# ---------------------------------------------------------------------------
# Timer: monthly monitoring run
# ---------------------------------------------------------------------------


@app.function_name("satellite_monitoring_timer")
@app.timer_trigger(schedule=MONITORING_SCHEDULE, arg_name="timer", run_on_startup=False)
def satellite_monitoring_timer(timer: func.TimerRequest) -> None:
    """Run satellite monitoring at 02:00 on the 1st of every month."""
    from progress_monitor.orchestrators.triggers import run_scheduled_monitoring

    if timer.past_due:
        logger.warning("Monitoring timer is past due")

    run_scheduled_monitoring(_monitoring_job())


# ---------------------------------------------------------------------------
# HTTP: manual monitoring run
# ---------------------------------------------------------------------------


@app.function_name("satellite_monitoring_manual")
@app.route(route="jobs/satellite-monitoring/run", methods=["POST"])
def satellite_monitoring_manual(req: func.HttpRequest) -> func.HttpResponse:
    """Trigger a monitoring run on demand (admin/testing).

    Responds 200 with ``{success, message, result}`` when the run
    completes (including partial failure), 409 if a run is in progress
    and 500 on a fatal failure.
    """
    from progress_monitor.orchestrators.triggers import run_manual_monitoring

    logger.info("Manual monitoring requested")
    try:
        job = _monitoring_job()
    except PipelineError as exc:
        logger.error(
            "Monitoring job could not be built | code=%s | error=%s", exc.code, exc.message
        )
        return _error_response(exc, 500)

    status_code, envelope = run_manual_monitoring(job)
    return json_response(envelope, status_code)


# ---------------------------------------------------------------------------
# HTTP: satellite imagery routes
# ---------------------------------------------------------------------------


@app.function_name("satellite_snapshot")
@app.route(route="satellite/snapshot", methods=["POST"])
def satellite_snapshot(req: func.HttpRequest) -> func.HttpResponse:
    """Capture one snapshot for ``{lat, lng, radiusMeters?, date?}``."""
    from progress_monitor.models.requests import SnapshotRequest

    try:
        body = SnapshotRequest.model_validate(parse_json_body(req))
        snapshot = _provider().capture_snapshot(body.lat, body.lng, body.radius_m, body.target_date)
    except RequestValidationError as exc:
        return json_response({"success": False, "errors": exc.errors(include_url=False)}, 400)
    except PipelineError as exc:
        logger.warning("Snapshot request failed | code=%s | error=%s", exc.code, exc)
        return _error_response(exc, _status_for(exc))

    return json_response({"success": True, "snapshot": snapshot.to_dict()})


@app.function_name("satellite_historical")
@app.route(route="satellite/historical", methods=["POST"])
def satellite_historical(req: func.HttpRequest) -> func.HttpResponse:
    """Capture a snapshot series for ``{lat, lng, startDate, endDate, intervalDays?}``."""
    from progress_monitor.models.requests import HistoricalRequest

    try:
        body = HistoricalRequest.model_validate(parse_json_body(req))
        snapshots = _provider().get_historical_snapshots(
            body.lat,
            body.lng,
            body.radius_m,
            body.start_date,
            body.end_date,
            body.interval_days,
        )
    except RequestValidationError as exc:
        return json_response({"success": False, "errors": exc.errors(include_url=False)}, 400)
    except PipelineError as exc:
        logger.warning("Historical request failed | code=%s | error=%s", exc.code, exc)
        return _error_response(exc, _status_for(exc))

    return json_response(
        {
            "success": True,
            "count": len(snapshots),
            "snapshots": [s.to_dict() for s in snapshots],
        }
    )


@app.function_name("satellite_status")
@app.route(route="satellite/status", methods=["GET"])
def satellite_status(req: func.HttpRequest) -> func.HttpResponse:
    """Report which provider is active and whether it can authenticate."""
    try:
        config = _config()
        status = _provider().check_status()
    except PipelineError as exc:
        return _error_response(exc, 500)

    return json_response(
        {
            "useRealImagery": config.use_real_imagery,
            "imageryProvider": config.effective_provider,
            **status,
        }
    )


@app.function_name("satellite_backfill_project")
@app.route(route="satellite/backfill-project", methods=["POST"])
def satellite_backfill_project(req: func.HttpRequest) -> func.HttpResponse:
    """Populate a project's snapshot history over a date range."""
    from progress_monitor.activities.backfill_project import backfill_project
    from progress_monitor.models.requests import BackfillRequest
    from progress_monitor.orchestrators.triggers import build_project_store

    try:
        body = BackfillRequest.model_validate(parse_json_body(req))
        result = backfill_project(
            body.project_id,
            build_project_store(_config()),
            _provider(),
            start=body.start_date,
            end=body.end_date,
            interval_days=body.interval_days,
            force_refresh=body.force_refresh,
        )
    except RequestValidationError as exc:
        return json_response({"success": False, "errors": exc.errors(include_url=False)}, 400)
    except PipelineError as exc:
        logger.warning("Backfill failed | code=%s | error=%s", exc.code, exc)
        return _error_response(exc, _status_for(exc))

    return json_response({"success": True, **result.to_dict()})
