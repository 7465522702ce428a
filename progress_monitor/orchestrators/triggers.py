"""Trigger entry points shared by the timer and HTTP functions.

``function_app.py`` binds these to Azure Functions triggers; they contain
no host-specific types so they can be called directly in tests.

- ``run_scheduled_monitoring``: monthly timer path. A run already in
  progress is logged and skipped.
- ``run_manual_monitoring``: HTTP path. Returns ``(status_code, envelope)``
  where the envelope is ``{success, message, result}``.
- ``build_monitoring_job``: wires the job from ``MonitoringConfig``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from progress_monitor.core.constants import MOCK
from progress_monitor.core.exceptions import PipelineError, error_payload
from progress_monitor.core.run_lock import RunInProgressError
from progress_monitor.orchestrators.monitoring_job import MonitoringJob
from progress_monitor.providers.factory import get_provider
from progress_monitor.storage.objects import AzureBlobObjectStore
from progress_monitor.storage.projects import SupabaseProjectStore
from progress_monitor.utils.helpers import build_provider_config

if TYPE_CHECKING:
    from progress_monitor.core.config import MonitoringConfig
    from progress_monitor.models.run import RunResult
    from progress_monitor.providers.base import ImageryProvider
    from progress_monitor.storage.objects import ObjectStore

logger = logging.getLogger("progress_monitor.orchestrators.triggers")


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_object_store(config: MonitoringConfig) -> ObjectStore:
    """Create the blob-backed object store for rendered snapshots."""
    from progress_monitor.core.ingress import get_blob_service_client

    return AzureBlobObjectStore(
        get_blob_service_client(),
        config.snapshot_container,
        public_base_url=config.snapshot_public_base_url,
    )


def build_provider(config: MonitoringConfig, name: str | None = None) -> ImageryProvider:
    """Create the configured imagery provider.

    Real providers receive an object store; the mock provider does not.
    """
    provider_config = build_provider_config(config, name)
    object_store = None if provider_config.name == MOCK else build_object_store(config)
    return get_provider(provider_config.name, provider_config, object_store=object_store)


def build_project_store(config: MonitoringConfig) -> SupabaseProjectStore:
    """Create the project store client."""
    return SupabaseProjectStore(config.supabase_url, config.supabase_service_key)


def build_monitoring_job(config: MonitoringConfig) -> MonitoringJob:
    """Wire a ``MonitoringJob`` from configuration."""
    return MonitoringJob(
        build_project_store(config),
        build_provider(config),
        radius_m=config.monitoring_radius_m,
        inter_project_delay_s=config.inter_project_delay_s,
    )


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def run_scheduled_monitoring(job: MonitoringJob) -> RunResult | None:
    """Run the job from the timer trigger.

    Returns ``None`` when skipped because another run is in progress.
    Fatal errors propagate so the host records the failed invocation.
    """
    try:
        result = job.run()
    except RunInProgressError:
        logger.warning("Scheduled monitoring skipped | reason=run already in progress")
        return None
    logger.info("Scheduled monitoring finished | %s", result.summary())
    return result


def run_manual_monitoring(job: MonitoringJob) -> tuple[int, dict[str, object]]:
    """Run the job from the HTTP trigger.

    Returns:
        ``(status_code, envelope)``: 200 on completion (including partial
        failure), 409 if a run is already in progress, 500 on a fatal
        failure.
    """
    try:
        result = job.run()
    except RunInProgressError as exc:
        return 409, {
            "success": False,
            "message": "Satellite monitoring is already running",
            "error": exc.to_error_dict(),
        }
    except PipelineError as exc:
        logger.error("Manual monitoring failed | code=%s | error=%s", exc.code, exc.message)
        return 500, {
            "success": False,
            "message": "Satellite monitoring failed",
            "error": exc.to_error_dict(),
        }
    except Exception as exc:
        logger.exception("Manual monitoring failed unexpectedly")
        return 500, {
            "success": False,
            "message": "Satellite monitoring failed",
            "error": error_payload(exc, stage="monitoring_run"),
        }

    return 200, {
        "success": True,
        "message": f"Satellite monitoring completed: {result.summary()}",
        "result": result.to_dict(),
    }
