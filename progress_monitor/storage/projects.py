"""Project store collaborator.

The monitoring job only needs three operations from the managed data
store, captured by the ``ProjectStore`` protocol:

- ``list_active_projects()``: fatal to the run if the store is unreachable.
- ``get_project(project_id)``: used by the backfill activity.
- ``update_project_snapshots(project_id, records)``: per-project write of
  the full snapshot list in store shape.

``SupabaseProjectStore`` implements the protocol against the PostgREST API
exposed by the managed store, using a service-role key.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from progress_monitor.core.constants import ACTIVE_PROJECT_STATUSES, PROJECTS_TABLE
from progress_monitor.core.exceptions import PermanentError, TransientError
from progress_monitor.models.project import Project

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger("progress_monitor.storage.projects")

_DEFAULT_TIMEOUT_S = 30.0


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class StorageUnavailableError(TransientError):
    """The project store could not be reached or refused the listing query."""

    default_stage = "list_projects"
    default_code = "STORAGE_UNAVAILABLE"


class StorageWriteError(TransientError):
    """Persisting a project's snapshot history failed."""

    default_stage = "persist_snapshots"
    default_code = "STORAGE_WRITE_FAILED"


class ProjectNotFoundError(PermanentError):
    """No project exists with the requested identifier."""

    default_stage = "get_project"
    default_code = "PROJECT_NOT_FOUND"


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ProjectStore(Protocol):
    """Storage operations the monitoring pipeline depends on."""

    def list_active_projects(self) -> list[Project]: ...

    def get_project(self, project_id: str) -> Project: ...

    def update_project_snapshots(self, project_id: str, records: Sequence[Any]) -> None: ...


# ---------------------------------------------------------------------------
# PostgREST implementation
# ---------------------------------------------------------------------------


class SupabaseProjectStore:
    """``ProjectStore`` backed by the managed store's PostgREST endpoint.

    Args:
        base_url: Store URL, e.g. ``https://xyz.supabase.co``.
        service_key: Service-role API key.
        client: Optional ``httpx.Client`` (injected in tests).
        table: Table holding projects.
    """

    def __init__(
        self,
        base_url: str,
        service_key: str,
        *,
        client: httpx.Client | None = None,
        table: str = PROJECTS_TABLE,
    ) -> None:
        if not base_url:
            msg = "Project store URL is not configured (SUPABASE_URL)"
            raise StorageUnavailableError(msg, retryable=False)
        if not service_key:
            msg = "Project store key is not configured (SUPABASE_SERVICE_ROLE_KEY)"
            raise StorageUnavailableError(msg, retryable=False)
        self._rest_url = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }
        self._client = client or httpx.Client(timeout=_DEFAULT_TIMEOUT_S)

    def list_active_projects(self) -> list[Project]:
        """Return active/published projects, newest first.

        Rows without an identifier are skipped with a warning.

        Raises:
            StorageUnavailableError: If the store is unreachable or errors.
        """
        params = {
            "select": "*",
            "status": f"in.({','.join(ACTIVE_PROJECT_STATUSES)})",
            "order": "created_at.desc",
        }
        try:
            response = self._client.get(self._rest_url, params=params, headers=self._headers)
            response.raise_for_status()
            rows = _as_rows(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            msg = f"Failed to fetch active projects: {exc}"
            raise StorageUnavailableError(msg) from exc

        projects = [p for p in (_row_to_project(row) for row in rows) if p is not None]
        logger.info("Active projects fetched | count=%d", len(projects))
        return projects

    def get_project(self, project_id: str) -> Project:
        """Return a single project by id, regardless of status.

        Raises:
            ProjectNotFoundError: If no row matches.
            StorageUnavailableError: If the store is unreachable or errors.
        """
        params = {"select": "*", "id": f"eq.{project_id}"}
        try:
            response = self._client.get(self._rest_url, params=params, headers=self._headers)
            response.raise_for_status()
            rows = _as_rows(response.json())
        except (httpx.HTTPError, ValueError) as exc:
            msg = f"Failed to fetch project {project_id}: {exc}"
            raise StorageUnavailableError(msg, stage="get_project") from exc

        if not rows:
            raise ProjectNotFoundError(f"Project {project_id} not found")
        return Project.from_record(rows[0])

    def update_project_snapshots(self, project_id: str, records: Sequence[Any]) -> None:
        """Replace the stored snapshot history of *project_id* with *records*.

        Entries are written as given; callers pass previously stored entries
        through untouched and append new ones from ``Snapshot.to_dict()``.

        Raises:
            StorageWriteError: If the write is rejected or the store is unreachable.
        """
        body = {"satellite_snapshots": list(records)}
        headers = {**self._headers, "Prefer": "return=minimal"}
        try:
            response = self._client.patch(
                self._rest_url,
                params={"id": f"eq.{project_id}"},
                json=body,
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            msg = f"Failed to update snapshots for project {project_id}: {exc}"
            raise StorageWriteError(msg) from exc

        logger.debug(
            "Snapshots persisted | project=%s | count=%d",
            project_id,
            len(records),
        )


def _as_rows(payload: object) -> list[dict[str, Any]]:
    if not isinstance(payload, list):
        msg = f"Expected a JSON array from the project store, got {type(payload).__name__}"
        raise ValueError(msg)
    return [row for row in payload if isinstance(row, dict)]


def _row_to_project(row: dict[str, Any]) -> Project | None:
    try:
        return Project.from_record(row)
    except ValueError:
        logger.warning("Skipping project row without id | title=%s", row.get("title", ""))
        return None
