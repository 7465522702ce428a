"""Tests for the PostgREST-backed project store."""

from __future__ import annotations

import json
from datetime import UTC, date, datetime

import httpx
import pytest

from progress_monitor.models.snapshot import Bounds, ProgressAnalysis, ProgressStatus, Snapshot
from progress_monitor.storage.projects import (
    ProjectNotFoundError,
    StorageUnavailableError,
    StorageWriteError,
    SupabaseProjectStore,
)

BASE_URL = "https://example.supabase.co"

ROW = {
    "id": "p-1",
    "title": "Clinic extension",
    "status": "active",
    "location": {"coordinates": {"lat": -0.3031, "lng": 36.08}},
    "satellite_snapshots": [
        {
            "date": "2025-01-01",
            "imageUrl": "https://cdn/p-1/a.png",
            "cloudCoverage": 4.5,
            "bounds": {"north": 0.0, "south": -1.0, "east": 37.0, "west": 36.0},
            "ai_analysis": {"status": "baseline", "notes": "first monitoring snapshot"},
        }
    ],
}


def _store(handler) -> SupabaseProjectStore:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return SupabaseProjectStore(BASE_URL, "service-key", client=client)


class TestListActiveProjects:
    def test_query_and_headers(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[ROW])

        projects = _store(handler).list_active_projects()

        (request,) = seen
        assert request.url.host == "example.supabase.co"
        assert request.url.path == "/rest/v1/initiatives"
        assert request.url.params["status"] == "in.(active,published)"
        assert request.url.params["order"] == "created_at.desc"
        assert request.headers["apikey"] == "service-key"
        assert request.headers["Authorization"] == "Bearer service-key"

        (project,) = projects
        assert project.id == "p-1"
        assert project.coordinates() == (-0.3031, 36.08)
        assert project.last_snapshot.analysis.status is ProgressStatus.BASELINE

    def test_rows_without_id_are_skipped(self) -> None:
        rows = [ROW, {"title": "orphan"}]
        projects = _store(lambda r: httpx.Response(200, json=rows)).list_active_projects()
        assert [p.id for p in projects] == ["p-1"]

    @pytest.mark.parametrize("status", [401, 500, 503])
    def test_http_error_is_unavailable(self, status: int) -> None:
        store = _store(lambda r: httpx.Response(status, text="nope"))
        with pytest.raises(StorageUnavailableError) as exc_info:
            store.list_active_projects()
        assert exc_info.value.stage == "list_projects"
        assert exc_info.value.retryable is True

    def test_connection_error_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(StorageUnavailableError):
            _store(handler).list_active_projects()

    def test_non_array_payload_is_unavailable(self) -> None:
        store = _store(lambda r: httpx.Response(200, json={"message": "oops"}))
        with pytest.raises(StorageUnavailableError, match="JSON array"):
            store.list_active_projects()


class TestGetProject:
    def test_found(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[ROW])

        project = _store(handler).get_project("p-1")

        assert project.title == "Clinic extension"
        assert seen[0].url.params["id"] == "eq.p-1"

    def test_not_found(self) -> None:
        with pytest.raises(ProjectNotFoundError) as exc_info:
            _store(lambda r: httpx.Response(200, json=[])).get_project("missing")
        assert exc_info.value.code == "PROJECT_NOT_FOUND"

    def test_store_error(self) -> None:
        with pytest.raises(StorageUnavailableError) as exc_info:
            _store(lambda r: httpx.Response(500)).get_project("p-1")
        assert exc_info.value.stage == "get_project"


class TestUpdateProjectSnapshots:
    SNAPSHOT = Snapshot(
        date=date(2025, 2, 1),
        image_url="https://cdn/p-1/b.png",
        bounds=Bounds(north=0.0, south=-1.0, east=37.0, west=36.0),
        cloud_coverage_pct=2.0,
        captured_at=datetime(2025, 2, 1, 2, 0, tzinfo=UTC),
        analysis=ProgressAnalysis(ProgressStatus.PROGRESS, "progress detected", 62.0),
    )

    def test_patch_body(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        _store(handler).update_project_snapshots("p-1", [self.SNAPSHOT.to_dict()])

        (request,) = seen
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.p-1"
        assert request.headers["Prefer"] == "return=minimal"
        body = json.loads(request.content)
        (stored,) = body["satellite_snapshots"]
        assert stored["imageUrl"] == "https://cdn/p-1/b.png"
        assert stored["captured_at"] == "2025-02-01T02:00:00+00:00"
        assert stored["ai_analysis"] == {
            "status": "progress",
            "notes": "progress detected",
            "changePercentage": 62.0,
        }

    def test_rejected_write(self) -> None:
        store = _store(lambda r: httpx.Response(409, text="conflict"))
        with pytest.raises(StorageWriteError) as exc_info:
            store.update_project_snapshots("p-1", [self.SNAPSHOT.to_dict()])
        assert exc_info.value.stage == "persist_snapshots"


class TestConstruction:
    def test_missing_url(self) -> None:
        with pytest.raises(StorageUnavailableError, match="SUPABASE_URL"):
            SupabaseProjectStore("", "key")

    def test_missing_key(self) -> None:
        with pytest.raises(StorageUnavailableError, match="SUPABASE_SERVICE_ROLE_KEY"):
            SupabaseProjectStore(BASE_URL, "")
