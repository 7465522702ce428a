"""Shared pytest fixtures for the progress monitor test suite."""

from __future__ import annotations

import random
from dataclasses import replace
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest

from progress_monitor.models.imagery import ProviderConfig
from progress_monitor.models.project import Project
from progress_monitor.providers.mock import MockProvider
from progress_monitor.storage.projects import ProjectNotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from progress_monitor.models.snapshot import Snapshot

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class InMemoryProjectStore:
    """``ProjectStore`` fake holding projects in a dict.

    ``fail_updates_for`` makes ``update_project_snapshots`` raise for the
    named project ids.
    """

    def __init__(
        self,
        projects: Sequence[Project] = (),
        *,
        fail_updates_for: Sequence[str] = (),
    ) -> None:
        self.projects: dict[str, Project] = {p.id: p for p in projects}
        self.fail_updates_for = set(fail_updates_for)
        self.writes: list[tuple[str, list[Any]]] = []

    def list_active_projects(self) -> list[Project]:
        return list(self.projects.values())

    def get_project(self, project_id: str) -> Project:
        try:
            return self.projects[project_id]
        except KeyError:
            raise ProjectNotFoundError(f"Project {project_id} not found") from None

    def update_project_snapshots(self, project_id: str, records: Sequence[Any]) -> None:
        if project_id in self.fail_updates_for:
            raise RuntimeError(f"write rejected for {project_id}")
        self.writes.append((project_id, list(records)))
        self.projects[project_id] = replace(self.projects[project_id], records=tuple(records))


def make_project(
    project_id: str = "p-1",
    lat: object = -0.3031,
    lng: object = 36.08,
    snapshots: tuple[Snapshot, ...] = (),
    records: tuple[Any, ...] = (),
) -> Project:
    """Project with valid default coordinates.

    *snapshots* are stored in store shape after any raw *records*.
    """
    return Project(
        id=project_id,
        title=f"Project {project_id}",
        status="active",
        latitude=lat,
        longitude=lng,
        records=(*records, *(s.to_dict() for s in snapshots)),
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store_factory() -> type[InMemoryProjectStore]:
    """The in-memory ``ProjectStore`` class, for tests that build their own."""
    return InMemoryProjectStore


@pytest.fixture()
def project_factory():
    """Factory for ``Project`` records with valid default coordinates."""
    return make_project


@pytest.fixture()
def mock_provider() -> MockProvider:
    """Mock provider with a seeded RNG and no simulated latency."""
    return MockProvider(ProviderConfig(name="mock"), rng=random.Random(7), sleep=MagicMock())


@pytest.fixture()
def project_store() -> InMemoryProjectStore:
    """Store holding a single valid project ``p-1``."""
    return InMemoryProjectStore([make_project()])
