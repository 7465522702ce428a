"""Tests for snapshot blob path generation.

Covers:
- sanitise_slug: edge cases, special characters
- unique_suffix: format and uniqueness
- build_snapshot_blob_path: layout and fallbacks
"""

from __future__ import annotations

import re
from datetime import date

from progress_monitor.utils.blob_paths import (
    SNAPSHOT_PREFIX,
    build_snapshot_blob_path,
    sanitise_slug,
    unique_suffix,
)

# ===========================================================================
# sanitise_slug
# ===========================================================================


class TestSanitiseSlug:
    """Test the slug sanitisation function."""

    def test_simple_lowercase(self) -> None:
        assert sanitise_slug("hello") == "hello"

    def test_spaces_and_underscores(self) -> None:
        assert sanitise_slug("Molo Water_Project") == "molo-water-project"

    def test_special_characters_removed(self) -> None:
        assert sanitise_slug("Block A (Phase 2)") == "block-a-phase-2"

    def test_collapses_hyphens(self) -> None:
        assert sanitise_slug("a -- b") == "a-b"

    def test_fallback_when_empty(self) -> None:
        assert sanitise_slug("!!!") == "unknown"
        assert sanitise_slug("", fallback="x") == "x"

    def test_uuid_preserved(self) -> None:
        value = "3f2b1c4e-8d9a-4b7c-9e1f-0a1b2c3d4e5f"
        assert sanitise_slug(value) == value


# ===========================================================================
# unique_suffix
# ===========================================================================


class TestUniqueSuffix:
    def test_format(self) -> None:
        assert re.fullmatch(r"\d+-[0-9a-f]{8}", unique_suffix())

    def test_distinct(self) -> None:
        assert len({unique_suffix() for _ in range(50)}) == 50


# ===========================================================================
# build_snapshot_blob_path
# ===========================================================================


class TestBuildSnapshotBlobPath:
    """Paths follow satellite/{project}/{date}-{suffix}.png."""

    def test_layout(self) -> None:
        path = build_snapshot_blob_path("Proj_1", date(2025, 3, 1), suffix="abc")
        assert path == f"{SNAPSHOT_PREFIX}/proj-1/2025-03-01-abc.png"

    def test_empty_project_uses_default_segment(self) -> None:
        path = build_snapshot_blob_path("", date(2025, 3, 1), suffix="abc")
        assert path == "satellite/satellite/2025-03-01-abc.png"

    def test_generated_suffix_is_unique(self) -> None:
        a = build_snapshot_blob_path("p", date(2025, 3, 1))
        b = build_snapshot_blob_path("p", date(2025, 3, 1))
        assert a != b
        assert a.startswith("satellite/p/2025-03-01-")
        assert a.endswith(".png")

    def test_custom_extension(self) -> None:
        path = build_snapshot_blob_path("p", date(2025, 3, 1), suffix="s", extension="jpg")
        assert path.endswith("2025-03-01-s.jpg")
