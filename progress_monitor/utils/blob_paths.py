"""Blob path generation for rendered snapshot rasters.

Snapshot uploads are **not** idempotent: every capture creates a new
object, and uploads are made with overwrite disabled. Paths therefore
combine the project, the target date and a uniqueness suffix:

    satellite/{project-slug}/{YYYY-MM-DD}-{unique}.png

Path components are sanitised to lowercase slug form: only ``a-z``,
``0-9``, and ``-`` are allowed.
"""

from __future__ import annotations

import re
import time
import uuid
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import date

SNAPSHOT_PREFIX = "satellite"
DEFAULT_PROJECT_SEGMENT = "satellite"

_SLUG_RE = re.compile(r"[^a-z0-9-]+")


def sanitise_slug(value: str, *, fallback: str = "unknown") -> str:
    """Convert a string to a URL/path-safe slug.

    - Lowercase
    - Spaces and underscores → hyphens
    - Strips all characters except ``a-z``, ``0-9``, ``-``
    - Collapses consecutive hyphens
    - Falls back to *fallback* if the result is empty
    """
    slug = value.lower().strip().replace(" ", "-").replace("_", "-")
    slug = _SLUG_RE.sub("", slug)
    slug = re.sub(r"-{2,}", "-", slug).strip("-")
    return slug if slug else fallback


def unique_suffix() -> str:
    """Return a millisecond timestamp plus a short random token."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def build_snapshot_blob_path(
    project_id: str,
    target_date: date,
    *,
    suffix: str = "",
    extension: str = "png",
) -> str:
    """Build the blob path for one rendered snapshot.

    Args:
        project_id: Project identifier; empty ids go under ``satellite/satellite``.
        target_date: The date the capture was requested for.
        suffix: Uniqueness suffix. Generated when empty.
        extension: File extension without the dot.

    Returns:
        ``satellite/{project-slug}/{YYYY-MM-DD}-{suffix}.{extension}``
    """
    project_slug = sanitise_slug(project_id, fallback=DEFAULT_PROJECT_SEGMENT)
    suffix = suffix or unique_suffix()
    return f"{SNAPSHOT_PREFIX}/{project_slug}/{target_date.isoformat()}-{suffix}.{extension}"
