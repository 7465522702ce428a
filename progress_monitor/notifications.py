"""Notification collaborator for escalated projects.

The monitoring job calls ``notify_stall`` when the classifier signals
escalation. Delivery is best effort: the job logs and ignores any
exception raised here.
"""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger("progress_monitor.notifications")


class Notifier(Protocol):
    """Receives stall escalations for monitored projects."""

    def notify_stall(self, project_id: str, title: str) -> None: ...


class LoggingNotifier:
    """Notifier that records escalations in the function log only."""

    def notify_stall(self, project_id: str, title: str) -> None:
        logger.warning("Stall escalation | project=%s | title=%s", project_id, title)
