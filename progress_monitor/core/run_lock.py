"""Single-flight guard for monitoring runs.

The scheduled and manual triggers both invoke the same job. Without a
guard, a manual run fired while the monthly run is in flight would
interleave writes to the same project's snapshot list. ``SingleFlight``
holds one non-blocking lock per job name; a second caller fails fast with
``RunInProgressError`` instead of waiting.

The guard is process-local: it serialises triggers delivered to the same
Functions worker.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

from progress_monitor.core.exceptions import TransientError

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger("progress_monitor.core.run_lock")


class RunInProgressError(TransientError):
    """Raised when a run is requested while another run holds the guard."""

    default_stage = "run_lock"
    default_code = "RUN_IN_PROGRESS"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"A {name!r} run is already in progress")


class SingleFlight:
    """Registry of non-blocking locks keyed by job name."""

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, name: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(name)
            if lock is None:
                lock = threading.Lock()
                self._locks[name] = lock
            return lock

    def is_running(self, name: str) -> bool:
        """Return ``True`` while a run named *name* holds the guard."""
        return self._lock_for(name).locked()

    @contextmanager
    def hold(self, name: str) -> Iterator[None]:
        """Hold the guard for *name* for the duration of the block.

        Raises:
            RunInProgressError: If another caller already holds it.
        """
        lock = self._lock_for(name)
        if not lock.acquire(blocking=False):
            logger.warning("Run rejected | job=%s | reason=already running", name)
            raise RunInProgressError(name)
        try:
            yield
        finally:
            lock.release()


#: Process-wide guard shared by every trigger in this worker.
RUN_GUARD = SingleFlight()
