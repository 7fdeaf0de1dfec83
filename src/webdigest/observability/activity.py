"""
Activity monitor recording the lifecycle of every fetch.

Each fetch that reaches the network gets exactly one ``log_start`` and
exactly one terminal call, either ``log_complete`` (the server answered, or
the request was aborted with status 0) or ``log_error`` (an exception escaped
the network layer or a collaborator).
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional
from uuid import uuid4

import structlog

from .metrics import METRICS

logger = structlog.get_logger(__name__)


@dataclass
class Activity:
    """One tracked operation."""

    activity_id: str
    type: str
    url: str
    started_at: float
    finished_at: Optional[float] = None
    status: Optional[int] = None
    error: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.finished_at is not None

    @property
    def duration(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return self.finished_at - self.started_at


class ActivityMonitor:
    """Tracks active fetches and keeps a bounded history of finished ones."""

    def __init__(self, history_size: int = 100, metrics_enabled: bool = True) -> None:
        self.history_size = history_size
        self.metrics_enabled = metrics_enabled
        self._active: Dict[str, Activity] = {}
        self._history: Deque[Activity] = deque(maxlen=history_size)

    def log_start(self, *, type: str, url: str) -> str:
        activity = Activity(activity_id=uuid4().hex, type=type, url=url, started_at=time.monotonic())
        self._active[activity.activity_id] = activity
        if self.metrics_enabled:
            METRICS["fetches_in_flight"].inc()
        logger.info("Activity started", activity_id=activity.activity_id, type=type, url=url)
        return activity.activity_id

    def log_complete(self, activity_id: str, status_code: int) -> None:
        activity = self._finish(activity_id)
        if activity is None:
            return
        activity.status = status_code
        if self.metrics_enabled:
            outcome = "aborted" if status_code == 0 else f"{status_code // 100}xx"
            METRICS["fetches_total"].labels(outcome=outcome).inc()
        logger.info(
            "Activity completed",
            activity_id=activity_id,
            url=activity.url,
            status=status_code,
            duration=activity.duration,
        )

    def log_error(self, activity_id: str, message: str) -> None:
        activity = self._finish(activity_id)
        if activity is None:
            return
        activity.error = message
        if self.metrics_enabled:
            METRICS["fetches_total"].labels(outcome="error").inc()
        logger.warning(
            "Activity failed",
            activity_id=activity_id,
            url=activity.url,
            error=message,
            duration=activity.duration,
        )

    def _finish(self, activity_id: str) -> Optional[Activity]:
        activity = self._active.pop(activity_id, None)
        if activity is None:
            logger.debug("Ignoring terminal call for unknown activity", activity_id=activity_id)
            return None
        activity.finished_at = time.monotonic()
        self._history.append(activity)
        if self.metrics_enabled:
            METRICS["fetches_in_flight"].dec()
            METRICS["fetch_duration_seconds"].observe(activity.finished_at - activity.started_at)
        return activity

    def active(self) -> List[Activity]:
        return list(self._active.values())

    def recent(self) -> List[Activity]:
        """Finished activities, oldest first."""
        return list(self._history)

    def clear(self) -> None:
        self._history.clear()
