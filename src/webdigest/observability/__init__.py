"""Logging, metrics and fetch activity tracking."""

from __future__ import annotations

from .activity import Activity, ActivityMonitor
from .logging import configure_logging
from .metrics import METRICS, export_prometheus, increment

__all__ = ["Activity", "ActivityMonitor", "configure_logging", "METRICS", "export_prometheus", "increment"]
