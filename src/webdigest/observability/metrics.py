"""
Defines the Prometheus metrics recorded for fetches and extractions.
"""

from __future__ import annotations

from typing import Any, Dict

from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Gauge as _OrigGauge
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import generate_latest

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Re-importing this module (test reloads, multiple extractors) must not
# register the same collector twice.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race, fall back to the now-existing collector.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Gauge = _duplicate_safe_factory(_OrigGauge)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "fetches_total": Counter(
            "webdigest_fetches_total",
            "Fetches that reached the network, by terminal outcome",
            ["outcome"],
        ),
        "fetches_in_flight": Gauge(
            "webdigest_fetches_in_flight",
            "Fetches currently started and not yet finished",
        ),
        "fetch_duration_seconds": Histogram(
            "webdigest_fetch_duration_seconds",
            "Time from activity start to its terminal log call",
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
        ),
        "extractions_total": Counter(
            "webdigest_extractions_total",
            "Successful extractions by content kind and strategy",
            ["kind", "strategy"],
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


def increment(name: str, value: float = 1.0, **labels: str) -> None:
    """Increment a counter metric if it is registered."""
    metric = METRICS.get(name)
    if metric is None:
        return
    if labels:
        metric.labels(**labels).inc(value)
    else:
        metric.inc(value)


def export_prometheus() -> str:
    """Export metrics in Prometheus text format."""
    return generate_latest(_PROM_REGISTRY).decode("utf-8")
