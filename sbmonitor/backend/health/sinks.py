"""
Metric sinks for the subscription monitor.

The monitor publishes its failure window through a MetricsSink so the backend
can be swapped without touching the failure accounting:
- NoOpMetricsSink: default, drops everything
- LoggingMetricsSink: one log line per metric
- PrometheusMetricsSink: lazily registered prometheus_client metrics
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from prometheus_client import Counter, Gauge, Histogram

from sbmonitor.core.metrics import REGISTRY

logger = logging.getLogger(__name__)

Tags = Optional[Dict[str, str]]

# Gauge value published for each health check status
_STATUS_VALUES = {"healthy": 1, "degraded": 0.5, "unhealthy": 0}


class MetricsSink(ABC):
    """Destination for monitor metrics."""

    @abstractmethod
    def emit(self, name: str, value: float, tags: Tags = None,
             timestamp: Optional[datetime] = None) -> None:
        """Set a gauge, e.g. ``subscription_failure_window``."""

    @abstractmethod
    def emit_counter(self, name: str, value: float = 1.0, tags: Tags = None) -> None:
        """Increment a counter, e.g. ``subscription_failure_reports``."""

    @abstractmethod
    def emit_histogram(self, name: str, value: float, tags: Tags = None) -> None:
        """Record one observation."""

    def emit_health_check(self, check_name: str, status: str, latency_ms: float) -> None:
        """
        Publish the outcome of a liveness check.

        Status is mapped to 1 (healthy), 0.5 (degraded), 0 (unhealthy) or -1.
        """
        self.emit(f"health_check_{check_name}_status", _STATUS_VALUES.get(status, -1))
        self.emit_histogram(f"health_check_{check_name}_latency_ms", latency_ms)


class NoOpMetricsSink(MetricsSink):
    def emit(self, name, value, tags=None, timestamp=None) -> None:
        pass

    def emit_counter(self, name, value=1.0, tags=None) -> None:
        pass

    def emit_histogram(self, name, value, tags=None) -> None:
        pass


class LoggingMetricsSink(MetricsSink):
    """Writes ``METRIC <kind> ...`` lines to the module logger."""

    def __init__(self, log_level: int = logging.DEBUG):
        self.log_level = log_level

    def _log(self, kind: str, text: str, tags: Tags, trailer: str = "") -> None:
        suffix = "".join(f" {k}={v}" for k, v in (tags or {}).items())
        logger.log(self.log_level, f"METRIC {kind} {text}{suffix}{trailer}")

    def emit(self, name, value, tags=None, timestamp=None) -> None:
        ts = timestamp or datetime.now(timezone.utc)
        self._log("gauge", f"{name}={value}", tags, f" ts={ts.isoformat()}")

    def emit_counter(self, name, value=1.0, tags=None) -> None:
        self._log("counter", f"{name}+={value}", tags)

    def emit_histogram(self, name, value, tags=None) -> None:
        self._log("histogram", f"{name}={value}", tags)


class PrometheusMetricsSink(MetricsSink):
    """
    Sink backed by prometheus_client.

    A metric is registered the first time a (name, label names) pair is
    emitted, in ``sbmonitor.core.metrics.REGISTRY`` unless another registry
    is given. Registration conflicts are logged and the sample is dropped.
    """

    _KINDS = {"gauge": Gauge, "counter": Counter, "histogram": Histogram}

    def __init__(self, registry: Optional[Any] = None):
        self.registry = registry if registry is not None else REGISTRY
        self._metrics: Dict[Tuple[str, str, Tuple[str, ...]], Any] = {}

    def _child(self, kind: str, name: str, tags: Tags):
        label_names = tuple(sorted(tags)) if tags else ()
        key = (kind, name, label_names)
        metric = self._metrics.get(key)
        if metric is None:
            metric = self._KINDS[kind](
                name,
                f"Subscription monitor {kind}: {name}",
                labelnames=label_names,
                registry=self.registry,
            )
            self._metrics[key] = metric
        return metric.labels(**tags) if tags else metric

    def emit(self, name, value, tags=None, timestamp=None) -> None:
        try:
            self._child("gauge", name, tags).set(value)
        except ValueError as e:
            logger.warning(f"Failed to emit Prometheus gauge {name}: {e}")

    def emit_counter(self, name, value=1.0, tags=None) -> None:
        try:
            self._child("counter", name, tags).inc(value)
        except ValueError as e:
            logger.warning(f"Failed to emit Prometheus counter {name}: {e}")

    def emit_histogram(self, name, value, tags=None) -> None:
        try:
            self._child("histogram", name, tags).observe(value)
        except ValueError as e:
            logger.warning(f"Failed to emit Prometheus histogram {name}: {e}")
