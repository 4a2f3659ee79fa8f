"""
Tests for MetricsSink implementations.
"""

import logging

import pytest
from prometheus_client import CollectorRegistry

from sbmonitor.backend.health.sinks import (
    LoggingMetricsSink,
    MetricsSink,
    NoOpMetricsSink,
    PrometheusMetricsSink,
)


class RecordingSink(MetricsSink):
    def __init__(self):
        self.gauges = []
        self.histograms = []

    def emit(self, name, value, tags=None, timestamp=None):
        self.gauges.append((name, value))

    def emit_counter(self, name, value=1.0, tags=None):
        pass

    def emit_histogram(self, name, value, tags=None):
        self.histograms.append((name, value))


@pytest.fixture
def registry():
    return CollectorRegistry()


def test_metrics_sink_is_abstract():
    with pytest.raises(TypeError):
        MetricsSink()


def test_noop_sink_accepts_everything():
    sink = NoOpMetricsSink()

    sink.emit("gauge", 1.0)
    sink.emit_counter("counter")
    sink.emit_histogram("histogram", 2.0)
    sink.emit_health_check("liveness", "healthy", 1.5)


@pytest.mark.parametrize(
    "status, expected",
    [("healthy", 1), ("degraded", 0.5), ("unhealthy", 0), ("unknown", -1)],
)
def test_emit_health_check_maps_status(status, expected):
    sink = RecordingSink()

    sink.emit_health_check("liveness", status, 3.0)

    assert sink.gauges == [("health_check_liveness_status", expected)]
    assert sink.histograms == [("health_check_liveness_latency_ms", 3.0)]


def test_logging_sink_writes_metric_lines(caplog):
    sink = LoggingMetricsSink(log_level=logging.INFO)

    with caplog.at_level(logging.INFO, logger="sbmonitor.backend.health.sinks"):
        sink.emit("subscription_alive", 1, tags={"entity": "topic"})
        sink.emit_counter("subscription_failure_reports")
        sink.emit_histogram("check_latency_ms", 2.5)

    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("METRIC gauge subscription_alive=1 entity=topic ts=") for m in messages)
    assert "METRIC counter subscription_failure_reports+=1.0" in messages
    assert "METRIC histogram check_latency_ms=2.5" in messages


def test_prometheus_sink_gauge(registry):
    sink = PrometheusMetricsSink(registry=registry)

    sink.emit("window", 4)
    sink.emit("window", 2)

    assert registry.get_sample_value("window") == 2


def test_prometheus_sink_counter(registry):
    sink = PrometheusMetricsSink(registry=registry)

    sink.emit_counter("reports")
    sink.emit_counter("reports", 2)

    assert registry.get_sample_value("reports_total") == 3


def test_prometheus_sink_histogram(registry):
    sink = PrometheusMetricsSink(registry=registry)

    sink.emit_histogram("latency", 0.2)
    sink.emit_histogram("latency", 0.4)

    assert registry.get_sample_value("latency_count") == 2


def test_prometheus_sink_labels(registry):
    sink = PrometheusMetricsSink(registry=registry)

    sink.emit("alive", 1, tags={"entity": "topic"})

    assert registry.get_sample_value("alive", {"entity": "topic"}) == 1


def test_prometheus_sink_conflicting_labels_are_logged(registry, caplog):
    sink = PrometheusMetricsSink(registry=registry)
    sink.emit("alive", 1)

    with caplog.at_level(logging.WARNING, logger="sbmonitor.backend.health.sinks"):
        # Same name with a label set is a duplicate registration
        sink.emit("alive", 1, tags={"entity": "topic"})

    assert any("Failed to emit Prometheus gauge alive" in r.getMessage() for r in caplog.records)
