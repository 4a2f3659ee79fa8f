"""
Subscription Health Package

Provides the subscription monitor and its pluggable abstractions:
- SubscriptionMonitor: failure window and liveness verdict
- HealthCheck: Protocol for defining health checks
- MetricsSink: Interface for metric emission

Example usage:
    from sbmonitor.backend.health import SubscriptionMonitor, NoOpMetricsSink

    monitor = SubscriptionMonitor(configuration, metrics_sink=NoOpMetricsSink())
    monitor.report_failure(error)
    alive = monitor.is_alive()
"""

from sbmonitor.backend.health.checks import (
    HealthCheck,
    BaseHealthCheck,
    HealthCheckResult,
    HealthCheckStatus,
    SubscriptionHealthCheck,
)
from sbmonitor.backend.health.sinks import (
    MetricsSink,
    NoOpMetricsSink,
    LoggingMetricsSink,
    PrometheusMetricsSink,
)
from sbmonitor.backend.health.monitor import (
    SubscriptionMonitor,
    router,
    set_health_monitor,
    get_health_monitor,
)

__all__ = [
    # Checks
    "HealthCheck",
    "BaseHealthCheck",
    "HealthCheckResult",
    "HealthCheckStatus",
    "SubscriptionHealthCheck",
    # Sinks
    "MetricsSink",
    "NoOpMetricsSink",
    "LoggingMetricsSink",
    "PrometheusMetricsSink",
    # Monitor
    "SubscriptionMonitor",
    "router",
    "set_health_monitor",
    "get_health_monitor",
]
