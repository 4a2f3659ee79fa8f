"""
Prometheus Metrics for the Subscription Monitor

Exposes metrics for:
- Failures reported by the message consumer
- Size of the rolling failure window
- Failure threshold derived from the retry policy
- Current liveness verdict
"""

from prometheus_client import Counter, Gauge, CollectorRegistry

# Create a registry for monitor metrics
REGISTRY = CollectorRegistry()

FAILURES_REPORTED_TOTAL = Counter(
    'sbmonitor_failures_reported_total',
    'Total transport failures reported to the monitor',
    registry=REGISTRY
)

FAILURE_WINDOW_SIZE = Gauge(
    'sbmonitor_failure_window_size',
    'Failures recorded within the current grace period',
    registry=REGISTRY
)

FAILURE_THRESHOLD = Gauge(
    'sbmonitor_failure_threshold',
    'Failures tolerated within one grace period',
    registry=REGISTRY
)

CONNECTION_ALIVE = Gauge(
    'sbmonitor_connection_alive',
    'Connection liveness verdict (1=alive, 0=unhealthy)',
    registry=REGISTRY
)
