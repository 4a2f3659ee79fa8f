"""
Subscription Monitor & Liveness API

Decides whether the connection to the Service Bus subscription is alive from
the transient failures reported by the message consumer:
- Failure threshold derived from the exponential retry policy
- Rolling failure window over the configured grace period
- Thread-safe reporting and evaluation under a single lock
- FastAPI router exposing liveness, state and Prometheus metrics
"""

import logging
from collections import deque
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Deque, Dict, Optional, Tuple

from fastapi import APIRouter, Response, HTTPException
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from sbmonitor.config.settings import ServiceBusConfiguration
from sbmonitor.core.clock import Clock, MonotonicClock
from sbmonitor.core.error_handling import ConfigurationError, InvalidCallError
from sbmonitor.core.metrics import (
    REGISTRY,
    CONNECTION_ALIVE,
    FAILURE_THRESHOLD,
    FAILURE_WINDOW_SIZE,
    FAILURES_REPORTED_TOTAL,
)
from sbmonitor.core.retry import compute_threshold
from sbmonitor.backend.health.checks import HealthCheckStatus, SubscriptionHealthCheck
from sbmonitor.backend.health.models import HealthCheckResponse, MonitorStateResponse
from sbmonitor.backend.health.sinks import MetricsSink, NoOpMetricsSink

logger = logging.getLogger(__name__)


# ============================================================================
# SUBSCRIPTION MONITOR CLASS
# ============================================================================


class SubscriptionMonitor:
    """
    Monitor for the Service Bus subscription connection.

    The transport retries failed receives with exponential backoff and the
    consumer reports every failed attempt. A healthy connection therefore
    still produces failures, at most ``failure_threshold`` per grace period.
    Reaching the threshold within one grace period means the connection is
    down. Recovery is purely time based: once old failures leave the window
    the connection is alive again.

    Thread-safe: ``report_failure`` and ``is_alive`` share one lock.

    The Prometheus gauges in ``sbmonitor.core.metrics`` are process-wide, so
    with several monitors in one process the last evaluation wins. Give each
    monitor its own MetricsSink to observe them separately.
    """

    def __init__(
        self,
        configuration: ServiceBusConfiguration,
        clock: Optional[Clock] = None,
        metrics_sink: Optional[MetricsSink] = None,
    ):
        """
        Initialize subscription monitor.

        Args:
            configuration: Validated endpoint and retry policy configuration
            clock: Monotonic clock (default: time.monotonic)
            metrics_sink: Optional MetricsSink for metric emission (default: NoOpMetricsSink)

        Raises:
            ConfigurationError: If the configuration is missing or invalid
        """
        if configuration is None:
            raise ConfigurationError("configuration is required", component="subscription_monitor")
        configuration.check_validity()

        self.configuration = configuration
        self.clock = clock or MonotonicClock()
        self.metrics_sink = metrics_sink or NoOpMetricsSink()

        self._grace_period = float(configuration.monitor_grace_period_seconds)
        self._failure_threshold = compute_threshold(
            configuration.min_backoff_seconds,
            configuration.max_backoff_seconds,
            configuration.max_retries,
            configuration.monitor_grace_period_seconds,
        )

        self._lock = Lock()
        self._failure_timestamps: Deque[float] = deque()
        self._alive = True

        FAILURE_THRESHOLD.set(self._failure_threshold)
        CONNECTION_ALIVE.set(1)

        if self._failure_threshold == 0:
            logger.warning(
                "Retry cycle is longer than the grace period; "
                "a single failure will mark the connection unhealthy"
            )
        logger.info(
            f"SubscriptionMonitor initialized: threshold={self._failure_threshold} "
            f"failures per {self._grace_period:.0f}s grace period"
        )

    @property
    def failure_threshold(self) -> int:
        """Failures within one grace period that mark the connection unhealthy."""
        return self._failure_threshold

    @property
    def grace_period(self) -> float:
        """Rolling window, in seconds, over which failures are counted."""
        return self._grace_period

    def report_failure(self, cause: Optional[BaseException]) -> None:
        """
        Record a transport failure at the current monotonic time.

        Args:
            cause: The error observed by the consumer; not stored

        Raises:
            InvalidCallError: If no failure information is given
        """
        if cause is None:
            raise InvalidCallError("cause is required", component="subscription_monitor")

        with self._lock:
            self._failure_timestamps.append(self.clock.monotonic())

        FAILURES_REPORTED_TOTAL.inc()
        self.metrics_sink.emit_counter("subscription_failure_reports")
        logger.debug(f"Recorded {type(cause).__name__} failure")

    def is_alive(self) -> bool:
        """
        Return True if the connection is alive, False otherwise.

        Failures older than the grace period are discarded permanently.
        """
        alive, _ = self._evaluate()
        return alive

    def get_state(self) -> Dict[str, Any]:
        """Liveness snapshot for the state endpoint."""
        alive, failure_count = self._evaluate()
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "alive": alive,
            "failures_in_window": failure_count,
            "failure_threshold": self._failure_threshold,
            "grace_period_seconds": self._grace_period,
        }

    def _evaluate(self) -> Tuple[bool, int]:
        with self._lock:
            cutoff = self.clock.monotonic() - self._grace_period
            window = self._failure_timestamps
            # Timestamps are appended in clock order, so expired ones are at the front
            while window and window[0] < cutoff:
                window.popleft()

            failure_count = len(window)
            alive = failure_count == 0 or failure_count < self._failure_threshold

            changed = alive != self._alive
            self._alive = alive

            # Gauges and transition logs are published in verdict order
            FAILURE_WINDOW_SIZE.set(failure_count)
            CONNECTION_ALIVE.set(1 if alive else 0)
            self.metrics_sink.emit("subscription_failure_window", failure_count)
            self.metrics_sink.emit("subscription_alive", 1 if alive else 0)

            if changed:
                if alive:
                    logger.info(f"Subscription connection recovered ({failure_count} recent failures)")
                else:
                    logger.warning(
                        f"Subscription connection unhealthy: {failure_count} failures "
                        f"within {self._grace_period:.0f}s (threshold {self._failure_threshold})"
                    )
        return alive, failure_count


# ============================================================================
# FASTAPI ROUTER
# ============================================================================

router = APIRouter(
    prefix="/health", tags=["health"], responses={500: {"description": "Server error"}}
)

# Process-wide monitor instance (installed by the application lifespan)
_health_monitor: Optional[SubscriptionMonitor] = None
_liveness_check: Optional[SubscriptionHealthCheck] = None


def set_health_monitor(
    monitor: Optional[SubscriptionMonitor],
    failure_status: HealthCheckStatus = HealthCheckStatus.DEGRADED,
) -> None:
    """Install the monitor used by the health endpoints (None uninstalls it)."""
    global _health_monitor, _liveness_check
    _health_monitor = monitor
    _liveness_check = (
        SubscriptionHealthCheck(monitor, failure_status=failure_status)
        if monitor is not None else None
    )
    if monitor is not None:
        logger.info("Health monitor endpoint initialized")


def get_health_monitor() -> SubscriptionMonitor:
    """Get health monitor instance."""
    if _health_monitor is None:
        raise HTTPException(status_code=503, detail="Health monitor not initialized")
    return _health_monitor


@router.get("/liveness", response_model=HealthCheckResponse)
async def liveness_check():
    """
    Kubernetes-style liveness check.

    Returns 200 while the subscription connection is alive.
    Returns 503 once failures within the grace period reach the threshold,
    so the orchestrator restarts the process.
    """
    monitor = get_health_monitor()
    result = await _liveness_check.check()
    monitor.metrics_sink.emit_health_check(result.name, result.status.value, result.latency_ms)
    if result.is_healthy:
        return result.to_dict()
    raise HTTPException(status_code=503, detail=result.to_dict())


@router.get("/state", response_model=MonitorStateResponse)
async def health_state():
    """Failure window snapshot: alive flag, failures in window, threshold."""
    try:
        monitor = get_health_monitor()
        return MonitorStateResponse(**monitor.get_state())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"Error getting health state: {e}",
            extra={
                "component": "subscription_monitor",
                "endpoint": "/state",
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )
        raise HTTPException(status_code=500, detail="Failed to get health state")


@router.get("/metrics")
async def prometheus_metrics():
    """Prometheus /metrics endpoint in text exposition format."""
    try:
        metrics_output = generate_latest(REGISTRY)
        return Response(content=metrics_output, media_type=CONTENT_TYPE_LATEST)
    except Exception as e:
        logger.error(
            f"Error generating metrics: {e}",
            extra={
                "component": "subscription_monitor",
                "endpoint": "/metrics",
                "error_type": type(e).__name__,
            },
            exc_info=True,
        )
        raise HTTPException(status_code=500, detail="Failed to generate metrics")
