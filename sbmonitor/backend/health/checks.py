"""
Liveness checks for the subscription worker.

Provides:
- HealthCheck protocol implemented by every check
- BaseHealthCheck, which bounds a check by a timeout and turns errors into results
- SubscriptionHealthCheck, which reports the monitor verdict
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class HealthCheckStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class HealthCheckResult:
    """Outcome of one check run, serialized as the liveness response body."""
    name: str
    status: HealthCheckStatus
    message: str = ""
    latency_ms: float = 0.0
    timestamp: datetime = field(default_factory=_utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_healthy(self) -> bool:
        return self.status is HealthCheckStatus.HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "latency_ms": self.latency_ms,
            "timestamp": self.timestamp.isoformat(),
            "metadata": dict(self.metadata),
        }


@runtime_checkable
class HealthCheck(Protocol):
    """Anything with a ``name`` and an async ``check()`` returning a HealthCheckResult."""

    @property
    def name(self) -> str:
        ...

    async def check(self) -> HealthCheckResult:
        ...


class BaseHealthCheck(ABC):
    """
    Runs ``_perform_check`` under a timeout.

    A check that times out or raises yields an UNHEALTHY result.
    """

    def __init__(self, name: str, timeout_seconds: float = 5.0):
        self._name = name
        self.timeout_seconds = timeout_seconds

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    async def _perform_check(self) -> HealthCheckResult:
        ...

    async def check(self) -> HealthCheckResult:
        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(self._perform_check(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            return HealthCheckResult(
                name=self.name,
                status=HealthCheckStatus.UNHEALTHY,
                message=f"Health check timed out after {self.timeout_seconds}s",
                latency_ms=self.timeout_seconds * 1000,
            )
        except Exception as e:
            logger.warning(f"Health check {self.name} failed: {e}")
            result = HealthCheckResult(
                name=self.name,
                status=HealthCheckStatus.UNHEALTHY,
                message=str(e),
            )
        result.latency_ms = (time.perf_counter() - started) * 1000
        return result


class SubscriptionHealthCheck(BaseHealthCheck):
    """
    Liveness of the Service Bus subscription connection.

    HEALTHY while ``monitor.is_alive()`` holds, ``failure_status``
    (DEGRADED by default) otherwise.
    """

    def __init__(
        self,
        monitor: Any,
        name: str = "service_bus_health_check",
        failure_status: HealthCheckStatus = HealthCheckStatus.DEGRADED,
        timeout_seconds: float = 2.0,
    ):
        if monitor is None:
            raise ValueError("monitor is required")
        super().__init__(name, timeout_seconds)
        self.monitor = monitor
        self.failure_status = failure_status

    async def _perform_check(self) -> HealthCheckResult:
        if self.monitor.is_alive():
            status = HealthCheckStatus.HEALTHY
            message = "Service Bus subscription connection is healthy."
        else:
            status = self.failure_status
            message = "No connection established to the Service Bus subscription topic."
        return HealthCheckResult(name=self.name, status=status, message=message)
