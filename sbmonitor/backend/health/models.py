"""
Pydantic models for health API responses.
"""

from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, Field


class HealthCheckResponse(BaseModel):
    """Result of the subscription liveness check."""
    name: str
    status: str = Field(..., description="healthy, degraded, unhealthy or unknown")
    message: str
    latency_ms: float = Field(..., ge=0)
    timestamp: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)


class MonitorStateResponse(BaseModel):
    """Snapshot of the failure window."""
    timestamp: datetime
    alive: bool
    failures_in_window: int = Field(..., ge=0, description="Failures within the grace period")
    failure_threshold: int = Field(..., ge=0, description="Failures that mark the connection unhealthy")
    grace_period_seconds: float = Field(..., gt=0)
