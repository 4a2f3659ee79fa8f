"""Pytest configuration and fixtures for the subscription monitor test suite."""
import pytest

from sbmonitor.backend.health.monitor import SubscriptionMonitor, set_health_monitor
from sbmonitor.backend.health.sinks import NoOpMetricsSink
from sbmonitor.config.settings import ServiceBusConfiguration
from sbmonitor.core.clock import ManualClock


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================

def _make_configuration(**overrides) -> ServiceBusConfiguration:
    values = {"entity_path": "test", "namespace": "test"}
    values.update(overrides)
    return ServiceBusConfiguration(**values)


@pytest.fixture
def make_configuration():
    """Factory for valid configurations with test endpoint identity."""
    return _make_configuration


@pytest.fixture
def default_configuration():
    """Default retry policy: 0-30s backoff, 5 retries, 120s grace period."""
    return _make_configuration()


@pytest.fixture
def short_grace_configuration():
    """0-30s backoff, 2 retries, 45s grace period (threshold 3)."""
    return _make_configuration(
        min_backoff_seconds=0,
        max_backoff_seconds=30,
        max_retries=2,
        monitor_grace_period_seconds=45,
    )


# ============================================================================
# MONITOR FIXTURES
# ============================================================================

@pytest.fixture
def clock():
    """Manual clock starting at t=1000s."""
    return ManualClock(start=1000.0)


@pytest.fixture
def noop_sink():
    return NoOpMetricsSink()


@pytest.fixture
def monitor(short_grace_configuration, clock, noop_sink):
    """SubscriptionMonitor on a manual clock."""
    return SubscriptionMonitor(short_grace_configuration, clock=clock, metrics_sink=noop_sink)


@pytest.fixture(autouse=True)
def reset_health_monitor():
    """Make sure no monitor leaks between router tests."""
    yield
    set_health_monitor(None)
