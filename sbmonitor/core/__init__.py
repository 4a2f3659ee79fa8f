"""
Subscription Monitor Core - Failure Accounting Primitives

This package provides the exception hierarchy, the monotonic clock
abstraction and the retry-policy threshold calculator used by the
subscription monitor.
"""

from .error_handling import (
    SubscriptionMonitorException,
    ConfigurationError,
    InvalidCallError,
    ErrorSeverity,
    classify_error,
    log_error,
)
from .clock import (
    Clock,
    MonotonicClock,
    ManualClock,
)
from .retry import (
    backoff_delay,
    calculate_backoff_delays,
    compute_threshold,
)

__all__ = [
    # Exceptions
    "SubscriptionMonitorException",
    "ConfigurationError",
    "InvalidCallError",
    # Error handling
    "ErrorSeverity",
    "classify_error",
    "log_error",
    # Clocks
    "Clock",
    "MonotonicClock",
    "ManualClock",
    # Retry policy
    "backoff_delay",
    "calculate_backoff_delays",
    "compute_threshold",
]
