"""
Exponential Retry Schedule & Failure Threshold

Mirrors the arithmetic of the Service Bus ``RetryExponential`` policy so the
monitor can estimate how many retry-driven failures a healthy client produces
within one grace period:
https://github.com/Azure/azure-sdk-for-net/blob/master/sdk/servicebus/Microsoft.Azure.ServiceBus/src/RetryExponential.cs

The transport adds ``(2^attempt - 1) * 3600`` milliseconds to the minimum
backoff on every attempt and caps the result at the maximum backoff.
"""

import math
import logging
from typing import List

from .error_handling import ConfigurationError

logger = logging.getLogger(__name__)

# Service Bus exponential retry max interval, in milliseconds
MAX_INTERVAL_MS = 3_600
MS_PER_SECOND = 1_000


def _backoff_delay_ms(attempt: int, min_backoff: float, max_backoff: float) -> float:
    increment = (2 ** attempt - 1) * MAX_INTERVAL_MS
    return min(min_backoff * MS_PER_SECOND + increment, max_backoff * MS_PER_SECOND)


def backoff_delay(attempt: int, min_backoff: float, max_backoff: float) -> float:
    """
    Delay in seconds the transport waits before the given attempt.

    Args:
        attempt: Zero-based attempt number
        min_backoff: Minimum backoff in seconds
        max_backoff: Maximum backoff in seconds
    """
    return _backoff_delay_ms(attempt, min_backoff, max_backoff) / MS_PER_SECOND


def calculate_backoff_delays(
    min_backoff: float = 0,
    max_backoff: float = 30,
    max_retries: int = 5,
) -> List[float]:
    """
    Calculate the full backoff schedule (in seconds) of one retry cycle.

    Useful for documentation and for simulating the transport in tests.

    Returns:
        List of delays, one per attempt from 0 to max_retries inclusive
    """
    return [
        backoff_delay(attempt, min_backoff, max_backoff)
        for attempt in range(max_retries + 1)
    ]


def compute_threshold(
    min_backoff: float,
    max_backoff: float,
    max_retries: int,
    grace_period: float,
) -> int:
    """
    Calculate how many failures are expected within one grace period.

    The retry cycle is simulated attempt by attempt until either the retries
    are exhausted or the accumulated delay reaches the grace period. The
    threshold is how many such cycles fit in the grace period.

    Args:
        min_backoff: Minimum backoff in seconds
        max_backoff: Maximum backoff in seconds
        max_retries: Maximum number of retries of the policy
        grace_period: Rolling window in seconds

    Returns:
        Number of failures tolerated within the grace period

    Raises:
        ConfigurationError: If the retry cycle has zero duration
    """
    grace_period_ms = grace_period * MS_PER_SECOND
    elapsed_ms = 0.0
    attempt = 0

    while attempt <= max_retries:
        elapsed_ms += _backoff_delay_ms(attempt, min_backoff, max_backoff)
        if elapsed_ms >= grace_period_ms:
            break
        attempt += 1

    if elapsed_ms <= 0:
        raise ConfigurationError(
            "Retry policy produces a zero-length retry cycle; "
            "no failure threshold can be derived from it",
            component="retry",
            context={
                "min_backoff_seconds": min_backoff,
                "max_backoff_seconds": max_backoff,
                "max_retries": max_retries,
            },
        )

    threshold = math.floor(grace_period_ms / elapsed_ms)
    logger.debug(
        f"Retry cycle of {elapsed_ms:.0f}ms gives a threshold of "
        f"{threshold} per {grace_period}s"
    )
    return threshold
