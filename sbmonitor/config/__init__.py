"""Configuration loading and validation for the subscription monitor."""

from sbmonitor.config.settings import (
    ServiceBusConfiguration,
    MINIMUM_ALLOWED_BACKOFF_TIME,
    MAXIMUM_ALLOWED_BACKOFF_TIME,
    MAXIMUM_ALLOWED_RETRIES,
    MINIMUM_ALLOWED_GRACE_PERIOD,
    DEFAULT_GRACE_PERIOD_SECONDS,
)
from sbmonitor.config.config_utils import (
    ConfigLoader,
    load_service_bus_configuration,
)

__all__ = [
    "ServiceBusConfiguration",
    "MINIMUM_ALLOWED_BACKOFF_TIME",
    "MAXIMUM_ALLOWED_BACKOFF_TIME",
    "MAXIMUM_ALLOWED_RETRIES",
    "MINIMUM_ALLOWED_GRACE_PERIOD",
    "DEFAULT_GRACE_PERIOD_SECONDS",
    "ConfigLoader",
    "load_service_bus_configuration",
]
