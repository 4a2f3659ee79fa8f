"""
Service Bus endpoint and retry policy configuration.

The retry policy bounds are hard limits: a configuration outside them is a
deployment error and must stop the process before it serves any traffic.
"""

import logging
import math
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from sbmonitor.core.error_handling import ConfigurationError

logger = logging.getLogger(__name__)

MINIMUM_ALLOWED_BACKOFF_TIME = 0
MAXIMUM_ALLOWED_BACKOFF_TIME = 30
MAXIMUM_ALLOWED_RETRIES = 5
MINIMUM_ALLOWED_GRACE_PERIOD = 45
DEFAULT_GRACE_PERIOD_SECONDS = 120

# PascalCase key names of the appsettings.json section
_LEGACY_KEYS = {
    "ConnectionString": "connection_string",
    "EntityPath": "entity_path",
    "Namespace": "namespace",
    "SbMinimumAllowedBackoffTime": "min_backoff_seconds",
    "SbMaximumAllowedBackoffTime": "max_backoff_seconds",
    "SbMaximumAllowedRetries": "max_retries",
    "SbMonitorGracePeriod": "monitor_grace_period_seconds",
}


@dataclass(frozen=True)
class ServiceBusConfiguration:
    """
    Configuration for a Service Bus topic subscription and its retry policy.

    Attributes:
        connection_string: Connection string (optional when namespace is set)
        entity_path: Topic the subscription is created on
        namespace: Service Bus namespace, enables managed identity
        min_backoff_seconds: Minimum backoff of the exponential retry policy
        max_backoff_seconds: Maximum backoff of the exponential retry policy
        max_retries: Maximum retries of the exponential retry policy
        monitor_grace_period_seconds: Rolling window the monitor counts failures in
    """
    connection_string: Optional[str] = None
    entity_path: Optional[str] = None
    namespace: Optional[str] = None
    min_backoff_seconds: float = MINIMUM_ALLOWED_BACKOFF_TIME
    max_backoff_seconds: float = MAXIMUM_ALLOWED_BACKOFF_TIME
    max_retries: int = MAXIMUM_ALLOWED_RETRIES
    monitor_grace_period_seconds: float = DEFAULT_GRACE_PERIOD_SECONDS

    def __post_init__(self):
        self.check_validity()

    @property
    def endpoint_uri(self) -> Optional[str]:
        """Full endpoint URI derived from the namespace."""
        if self.namespace:
            return f"sb://{self.namespace}.servicebus.windows.net/"
        return None

    @property
    def use_managed_identity(self) -> bool:
        """Whether a managed identity token provider can be used."""
        return bool(self.entity_path) and bool(self.namespace)

    def check_validity(self) -> None:
        """
        Ensure the validity of the retry policy and endpoint configuration.

        Raises:
            ConfigurationError: If any bound is violated or identity fields are missing
        """
        self._require_number("min_backoff_seconds")
        self._require_number("max_backoff_seconds")
        self._require_number("monitor_grace_period_seconds")
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            self._fail(f"The value of max_retries must be an integer, got {self.max_retries!r}")

        if self.min_backoff_seconds < MINIMUM_ALLOWED_BACKOFF_TIME:
            self._fail(
                f"The value of min_backoff_seconds can't be lower than {MINIMUM_ALLOWED_BACKOFF_TIME}"
            )

        if self.max_backoff_seconds > MAXIMUM_ALLOWED_BACKOFF_TIME:
            self._fail(
                f"The value of max_backoff_seconds can't be higher than {MAXIMUM_ALLOWED_BACKOFF_TIME}"
            )

        if self.min_backoff_seconds > self.max_backoff_seconds:
            self._fail("The value of min_backoff_seconds can't be higher than max_backoff_seconds")

        if self.max_retries < 0:
            self._fail("The value of max_retries can't be negative")

        if self.max_retries > MAXIMUM_ALLOWED_RETRIES:
            self._fail(f"The value of max_retries can't be higher than {MAXIMUM_ALLOWED_RETRIES}")

        if self.monitor_grace_period_seconds < MINIMUM_ALLOWED_GRACE_PERIOD:
            self._fail(
                f"The value of monitor_grace_period_seconds can't be lower than {MINIMUM_ALLOWED_GRACE_PERIOD}"
            )

        if not self.entity_path:
            self._fail("entity_path property cannot be empty")

        if not self.connection_string and not self.namespace:
            self._fail("connection_string or namespace property cannot be empty")

    def _require_number(self, name: str) -> None:
        value = getattr(self, name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            self._fail(f"The value of {name} must be a number, got {value!r}")
        elif not math.isfinite(value):
            self._fail(f"The value of {name} must be finite, got {value!r}")

    def _fail(self, message: str) -> None:
        raise ConfigurationError(message, component="configuration", context=self.redacted())

    def redacted(self) -> Dict[str, Any]:
        """Configuration values safe to log (connection string hidden)."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        if values.get("connection_string"):
            values["connection_string"] = "***"
        return values

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceBusConfiguration":
        """
        Build a configuration from a mapping.

        Accepts the snake_case field names as well as the PascalCase
        appsettings key names (e.g. ``SbMaximumAllowedRetries``).

        Raises:
            ConfigurationError: On unknown keys or invalid values
        """
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"ServiceBusConfiguration section must be a mapping, got {type(data).__name__}",
                component="configuration",
            )

        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = _LEGACY_KEYS.get(key, key)
            if name not in known:
                raise ConfigurationError(
                    f"Unknown ServiceBusConfiguration key: {key}",
                    component="configuration",
                )
            kwargs[name] = value

        return cls(**kwargs)
