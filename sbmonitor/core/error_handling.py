"""
Error types and structured error logging for the subscription monitor.

Two error kinds originate in the monitor itself:
- ConfigurationError: invalid retry policy or endpoint identity, fatal at startup
- InvalidCallError: a failure reported without failure information

Transport errors seen by the consumer are classified by severity and logged
with their context before being reported to the monitor.
"""

import functools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class SubscriptionMonitorException(Exception):
    """Base exception carrying the failing component and logging context."""

    def __init__(self, message: str, component: str = "unknown",
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.component = component
        self.context = context or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "component": self.component,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }


class ConfigurationError(SubscriptionMonitorException):
    """Retry policy or endpoint configuration out of bounds."""


class InvalidCallError(SubscriptionMonitorException):
    """A monitor operation was called without a required argument."""


@functools.total_ordering
class ErrorSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    def __lt__(self, other):
        if not isinstance(other, ErrorSeverity):
            return NotImplemented
        members = list(ErrorSeverity)
        return members.index(self) < members.index(other)


# First match wins; transport errors are expected while the client retries
_SEVERITIES = (
    (ConfigurationError, ErrorSeverity.CRITICAL),
    (InvalidCallError, ErrorSeverity.HIGH),
    (TimeoutError, ErrorSeverity.MEDIUM),
    (ConnectionError, ErrorSeverity.MEDIUM),
    (OSError, ErrorSeverity.MEDIUM),
)

_LOG_LEVELS = {
    ErrorSeverity.CRITICAL: (logging.CRITICAL, "CRITICAL ERROR in"),
    ErrorSeverity.HIGH: (logging.ERROR, "ERROR in"),
    ErrorSeverity.MEDIUM: (logging.WARNING, "WARNING in"),
    ErrorSeverity.LOW: (logging.INFO, "INFO from"),
}


@dataclass
class ErrorContext:
    """A classified error occurrence."""
    error_type: str
    component: str
    message: str
    severity: ErrorSeverity
    original_exception: Optional[BaseException] = None
    context_data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.error_type,
            "component": self.component,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context_data,
            "timestamp": self.timestamp.isoformat(),
        }


def classify_error(exc: BaseException, component: str,
                   context: Optional[Dict[str, Any]] = None) -> ErrorContext:
    """
    Classify an exception raised in ``component``.

    Monitor configuration errors are CRITICAL, timeouts and connection
    errors MEDIUM, anything else HIGH.
    """
    severity = next(
        (sev for exc_type, sev in _SEVERITIES if isinstance(exc, exc_type)),
        ErrorSeverity.HIGH,
    )
    return ErrorContext(
        error_type=type(exc).__name__,
        component=component,
        message=str(exc),
        severity=severity,
        original_exception=exc,
        context_data=context or {},
    )


def log_error(error_ctx: ErrorContext, logger_obj: Optional[logging.Logger] = None) -> None:
    """Log a classified error at the level matching its severity."""
    level, prefix = _LOG_LEVELS[error_ctx.severity]
    # 'message' is reserved by LogRecord
    extra = {k: v for k, v in error_ctx.to_dict().items() if k != "message"}
    (logger_obj or logger).log(level, f"{prefix} {error_ctx.component}: {error_ctx.message}", extra=extra)
