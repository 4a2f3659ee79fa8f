"""
Tests for the exception hierarchy and error classification.
"""

import logging

import pytest

from sbmonitor.core.error_handling import (
    ConfigurationError,
    ErrorContext,
    ErrorSeverity,
    InvalidCallError,
    SubscriptionMonitorException,
    classify_error,
    log_error,
)


def test_exceptions_share_base_class():
    assert issubclass(ConfigurationError, SubscriptionMonitorException)
    assert issubclass(InvalidCallError, SubscriptionMonitorException)


def test_exception_to_dict():
    exc = ConfigurationError("bad retries", component="configuration", context={"max_retries": 9})

    data = exc.to_dict()

    assert data["error_type"] == "ConfigurationError"
    assert data["message"] == "bad retries"
    assert data["component"] == "configuration"
    assert data["context"] == {"max_retries": 9}
    assert str(exc) == "bad retries"


def test_severity_ordering():
    assert ErrorSeverity.LOW < ErrorSeverity.MEDIUM < ErrorSeverity.HIGH < ErrorSeverity.CRITICAL
    assert max(ErrorSeverity.MEDIUM, ErrorSeverity.CRITICAL) == ErrorSeverity.CRITICAL


@pytest.mark.parametrize(
    "exc, expected",
    [
        (ConfigurationError("x"), ErrorSeverity.CRITICAL),
        (InvalidCallError("x"), ErrorSeverity.HIGH),
        (TimeoutError("x"), ErrorSeverity.MEDIUM),
        (ConnectionResetError("x"), ErrorSeverity.MEDIUM),
        (OSError("x"), ErrorSeverity.MEDIUM),
        (ValueError("x"), ErrorSeverity.HIGH),
    ],
)
def test_classify_error(exc, expected):
    error_ctx = classify_error(exc, "subscription_processor", {"subscription_name": "s"})

    assert error_ctx.severity == expected
    assert error_ctx.error_type == type(exc).__name__
    assert error_ctx.component == "subscription_processor"
    assert error_ctx.context_data == {"subscription_name": "s"}
    assert error_ctx.original_exception is exc


def test_error_context_defaults():
    error_ctx = ErrorContext(
        error_type="TimeoutError",
        component="c",
        message="m",
        severity=ErrorSeverity.LOW,
    )

    assert error_ctx.context_data == {}
    assert error_ctx.to_dict()["severity"] == "low"


@pytest.mark.parametrize(
    "exc, level",
    [
        (ConfigurationError("x"), logging.CRITICAL),
        (ValueError("x"), logging.ERROR),
        (TimeoutError("x"), logging.WARNING),
    ],
)
def test_log_error_level_follows_severity(exc, level, caplog):
    test_logger = logging.getLogger("sbmonitor.tests.errors")

    with caplog.at_level(logging.DEBUG, logger="sbmonitor.tests.errors"):
        log_error(classify_error(exc, "component"), test_logger)

    assert caplog.records[-1].levelno == level
    assert caplog.records[-1].component == "component"


def test_log_error_low_severity_is_info(caplog):
    error_ctx = ErrorContext(error_type="X", component="c", message="m", severity=ErrorSeverity.LOW)

    with caplog.at_level(logging.INFO, logger="sbmonitor.core.error_handling"):
        log_error(error_ctx)

    assert caplog.records[-1].levelno == logging.INFO
