"""
Tests for application wiring.
"""

from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi.testclient import TestClient

from sbmonitor.backend import main as app_main
from sbmonitor.backend.main import create_app
from sbmonitor.backend.processor import SubscriptionProcessor
from sbmonitor.core.error_handling import ConfigurationError


def test_app_loads_configuration_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "monitor.yaml"
    path.write_text(
        "ServiceBusConfiguration:\n"
        "  namespace: test\n"
        "  entity_path: topic\n"
        "  max_retries: 2\n"
        "  monitor_grace_period_seconds: 45\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("SBMONITOR_CONFIG", str(path))

    with TestClient(create_app()) as client:
        state = client.get("/health/state").json()

    assert state["failure_threshold"] == 3
    assert state["grace_period_seconds"] == 45.0


def test_invalid_configuration_aborts_startup(tmp_path, monkeypatch):
    path = tmp_path / "monitor.yaml"
    path.write_text("namespace: test\nentity_path: topic\nmax_retries: 100\n", encoding="utf-8")
    monkeypatch.setenv("SBMONITOR_CONFIG", str(path))

    with pytest.raises(ConfigurationError):
        with TestClient(create_app()):
            pass


def test_processor_factory_is_started_and_closed(short_grace_configuration, clock):
    processor = Mock(spec=SubscriptionProcessor)
    processor.initialize = AsyncMock()
    processor.run = AsyncMock()
    processor.close = AsyncMock()
    factory = Mock(return_value=processor)

    app = create_app(short_grace_configuration, clock=clock, processor_factory=factory)
    with TestClient(app) as client:
        assert client.get("/health/liveness").status_code == 200
        factory.assert_called_once_with(short_grace_configuration, app.state.monitor)
        assert app.state.processor is processor

    processor.initialize.assert_awaited_once()
    processor.stop.assert_called_once_with()
    processor.close.assert_awaited_once()


def test_app_without_processor(short_grace_configuration, clock):
    app = create_app(short_grace_configuration, clock=clock)

    with TestClient(app):
        assert app.state.processor is None


def test_main_validates_configuration_before_serving(tmp_path, monkeypatch):
    path = tmp_path / "monitor.yaml"
    path.write_text("namespace: test\nentity_path: topic\n", encoding="utf-8")
    monkeypatch.setenv("SBMONITOR_CONFIG", str(path))
    monkeypatch.setenv("SBMONITOR_PORT", "9100")
    monkeypatch.delenv("SBMONITOR_PROCESSOR_FACTORY", raising=False)

    with patch.object(app_main.uvicorn, "run") as run:
        app_main.main()

    run.assert_called_once()
    assert run.call_args.kwargs["port"] == 9100


def test_main_fails_on_invalid_configuration(tmp_path, monkeypatch):
    monkeypatch.setenv("SBMONITOR_CONFIG", str(tmp_path / "absent.yaml"))

    with patch.object(app_main.uvicorn, "run") as run:
        with pytest.raises(ConfigurationError):
            app_main.main()

    run.assert_not_called()


def test_load_processor_factory_resolves_import_path():
    factory = app_main.load_processor_factory("sbmonitor.backend.main:create_app")

    assert factory is create_app


def test_load_processor_factory_without_path_returns_none():
    assert app_main.load_processor_factory(None) is None
    assert app_main.load_processor_factory("") is None


@pytest.mark.parametrize(
    "path",
    [
        "sbmonitor.backend.main",
        "sbmonitor.backend.main:missing_factory",
        "sbmonitor.absent_module:factory",
        "sbmonitor.backend.main:DEFAULT_CONFIG_PATH",
    ],
)
def test_load_processor_factory_rejects_bad_paths(path):
    with pytest.raises(ConfigurationError):
        app_main.load_processor_factory(path)


def test_main_wires_processor_factory_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "monitor.yaml"
    path.write_text("namespace: test\nentity_path: topic\n", encoding="utf-8")
    monkeypatch.setenv("SBMONITOR_CONFIG", str(path))
    monkeypatch.setenv("SBMONITOR_PROCESSOR_FACTORY", "sbmonitor.backend.main:create_app")

    with patch.object(app_main, "create_app") as create, patch.object(app_main.uvicorn, "run"):
        app_main.main()

    assert create.call_args.kwargs["processor_factory"] is create_app


def test_main_warns_without_processor_factory(tmp_path, monkeypatch, caplog):
    path = tmp_path / "monitor.yaml"
    path.write_text("namespace: test\nentity_path: topic\n", encoding="utf-8")
    monkeypatch.setenv("SBMONITOR_CONFIG", str(path))
    monkeypatch.delenv("SBMONITOR_PROCESSOR_FACTORY", raising=False)

    with patch.object(app_main.uvicorn, "run"):
        with caplog.at_level("WARNING", logger="sbmonitor.backend.main"):
            app_main.main()

    assert any("SBMONITOR_PROCESSOR_FACTORY not set" in r.getMessage() for r in caplog.records)
