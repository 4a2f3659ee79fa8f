"""
Subscription Monitor - Main FastAPI Application

Process wiring for the subscription worker sidecar:
- Loads and validates the Service Bus configuration (fatal on error)
- Builds the SubscriptionMonitor and installs it for the health router
- Optionally runs a SubscriptionProcessor message pump alongside

API Endpoints:
- /health/liveness - Kubernetes liveness check
- /health/state - Failure window snapshot
- /health/metrics - Prometheus metrics
"""

import asyncio
import importlib
import logging
import os
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
import uvicorn

from sbmonitor import __version__
from sbmonitor.backend.health.monitor import (
    router as health_router,
    SubscriptionMonitor,
    set_health_monitor,
)
from sbmonitor.backend.health.sinks import MetricsSink
from sbmonitor.backend.processor import SubscriptionProcessor
from sbmonitor.config.config_utils import load_service_bus_configuration
from sbmonitor.config.settings import ServiceBusConfiguration
from sbmonitor.core.clock import Clock
from sbmonitor.core.error_handling import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/monitor.yaml"

ProcessorFactory = Callable[[ServiceBusConfiguration, SubscriptionMonitor], SubscriptionProcessor]


def create_app(
    configuration: Optional[ServiceBusConfiguration] = None,
    clock: Optional[Clock] = None,
    metrics_sink: Optional[MetricsSink] = None,
    processor_factory: Optional[ProcessorFactory] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        configuration: Service Bus configuration (default: loaded from SBMONITOR_CONFIG)
        clock: Monotonic clock for the monitor
        metrics_sink: MetricsSink for the monitor
        processor_factory: Builds the message pump started with the app
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # ========== STARTUP ==========
        config = configuration
        if config is None:
            config = load_service_bus_configuration(
                os.getenv("SBMONITOR_CONFIG", DEFAULT_CONFIG_PATH)
            )

        monitor = SubscriptionMonitor(config, clock=clock, metrics_sink=metrics_sink)
        set_health_monitor(monitor)
        app.state.monitor = monitor

        processor = None
        processor_task = None
        if processor_factory is not None:
            processor = processor_factory(config, monitor)
            await processor.initialize()
            processor_task = asyncio.create_task(processor.run())
            logger.info("Subscription processor started")
        app.state.processor = processor

        logger.info("Subscription monitor ready")

        yield

        # ========== SHUTDOWN ==========
        if processor is not None:
            processor.stop()
            processor_task.cancel()
            try:
                await processor_task
            except asyncio.CancelledError:
                pass
            await processor.close()
            logger.info("Subscription processor closed")

        set_health_monitor(None)
        logger.info("Subscription monitor shut down")

    app = FastAPI(
        title="Service Bus Subscription Monitor",
        description="Liveness monitoring for Service Bus subscription workers",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(health_router)
    return app


def load_processor_factory(path: Optional[str]) -> Optional[ProcessorFactory]:
    """
    Resolve a ``package.module:callable`` processor factory path.

    Returns None when no path is given. The sidecar then only serves the
    health API and nothing reports failures to its monitor.

    Raises:
        ConfigurationError: If the path is malformed or cannot be imported
    """
    if not path:
        return None
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(
            f"Processor factory must be given as module:callable, got {path!r}",
            component="app",
        )
    try:
        factory = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(
            f"Unable to load processor factory {path}: {e}",
            component="app",
            context={"path": path},
        ) from e
    if not callable(factory):
        raise ConfigurationError(f"Processor factory {path} is not callable", component="app")
    return factory


def main() -> None:
    """Console entry point: validate configuration, then serve the health API."""
    log_level = os.getenv("SBMONITOR_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Invalid configuration must stop the process before it serves traffic
    configuration = load_service_bus_configuration(
        os.getenv("SBMONITOR_CONFIG", DEFAULT_CONFIG_PATH)
    )
    processor_factory = load_processor_factory(os.getenv("SBMONITOR_PROCESSOR_FACTORY"))
    if processor_factory is None:
        logger.warning(
            "SBMONITOR_PROCESSOR_FACTORY not set: no consumer reports failures, "
            "liveness will always be healthy"
        )
    app = create_app(configuration, processor_factory=processor_factory)

    logger.info("Starting subscription monitor...")
    uvicorn.run(
        app,
        host=os.getenv("SBMONITOR_HOST", "0.0.0.0"),
        port=int(os.getenv("SBMONITOR_PORT", "8000")),
        log_level=log_level.lower(),
    )


if __name__ == "__main__":
    main()
