"""
Service Bus Subscription Processor

Consumes a topic through a dedicated, auto-expiring subscription and reports
every transport failure to the subscription monitor.

The Service Bus SDK is not a dependency: the management and subscription
clients are injected through factories. The subscription client factory is
expected to apply the exponential retry policy of the configuration, so each
failed receive attempt surfaces here and is reported, not only exhausted ones.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Awaitable, Callable, List, Optional, Protocol

from sbmonitor.config.settings import ServiceBusConfiguration
from sbmonitor.core.error_handling import ConfigurationError, classify_error, log_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubscriptionDescription:
    """Settings of the subscription created for this process."""
    topic_path: str
    subscription_name: str
    auto_delete_on_idle: timedelta = timedelta(minutes=5)
    max_delivery_count: int = 1
    lock_duration: timedelta = timedelta(seconds=5)
    default_message_time_to_live: timedelta = timedelta(days=1)
    enable_dead_lettering_on_filter_evaluation_exceptions: bool = False
    enable_dead_lettering_on_message_expiration: bool = False


@dataclass
class ReceivedMessage:
    """A message delivered by the subscription client."""
    body: bytes
    lock_token: str


class ManagementClient(Protocol):
    """Administrative operations on the Service Bus namespace."""

    async def subscription_exists(self, topic_path: str, subscription_name: str) -> bool:
        ...

    async def create_subscription(self, description: SubscriptionDescription) -> None:
        ...


class SubscriptionClient(Protocol):
    """Receiving side of a topic subscription."""

    async def receive_messages(self, max_message_count: int = 1) -> List[ReceivedMessage]:
        ...

    async def complete(self, lock_token: str) -> None:
        ...

    async def close(self) -> None:
        ...


ManagementClientFactory = Callable[[ServiceBusConfiguration], ManagementClient]
SubscriptionClientFactory = Callable[[ServiceBusConfiguration, str], SubscriptionClient]
MessageHandler = Callable[[ReceivedMessage], Awaitable[None]]


async def log_message(message: ReceivedMessage) -> None:
    """Default message handler: log the message body."""
    logger.info(f"Received the following message: {message.body.decode('utf-8', errors='replace')}")


class SubscriptionProcessor:
    """
    Handler of a Service Bus topic subscription.

    Lifecycle:
    1. initialize(): create the subscription and open the client (once)
    2. run(): receive, handle and complete messages until stop()
    3. close(): close the subscription client
    """

    def __init__(
        self,
        configuration: ServiceBusConfiguration,
        monitor,
        management_client_factory: ManagementClientFactory,
        subscription_client_factory: SubscriptionClientFactory,
        message_handler: Optional[MessageHandler] = None,
        max_message_count: int = 1,
        error_delay_seconds: float = 0.0,
    ):
        """
        Initialize subscription processor.

        Args:
            configuration: Validated endpoint and retry policy configuration
            monitor: Monitor receiving every transport failure
            management_client_factory: Builds the namespace management client
            subscription_client_factory: Builds the subscription client for a subscription name
            message_handler: Coroutine called for each message (default: log body)
            max_message_count: Messages requested per receive call
            error_delay_seconds: Pause after a reported failure
        """
        if configuration is None:
            raise ConfigurationError("configuration is required", component="subscription_processor")
        if monitor is None:
            raise ValueError("monitor is required")
        configuration.check_validity()

        self.configuration = configuration
        self.monitor = monitor
        self.management_client_factory = management_client_factory
        self.subscription_client_factory = subscription_client_factory
        self.message_handler = message_handler or log_message
        self.max_message_count = max_message_count
        self.error_delay_seconds = error_delay_seconds

        self.subscription_name: Optional[str] = None
        self._client: Optional[SubscriptionClient] = None
        self._initialized = False
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def initialize(self) -> None:
        """
        Create the subscription and open the subscription client.

        Raises:
            RuntimeError: If the processor was already initialized
        """
        if self._initialized:
            raise RuntimeError("Subscription processor is already initialized.")
        self._initialized = True

        self.subscription_name = await self._create_auto_delete_on_idle_subscription()
        self._client = self.subscription_client_factory(self.configuration, self.subscription_name)

    async def _create_auto_delete_on_idle_subscription(self) -> str:
        """Create a uniquely named subscription that is deleted once idle."""
        subscription_name = str(uuid.uuid4())
        topic_path = self.configuration.entity_path

        manager = self.management_client_factory(self.configuration)
        if not await manager.subscription_exists(topic_path, subscription_name):
            await manager.create_subscription(
                SubscriptionDescription(topic_path=topic_path, subscription_name=subscription_name)
            )

        endpoint = self.configuration.endpoint_uri or "connection string endpoint"
        logger.info(
            f"Subscription named {subscription_name} created for topic {topic_path} "
            f"on service bus {endpoint}"
        )
        return subscription_name

    async def run(self) -> None:
        """
        Message pump.

        Every exception raised while receiving, handling or completing a
        message is reported to the monitor; the pump keeps going until stop()
        is called or the task is cancelled.
        """
        if self._client is None:
            raise RuntimeError("Subscription processor is not initialized.")

        self._running = True
        logger.info(f"Subscription processor started for {self.subscription_name}")

        try:
            while self._running:
                try:
                    messages = await self._client.receive_messages(self.max_message_count)
                    for message in messages:
                        await self.message_handler(message)
                        # Complete the message so that it is not received again
                        await self._client.complete(message.lock_token)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    self._report_exception(e)
                    await asyncio.sleep(self.error_delay_seconds)
                else:
                    await asyncio.sleep(0)
        finally:
            self._running = False
            logger.info("Subscription processor stopped")

    def stop(self) -> None:
        """Stop the message pump after the current iteration."""
        self._running = False
        logger.info("Subscription processor stop requested")

    async def close(self) -> None:
        """Close the connection to the service bus."""
        self._running = False
        if self._client is not None:
            await self._client.close()

    def _report_exception(self, exc: Exception) -> None:
        error_ctx = classify_error(
            exc,
            "subscription_processor",
            {"subscription_name": self.subscription_name},
        )
        log_error(error_ctx, logger)
        logger.debug(f"Reporting {type(exc).__name__} exception to monitor.")
        self.monitor.report_failure(exc)
