"""Client facade: blocking receive, synchronous send and asynchronous send."""

from __future__ import annotations

import logging
from collections.abc import Callable
from types import TracebackType
from typing import Any, Self

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer

from easykafka.config import KafkaClientConfig, apply_defaults
from easykafka.drain import (
    DeliveryCallback,
    DrainTask,
    ErrorCallback,
    NotificationCallback,
)
from easykafka.models import Message
from easykafka.sessions import (
    AsyncProducerSession,
    ConsumerSession,
    SessionSlot,
    SyncProducerSession,
)

_logger = logging.getLogger(__name__)


class KafkaClient:
    """Consumer, sync producer and async producer behind one object.

    Each of the three sessions is opened on first use and reused until
    :meth:`close`. Closing is terminal for the instance.

    Usage::

        client = KafkaClient(KafkaClientConfig(servers="b1:9092", topics="t1", group_id="g1"))
        await client.sync_send(Message(value=b"x", key=b"k"))
        message = await client.receive()
        await client.close()
    """

    def __init__(
        self,
        config: KafkaClientConfig,
        *,
        on_delivery: DeliveryCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_notification: NotificationCallback | None = None,
        consumer_factory: Callable[..., Any] = AIOKafkaConsumer,
        producer_factory: Callable[..., Any] = AIOKafkaProducer,
    ) -> None:
        self._config = apply_defaults(config)
        self._on_delivery = on_delivery
        self._on_error = on_error
        self._on_notification = on_notification
        self._consumer_factory = consumer_factory
        self._producer_factory = producer_factory
        self._closed = False

        self._consumer = SessionSlot("consumer", self._new_consumer)
        self._sync_producer = SessionSlot("sync_producer", self._new_sync_producer)
        self._async_producer = SessionSlot("async_producer", self._new_async_producer)

    @property
    def config(self) -> KafkaClientConfig:
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    async def receive(self) -> Message:
        """Wait for the next message on any configured topic.

        The offset is marked committed before the message is returned.
        Only session setup errors are raised; per-message errors are logged.
        """
        session = await self._consumer.get()
        return await session.receive()

    async def sync_send(self, message: Message) -> None:
        """Send ``message`` to every configured topic, waiting for each ack.

        Raises the first failure; topics before it may already have the message.
        """
        session = await self._sync_producer.get()
        await session.send(message)

    async def async_send(self, message: Message) -> None:
        """Enqueue ``message`` for every configured topic and return.

        Delivery outcomes go to the logs and the ``on_delivery`` callback.
        """
        session = await self._async_producer.get()
        await session.send(message)

    async def close(self) -> None:
        """Release every open session. Best effort; never raises."""
        if self._closed:
            return
        self._closed = True
        for slot in (self._consumer, self._sync_producer, self._async_producer):
            await slot.close()
        _logger.info("Kafka client closed")

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _new_consumer(self) -> ConsumerSession:
        drain = DrainTask(
            "consumer",
            on_error=self._on_error,
            on_notification=self._on_notification,
        )
        return ConsumerSession(self._config, drain, self._consumer_factory)

    def _new_sync_producer(self) -> SyncProducerSession:
        return SyncProducerSession(self._config, self._producer_factory)

    def _new_async_producer(self) -> AsyncProducerSession:
        drain = DrainTask(
            "async_producer",
            on_error=self._on_error,
            on_delivery=self._on_delivery,
        )
        return AsyncProducerSession(self._config, drain, self._producer_factory)
