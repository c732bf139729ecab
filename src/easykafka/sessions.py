"""Sessions wrapping aiokafka clients, and the lazy slot that owns each one."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable
from typing import Any, Generic, Literal, Protocol, TypeVar

from aiokafka.abc import ConsumerRebalanceListener
from aiokafka.errors import ConsumerStoppedError, KafkaError
from aiokafka.structs import OffsetAndMetadata, TopicPartition

from easykafka.config import KafkaClientConfig, consumer_kwargs, producer_kwargs
from easykafka.drain import DrainTask
from easykafka.exceptions import ClientClosedError, ConfigurationError
from easykafka.metrics import (
    messages_received_total,
    messages_sent_total,
    session_open_failures_total,
    sessions_opened_total,
)
from easykafka.models import DeliveryReport, Message, Notification
from easykafka.translate import from_record, to_send_kwargs

_logger = logging.getLogger(__name__)

SlotState = Literal["absent", "active", "closed"]


class Session(Protocol):
    async def start(self) -> None: ...

    async def stop(self) -> None: ...


S = TypeVar("S", bound=Session)


class _NotifyingListener(ConsumerRebalanceListener):
    """Forwards rebalance callbacks to the consumer's drain task."""

    def __init__(self, drain: DrainTask) -> None:
        self._drain = drain

    async def on_partitions_revoked(self, revoked: Iterable[TopicPartition]) -> None:
        self._drain.report_notification(_notification("revoked", revoked))

    async def on_partitions_assigned(
        self, assigned: Iterable[TopicPartition]
    ) -> None:
        self._drain.report_notification(_notification("assigned", assigned))


def _notification(
    kind: Literal["assigned", "revoked"], partitions: Iterable[TopicPartition]
) -> Notification:
    return Notification(
        kind=kind,
        partitions=tuple(sorted((tp.topic, tp.partition) for tp in partitions)),
    )


class ConsumerSession:
    """Group consumer subscribed to every configured topic."""

    def __init__(
        self,
        config: KafkaClientConfig,
        drain: DrainTask,
        factory: Callable[..., Any],
    ) -> None:
        self._config = config
        self._drain = drain
        self._factory = factory
        self._consumer: Any = None

    async def start(self) -> None:
        if not self._config.group_id:
            raise ConfigurationError("group_id", self._config.group_id)
        topics = self._config.topic_list()
        self._consumer = self._factory(**consumer_kwargs(self._config))
        try:
            await self._consumer.start()
            self._consumer.subscribe(
                topics=topics, listener=_NotifyingListener(self._drain)
            )
        except BaseException:
            with contextlib.suppress(Exception):
                await self._consumer.stop()
            self._consumer = None
            raise
        self._drain.start()
        _logger.info(
            "Kafka consumer started",
            extra={
                "servers": self._config.servers,
                "topics": topics,
                "group_id": self._config.group_id,
            },
        )

    async def stop(self) -> None:
        try:
            if self._consumer is not None:
                await self._consumer.stop()
        finally:
            self._consumer = None
            await self._drain.stop()
        _logger.info("Kafka consumer stopped")

    async def receive(self) -> Message:
        """Wait for the next record, mark it committed, and return it.

        Fetch and commit errors go to the drain task; the wait continues.
        """
        consumer = self._consumer
        if consumer is None:
            raise ClientClosedError("consumer")
        while True:
            try:
                record = await consumer.getone()
            except ConsumerStoppedError as e:
                raise ClientClosedError("consumer") from e
            except KafkaError as e:
                self._report(e)
                continue
            tp = TopicPartition(record.topic, record.partition)
            try:
                await consumer.commit({tp: OffsetAndMetadata(record.offset + 1, "")})
            except KafkaError as e:
                self._report(e)
            messages_received_total.inc()
            return from_record(record)

    def _report(self, error: KafkaError) -> None:
        if self._config.consumer.return_errors:
            self._drain.report_error(error)


class SyncProducerSession:
    """Producer that waits for the broker acknowledgement of every record."""

    def __init__(self, config: KafkaClientConfig, factory: Callable[..., Any]) -> None:
        self._config = config
        self._factory = factory
        self._producer: Any = None
        self._topics: list[str] = []

    async def start(self) -> None:
        self._topics = self._config.topic_list()
        self._producer = await _start_producer(self._factory, self._config)
        _logger.info(
            "Kafka sync producer started",
            extra={"servers": self._config.servers, "topics": self._topics},
        )

    async def stop(self) -> None:
        try:
            if self._producer is not None:
                await self._producer.stop()
        finally:
            self._producer = None
        _logger.info("Kafka sync producer stopped")

    async def send(self, message: Message) -> None:
        """Send to each topic in order; the first failure aborts the rest."""
        if self._producer is None:
            raise ClientClosedError("sync_producer")
        for topic in self._topics:
            await self._producer.send_and_wait(**to_send_kwargs(message, topic))
            messages_sent_total.labels(mode="sync").inc()


class AsyncProducerSession:
    """Producer that enqueues records and reports outcomes to its drain task."""

    def __init__(
        self,
        config: KafkaClientConfig,
        drain: DrainTask,
        factory: Callable[..., Any],
    ) -> None:
        self._config = config
        self._drain = drain
        self._factory = factory
        self._producer: Any = None
        self._in_flight: set[asyncio.Future[Any]] = set()
        self._topics: list[str] = []

    async def start(self) -> None:
        self._topics = self._config.topic_list()
        self._producer = await _start_producer(self._factory, self._config)
        self._drain.start()
        _logger.info(
            "Kafka async producer started",
            extra={"servers": self._config.servers, "topics": self._topics},
        )

    async def stop(self) -> None:
        # aiokafka flushes pending records on stop; waiting on the in-flight
        # futures afterwards guarantees every delivery hook has run.
        try:
            if self._producer is not None:
                await self._producer.stop()
            if self._in_flight:
                await asyncio.gather(*self._in_flight, return_exceptions=True)
        finally:
            self._producer = None
            await self._drain.stop()
        _logger.info("Kafka async producer stopped")

    async def send(self, message: Message) -> None:
        """Enqueue one record per topic without waiting for acknowledgement.

        A record the producer refuses to enqueue (buffer timeout, oversized
        record) is reported as a failed delivery; the other topics still go out.
        """
        if self._producer is None:
            raise ClientClosedError("async_producer")
        for topic in self._topics:
            try:
                future = await self._producer.send(**to_send_kwargs(message, topic))
            except KafkaError as e:
                if self._config.producer.return_errors:
                    self._drain.report_delivery(
                        DeliveryReport(message=message, topic=topic, error=e)
                    )
                continue
            self._in_flight.add(future)
            future.add_done_callback(self._in_flight.discard)
            future.add_done_callback(self._delivery_hook(message, topic))
            messages_sent_total.labels(mode="async").inc()

    def _delivery_hook(
        self, message: Message, topic: str
    ) -> Callable[[asyncio.Future[Any]], None]:
        success = self._config.producer.return_successes
        errors = self._config.producer.return_errors

        def hook(future: asyncio.Future[Any]) -> None:
            if future.cancelled():
                error: BaseException | None = asyncio.CancelledError()
            else:
                error = future.exception()
            if error is not None:
                if errors:
                    self._drain.report_delivery(
                        DeliveryReport(message=message, topic=topic, error=error)
                    )
                return
            if success:
                metadata = future.result()
                self._drain.report_delivery(
                    DeliveryReport(
                        message=message,
                        topic=metadata.topic,
                        partition=metadata.partition,
                        offset=metadata.offset,
                    )
                )

        return hook


async def _start_producer(factory: Callable[..., Any], config: KafkaClientConfig) -> Any:
    producer = factory(**producer_kwargs(config))
    try:
        await producer.start()
    except BaseException:
        with contextlib.suppress(Exception):
            await producer.stop()
        raise
    return producer


class SessionSlot(Generic[S]):
    """Lazily creates one session on first use and keeps it until closed.

    States: ``absent`` -> ``active`` -> ``closed``. A failed start leaves the
    slot ``absent`` so the next call starts over. Closed is terminal.
    """

    def __init__(self, name: str, factory: Callable[[], S]) -> None:
        self._name = name
        self._factory = factory
        self._session: S | None = None
        self._closed = False
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> SlotState:
        if self._closed:
            return "closed"
        return "absent" if self._session is None else "active"

    async def get(self) -> S:
        async with self._lock:
            if self._closed:
                raise ClientClosedError(self._name)
            if self._session is None:
                session = self._factory()
                try:
                    await session.start()
                except Exception as e:
                    session_open_failures_total.labels(session=self._name).inc()
                    _logger.warning(
                        "Failed to open session",
                        extra={
                            "session": self._name,
                            "error": str(e),
                            "error_type": type(e).__name__,
                        },
                    )
                    raise
                self._session = session
                sessions_opened_total.labels(session=self._name).inc()
            return self._session

    async def close(self) -> None:
        """Stop the session if active. Best effort: errors are logged, not raised."""
        async with self._lock:
            self._closed = True
            session, self._session = self._session, None
        if session is None:
            return
        try:
            await session.stop()
        except Exception:  # noqa: BLE001
            _logger.exception("Error closing session", extra={"session": self._name})
