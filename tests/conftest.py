"""Pytest configuration: in-memory stand-ins for aiokafka's consumer and producer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Iterator
from types import SimpleNamespace
from typing import Any

import pytest
from aiokafka.errors import (
    ConsumerStoppedError,
    KafkaConnectionError,
    KafkaError,
    KafkaTimeoutError,
)

pytest_plugins = ["easykafka.pytest_fixtures"]

_STOPPED = object()


class FakeConsumer:
    def __init__(self, kafka: FakeKafka, **kwargs: Any) -> None:
        self.kafka = kafka
        self.kwargs = kwargs
        self.topics: list[str] | None = None
        self.listener: Any = None
        self.started = False
        self.stopped = False
        self.commits: list[dict[Any, Any]] = []
        self.queue: asyncio.Queue[Any] = asyncio.Queue()

    async def start(self) -> None:
        await asyncio.sleep(0)
        if self.kafka.fail_starts > 0:
            self.kafka.fail_starts -= 1
            raise KafkaConnectionError("brokers unreachable")
        self.started = True

    def subscribe(self, topics: Iterable[str], listener: Any = None) -> None:
        self.topics = list(topics)
        self.listener = listener

    async def stop(self) -> None:
        self.stopped = True
        self.queue.put_nowait(_STOPPED)

    async def getone(self) -> Any:
        if self.stopped:
            raise ConsumerStoppedError()
        item = await self.queue.get()
        if item is _STOPPED:
            raise ConsumerStoppedError()
        if isinstance(item, BaseException):
            raise item
        return item

    async def commit(self, offsets: dict[Any, Any]) -> None:
        self.commits.append(offsets)


class FakeProducer:
    def __init__(self, kafka: FakeKafka, **kwargs: Any) -> None:
        self.kafka = kafka
        self.kwargs = kwargs
        self.started = False
        self.stopped = False
        # (kwargs, acknowledged-or-pending future) per record, in send order
        self.sent: list[dict[str, Any]] = []
        self.pending: list[tuple[dict[str, Any], asyncio.Future[Any]]] = []
        self.fail_topics: set[str] = set()
        # send() itself raises for these, as when the buffer stays full
        self.refuse_topics: set[str] = set()
        self._offsets: dict[str, int] = {}

    async def start(self) -> None:
        await asyncio.sleep(0)
        if self.kafka.fail_starts > 0:
            self.kafka.fail_starts -= 1
            raise KafkaConnectionError("brokers unreachable")
        self.started = True

    async def stop(self) -> None:
        self.flush_pending()
        self.stopped = True

    async def send_and_wait(self, **kwargs: Any) -> Any:
        self.sent.append(kwargs)
        if kwargs["topic"] in self.fail_topics:
            raise KafkaError(f"send to {kwargs['topic']} failed")
        return self._metadata(kwargs)

    async def send(self, **kwargs: Any) -> asyncio.Future[Any]:
        if kwargs["topic"] in self.refuse_topics:
            raise KafkaTimeoutError(f"buffer full for {kwargs['topic']}")
        self.sent.append(kwargs)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self.pending.append((kwargs, future))
        return future

    def flush_pending(self) -> None:
        for kwargs, future in self.pending:
            if future.done():
                continue
            if kwargs["topic"] in self.fail_topics:
                future.set_exception(KafkaError(f"delivery to {kwargs['topic']} failed"))
            else:
                future.set_result(self._metadata(kwargs))
        self.pending.clear()

    def _metadata(self, kwargs: dict[str, Any]) -> SimpleNamespace:
        topic = kwargs["topic"]
        offset = self._offsets.get(topic, 0)
        self._offsets[topic] = offset + 1
        return SimpleNamespace(
            topic=topic, partition=kwargs.get("partition", 0), offset=offset
        )


class FakeKafka:
    """Factories plus a record of every consumer/producer the client created."""

    def __init__(self) -> None:
        self.consumers: list[FakeConsumer] = []
        self.producers: list[FakeProducer] = []
        self.fail_starts = 0

    def consumer_factory(self, **kwargs: Any) -> FakeConsumer:
        consumer = FakeConsumer(self, **kwargs)
        self.consumers.append(consumer)
        return consumer

    def producer_factory(self, **kwargs: Any) -> FakeProducer:
        producer = FakeProducer(self, **kwargs)
        self.producers.append(producer)
        return producer

    def deliver(
        self,
        topic: str,
        value: bytes,
        *,
        key: bytes | None = None,
        partition: int = 0,
        offset: int = 0,
    ) -> None:
        """Queue a record on the most recently created consumer."""
        self.consumers[-1].queue.put_nowait(
            SimpleNamespace(
                topic=topic, partition=partition, offset=offset, key=key, value=value
            )
        )

    def fail_fetch(self, error: BaseException) -> None:
        self.consumers[-1].queue.put_nowait(error)


@pytest.fixture
def fake_kafka() -> FakeKafka:
    return FakeKafka()


@pytest.fixture
def root_logger() -> Iterator[logging.Logger]:
    """Root logger, restored to its previous level and handlers afterwards."""
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
