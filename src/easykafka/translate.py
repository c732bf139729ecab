"""Conversion between :class:`Message` and aiokafka's record types."""

from __future__ import annotations

from typing import Any

from easykafka.models import Message


def to_send_kwargs(message: Message, topic: str) -> dict[str, Any]:
    """Arguments for ``AIOKafkaProducer.send``/``send_and_wait`` to ``topic``."""
    kwargs: dict[str, Any] = {
        "topic": topic,
        "value": message.value,
        "key": message.key,
    }
    # Leave partition selection to aiokafka's partitioner unless pinned.
    if message.partition is not None:
        kwargs["partition"] = message.partition
    return kwargs


def from_record(record: Any) -> Message:
    """Build a :class:`Message` from an aiokafka ``ConsumerRecord``."""
    return Message(
        value=record.value if record.value is not None else b"",
        key=record.key,
        topic=record.topic,
        partition=record.partition,
        offset=record.offset,
    )
