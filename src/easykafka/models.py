"""Data models for messages, delivery outcomes and rebalance notifications."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """A message as seen by callers of the client.

    ``partition`` and ``offset`` are filled for received messages. On send,
    ``topic`` is replaced by each configured topic, ``partition`` is honoured
    only when set, and ``offset`` is ignored.
    """

    model_config = ConfigDict(frozen=True)

    value: bytes = Field(default=b"")
    key: bytes | None = Field(default=None)
    topic: str = Field(default="")
    partition: int | None = Field(default=None)
    offset: int | None = Field(default=None)


class DeliveryReport(BaseModel):
    """Outcome of one record handed to the asynchronous producer."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    message: Message
    topic: str = Field(description="Destination topic of this record")
    partition: int | None = Field(default=None)
    offset: int | None = Field(default=None)
    error: BaseException | None = Field(default=None)

    @property
    def ok(self) -> bool:
        return self.error is None


class Notification(BaseModel):
    """Consumer-group rebalance notification."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["assigned", "revoked"]
    partitions: tuple[tuple[str, int], ...] = Field(default=())
