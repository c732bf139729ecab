"""Client configuration (Pydantic Settings) and the defaults applied to it."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from easykafka.exceptions import ConfigurationError

InitialOffset = Literal["oldest", "newest"]

DEFAULT_INITIAL_OFFSET: InitialOffset = "oldest"
DEFAULT_COMMIT_INTERVAL_SECONDS = 1.0
DEFAULT_SEND_TIMEOUT_SECONDS = 5.0

_AUTO_OFFSET_RESET: dict[InitialOffset, str] = {
    "oldest": "earliest",
    "newest": "latest",
}


class ConsumerOptions(BaseModel):
    """Consumer tuning. ``None`` (or 0) means "use the default"."""

    return_errors: bool = Field(default=False)
    initial_offset: InitialOffset | None = Field(default=None)
    commit_interval_seconds: float | None = Field(default=None)
    # Passed through unchanged to aiokafka.AIOKafkaConsumer.
    extra: dict[str, Any] = Field(default_factory=dict)


class ProducerOptions(BaseModel):
    """Producer tuning. ``None`` (or 0) means "use the default"."""

    return_errors: bool = Field(default=False)
    return_successes: bool = Field(default=False)
    timeout_seconds: float | None = Field(default=None)
    # Passed through unchanged to aiokafka.AIOKafkaProducer.
    extra: dict[str, Any] = Field(default_factory=dict)


class KafkaClientConfig(BaseSettings):
    model_config = SettingsConfigDict(  # pyrefly: ignore[missing-override-decorator]
        env_prefix="EASYKAFKA_",
        env_nested_delimiter="__",
    )

    group_id: str = Field(default="")
    # Comma-separated, e.g. "b1:9092,b2:9092"
    servers: str = Field(default="")
    # Comma-separated, e.g. "t1,t2"
    topics: str = Field(default="")

    consumer: ConsumerOptions = Field(default_factory=ConsumerOptions)
    producer: ProducerOptions = Field(default_factory=ProducerOptions)

    def server_list(self) -> list[str]:
        return split_list(self.servers, "servers")

    def topic_list(self) -> list[str]:
        return split_list(self.topics, "topics")


def split_list(value: str, what: str) -> list[str]:
    """Split a comma-separated list, dropping blank entries.

    Raises :class:`ConfigurationError` if nothing is left.
    """
    items = [item.strip() for item in value.split(",")]
    items = [item for item in items if item]
    if not items:
        raise ConfigurationError(what, value)
    return items


def apply_defaults(config: KafkaClientConfig) -> KafkaClientConfig:
    """Return a copy of ``config`` with the client defaults filled in.

    Error reporting is always on for both sides, and success reporting for
    the producer. Offset policy, commit interval and send timeout are only
    filled when unset; explicit values are kept. Never fails: server and
    topic strings are validated when a session is opened.
    """
    consumer = config.consumer.model_copy(
        update={
            "return_errors": True,
            "initial_offset": config.consumer.initial_offset or DEFAULT_INITIAL_OFFSET,
            "commit_interval_seconds": config.consumer.commit_interval_seconds
            or DEFAULT_COMMIT_INTERVAL_SECONDS,
        }
    )
    producer = config.producer.model_copy(
        update={
            "return_errors": True,
            "return_successes": True,
            "timeout_seconds": config.producer.timeout_seconds
            or DEFAULT_SEND_TIMEOUT_SECONDS,
        }
    )
    return config.model_copy(update={"consumer": consumer, "producer": producer})


def consumer_kwargs(config: KafkaClientConfig) -> dict[str, Any]:
    """Keyword arguments for ``AIOKafkaConsumer`` (topics are subscribed separately)."""
    options = config.consumer
    kwargs: dict[str, Any] = {
        "bootstrap_servers": config.server_list(),
        "group_id": config.group_id,
        "auto_offset_reset": _AUTO_OFFSET_RESET[
            options.initial_offset or DEFAULT_INITIAL_OFFSET
        ],
        "enable_auto_commit": True,
        "auto_commit_interval_ms": int(
            (options.commit_interval_seconds or DEFAULT_COMMIT_INTERVAL_SECONDS)
            * 1000
        ),
    }
    kwargs.update(options.extra)
    return kwargs


def producer_kwargs(config: KafkaClientConfig) -> dict[str, Any]:
    """Keyword arguments for ``AIOKafkaProducer``."""
    options = config.producer
    kwargs: dict[str, Any] = {
        "bootstrap_servers": config.server_list(),
        "request_timeout_ms": int(
            (options.timeout_seconds or DEFAULT_SEND_TIMEOUT_SECONDS) * 1000
        ),
    }
    kwargs.update(options.extra)
    return kwargs
