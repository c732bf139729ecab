"""easykafka: a small consumer/producer facade over aiokafka with sane defaults."""

from easykafka.client import KafkaClient
from easykafka.config import (
    ConsumerOptions,
    KafkaClientConfig,
    ProducerOptions,
    apply_defaults,
)
from easykafka.exceptions import ClientClosedError, ConfigurationError, EasyKafkaError
from easykafka.logging import LogSink, PrintSink, configure_logging
from easykafka.models import DeliveryReport, Message, Notification

__all__ = [
    "KafkaClient",
    "KafkaClientConfig",
    "ConsumerOptions",
    "ProducerOptions",
    "apply_defaults",
    "Message",
    "DeliveryReport",
    "Notification",
    "EasyKafkaError",
    "ConfigurationError",
    "ClientClosedError",
    "LogSink",
    "PrintSink",
    "configure_logging",
]
