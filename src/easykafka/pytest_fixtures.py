"""Shared pytest fixtures (Kafka container, bootstrap servers)."""

from __future__ import annotations

from collections.abc import Generator

import pytest
from testcontainers.kafka import KafkaContainer


@pytest.fixture(scope="session")
def kafka_container() -> Generator[KafkaContainer, None, None]:
    """Start a Kafka container for the test session. Skips if Docker is unavailable."""
    try:
        container = KafkaContainer()
        with container:
            yield container
    except Exception as e:  # noqa: BLE001
        pytest.skip(f"Docker not available: {e}")


@pytest.fixture
def kafka_servers(kafka_container: KafkaContainer) -> str:
    """Bootstrap server string for the session Kafka container."""
    return str(kafka_container.get_bootstrap_server())
