"""Tests for the easykafka command line."""

from __future__ import annotations

import json
import logging
from functools import partial
from typing import TYPE_CHECKING

import pytest
from easykafka import main as cli
from easykafka.client import KafkaClient
from typer.testing import CliRunner

if TYPE_CHECKING:
    from conftest import FakeKafka

runner = CliRunner()


@pytest.fixture
def fake_cli(
    monkeypatch: pytest.MonkeyPatch, fake_kafka: FakeKafka, root_logger: logging.Logger
) -> FakeKafka:
    monkeypatch.setenv("EASYKAFKA_SERVERS", "b1:9092")
    monkeypatch.setenv("EASYKAFKA_TOPICS", "t1,t2")
    monkeypatch.setenv("EASYKAFKA_GROUP_ID", "g1")
    monkeypatch.setattr(
        cli,
        "KafkaClient",
        partial(
            KafkaClient,
            consumer_factory=fake_kafka.consumer_factory,
            producer_factory=fake_kafka.producer_factory,
        ),
    )
    return fake_kafka


def test_help_lists_commands() -> None:
    result = runner.invoke(cli.app, ["--help"])
    assert result.exit_code == 0
    assert "send" in result.output
    assert "receive" in result.output


def test_send_sync(fake_cli: FakeKafka) -> None:
    result = runner.invoke(cli.app, ["send", "hello", "--key", "k"])
    assert result.exit_code == 0, result.output
    [producer] = fake_cli.producers
    assert producer.sent == [
        {"topic": "t1", "value": b"hello", "key": b"k"},
        {"topic": "t2", "value": b"hello", "key": b"k"},
    ]
    assert producer.stopped


def test_send_async_flushes_on_exit(fake_cli: FakeKafka) -> None:
    result = runner.invoke(cli.app, ["send", "hello", "--async"])
    assert result.exit_code == 0, result.output
    [producer] = fake_cli.producers
    assert [r["topic"] for r in producer.sent] == ["t1", "t2"]
    assert producer.pending == []
    assert producer.stopped


def test_send_failure_exits_nonzero(fake_cli: FakeKafka) -> None:
    fake_cli.fail_starts = 1
    result = runner.invoke(cli.app, ["send", "hello"])
    assert result.exit_code == 1


def test_receive_count_stops(fake_cli: FakeKafka, monkeypatch: pytest.MonkeyPatch) -> None:
    original = fake_cli.consumer_factory

    def consumer_with_backlog(**kwargs: object) -> object:
        consumer = original(**kwargs)
        fake_cli.deliver("t1", b"one", key=b"k", offset=0)
        fake_cli.deliver("t2", b"two", offset=3)
        return consumer

    monkeypatch.setattr(
        cli,
        "KafkaClient",
        partial(
            KafkaClient,
            consumer_factory=consumer_with_backlog,
            producer_factory=fake_cli.producer_factory,
        ),
    )
    result = runner.invoke(cli.app, ["receive", "--count", "2"])
    assert result.exit_code == 0, result.output

    lines = [
        json.loads(line)
        for line in result.output.splitlines()
        if line.startswith('{"topic"')
    ]
    assert lines == [
        {"topic": "t1", "partition": 0, "offset": 0, "key": "k", "value": "one"},
        {"topic": "t2", "partition": 0, "offset": 3, "key": None, "value": "two"},
    ]
    assert fake_cli.consumers[0].stopped


def test_receive_rejects_zero_count(root_logger: logging.Logger) -> None:
    result = runner.invoke(cli.app, ["receive", "--count", "0"])
    assert result.exit_code != 0
