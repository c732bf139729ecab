"""easykafka command line: send one message or print received messages.

Configured from the ``EASYKAFKA_*`` environment (see :class:`KafkaClientConfig`).
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from collections.abc import Coroutine
from typing import Annotated, Any

import typer

from easykafka.client import KafkaClient
from easykafka.config import KafkaClientConfig
from easykafka.logging import PrintSink, configure_logging
from easykafka.models import Message

COMPONENT = "easykafka"
_logger = logging.getLogger(COMPONENT)

app = typer.Typer(
    name=COMPONENT,
    help="Send to and receive from the Kafka topics in EASYKAFKA_TOPICS.",
    no_args_is_help=True,
)


def _message_line(message: Message) -> str:
    return json.dumps(
        {
            "topic": message.topic,
            "partition": message.partition,
            "offset": message.offset,
            "key": message.key.decode("utf-8", errors="replace")
            if message.key is not None
            else None,
            "value": message.value.decode("utf-8", errors="replace"),
        }
    )


async def _receive(client: KafkaClient, count: int | None) -> None:
    received = 0
    while count is None or received < count:
        message = await client.receive()
        typer.echo(_message_line(message))
        received += 1


async def _run_receive(config: KafkaClientConfig, count: int | None) -> None:
    client = KafkaClient(config)
    loop = asyncio.get_running_loop()
    task = asyncio.create_task(_receive(client, count))
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, task.cancel)

    _logger.info(
        "Receiving",
        extra={"servers": config.servers, "topics": config.topics, "group_id": config.group_id},
    )
    try:
        await task
    except asyncio.CancelledError:
        _logger.info("Shutting down")
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        await client.close()


async def _run_send(config: KafkaClientConfig, message: Message, use_async: bool) -> None:
    async with KafkaClient(config) as client:
        if use_async:
            await client.async_send(message)
        else:
            await client.sync_send(message)
    _logger.info(
        "Message sent",
        extra={"topics": config.topics, "mode": "async" if use_async else "sync"},
    )


def _run(command: str, coro: Coroutine[Any, Any, None]) -> None:
    try:
        asyncio.run(coro)
    except Exception:  # noqa: BLE001
        _logger.exception("Command failed", extra={"command": command})
        raise typer.Exit(1)


@app.callback()
def _setup(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log at DEBUG instead of INFO")
    ] = False,
) -> None:
    # Received messages go to stdout; log lines stay on stderr.
    configure_logging(
        level=logging.DEBUG if verbose else logging.INFO, sink=PrintSink(sys.stderr)
    )


@app.command()
def receive(
    count: Annotated[
        int | None,
        typer.Option("--count", "-n", min=1, help="Stop after this many messages"),
    ] = None,
) -> None:
    """Print received messages as JSON lines until interrupted."""
    _run("receive", _run_receive(KafkaClientConfig(), count))


@app.command()
def send(
    value: Annotated[str, typer.Argument(help="Message value (UTF-8)")],
    key: Annotated[str | None, typer.Option("--key", "-k", help="Message key")] = None,
    use_async: Annotated[
        bool,
        typer.Option("--async", help="Enqueue without waiting for acknowledgement"),
    ] = False,
) -> None:
    """Send one message to every configured topic."""
    message = Message(
        value=value.encode("utf-8"),
        key=key.encode("utf-8") if key is not None else None,
    )
    _run("send", _run_send(KafkaClientConfig(), message, use_async))


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
