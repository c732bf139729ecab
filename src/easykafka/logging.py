"""JSON-lines output for the ``logging`` records easykafka emits.

Library modules log through plain ``logging.getLogger(__name__)`` loggers and
never touch the root logger; the embedding application owns that. The
``easykafka`` command line calls :func:`configure_logging` to render records
as one JSON object per line::

    configure_logging(level=logging.INFO, sink=PrintSink(sys.stderr))
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Protocol, TextIO

from typing_extensions import override

# Present on every LogRecord; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
    | {"message", "asctime"}
)


class LogSink(Protocol):
    def write(self, message: str) -> None:  # pragma: no cover
        ...


class PrintSink:
    """Prints each line to ``stream`` (the current stdout by default)."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout

    def write(self, message: str) -> None:
        print(message, file=self._stream, flush=True)


class JsonFormatter(logging.Formatter):
    @override
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": record.created,
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and value is not None
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        # Kafka errors and byte keys are not JSON-native.
        return json.dumps(payload, default=str)


class SinkHandler(logging.Handler):
    """Writes formatted records to a :class:`LogSink`."""

    def __init__(self, sink: LogSink) -> None:
        super().__init__()
        self._sink = sink

    @override
    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._sink.write(self.format(record))
        except Exception:  # noqa: BLE001
            self.handleError(record)


_installed: SinkHandler | None = None


def configure_logging(level: int = logging.INFO, sink: LogSink | None = None) -> None:
    """Send root logging to ``sink`` as JSON lines.

    A second call replaces the handler installed by the first one; handlers
    added by anyone else are left alone.
    """
    global _installed
    root = logging.getLogger()
    if _installed is not None:
        root.removeHandler(_installed)
    _installed = SinkHandler(sink if sink is not None else PrintSink())
    _installed.setFormatter(JsonFormatter())
    root.addHandler(_installed)
    root.setLevel(level)
