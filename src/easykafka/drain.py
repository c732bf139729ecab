"""Background drain task for a session's errors, notifications and delivery reports.

The session pushes events with the ``report_*`` methods (never blocking, the
queue is unbounded). One task reads them in arrival order: errors are logged
and counted; notifications and successful deliveries are discarded. Optional
callbacks see every event so an embedding application can act on them.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from easykafka.metrics import deliveries_total, delivery_errors_total
from easykafka.models import DeliveryReport, Notification

ErrorCallback = Callable[[BaseException], Awaitable[None] | None]
DeliveryCallback = Callable[[DeliveryReport], Awaitable[None] | None]
NotificationCallback = Callable[[Notification], Awaitable[None] | None]

_logger = logging.getLogger(__name__)

_STOP = object()


class DrainTask:
    """Owns the asyncio task that drains one session's event queue."""

    def __init__(
        self,
        session: str,
        *,
        on_error: ErrorCallback | None = None,
        on_delivery: DeliveryCallback | None = None,
        on_notification: NotificationCallback | None = None,
        stop_timeout_seconds: float = 5.0,
    ) -> None:
        self._session = session
        self._on_error = on_error
        self._on_delivery = on_delivery
        self._on_notification = on_notification
        self._stop_timeout = stop_timeout_seconds
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(
            self._run(), name=f"easykafka-drain-{self._session}"
        )

    async def stop(self) -> None:
        """Process everything queued so far, then end the task."""
        if self._task is None or self._task.done():
            return
        self._queue.put_nowait(_STOP)
        done, _ = await asyncio.wait({self._task}, timeout=self._stop_timeout)
        if not done:
            _logger.warning(
                "Drain task did not stop in time, cancelling",
                extra={"session": self._session, "pending": self._queue.qsize()},
            )
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)

    def report_error(self, error: BaseException) -> None:
        self._queue.put_nowait(error)

    def report_delivery(self, report: DeliveryReport) -> None:
        self._queue.put_nowait(report)

    def report_notification(self, notification: Notification) -> None:
        self._queue.put_nowait(notification)

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            if event is _STOP:
                return
            match event:
                case BaseException():
                    _logger.error(
                        "Kafka error",
                        extra={
                            "session": self._session,
                            "error": str(event),
                            "error_type": type(event).__name__,
                        },
                    )
                    delivery_errors_total.labels(session=self._session).inc()
                    await self._invoke(self._on_error, event)
                case DeliveryReport(error=None):
                    deliveries_total.labels(result="success").inc()
                    await self._invoke(self._on_delivery, event)
                case DeliveryReport():
                    _logger.error(
                        "Kafka delivery failed",
                        extra={
                            "session": self._session,
                            "topic": event.topic,
                            "error": str(event.error),
                            "error_type": type(event.error).__name__,
                        },
                    )
                    deliveries_total.labels(result="failure").inc()
                    delivery_errors_total.labels(session=self._session).inc()
                    await self._invoke(self._on_delivery, event)
                case Notification():
                    _logger.debug(
                        "Consumer group notification",
                        extra={
                            "session": self._session,
                            "kind": event.kind,
                            "partitions": [list(p) for p in event.partitions],
                        },
                    )
                    await self._invoke(self._on_notification, event)

    async def _invoke(self, callback: Callable[[Any], Any] | None, event: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(event)
            if inspect.isawaitable(result):
                await result
        except Exception:  # noqa: BLE001
            _logger.exception(
                "Drain callback failed",
                extra={"session": self._session, "callback": repr(callback)},
            )
