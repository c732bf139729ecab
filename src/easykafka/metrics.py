"""Prometheus metrics for the client facade."""

from __future__ import annotations

from prometheus_client import Counter

# Sessions
sessions_opened_total = Counter(
    "easykafka_sessions_opened_total",
    "Sessions opened",
    ["session"],  # consumer | sync_producer | async_producer
)
session_open_failures_total = Counter(
    "easykafka_session_open_failures_total",
    "Failed session open attempts",
    ["session"],
)

# Messages
messages_received_total = Counter(
    "easykafka_messages_received_total",
    "Messages returned by receive()",
)
messages_sent_total = Counter(
    "easykafka_messages_sent_total",
    "Records handed to the producer, one per destination topic",
    ["mode"],  # sync | async
)

# Background drain
delivery_errors_total = Counter(
    "easykafka_delivery_errors_total",
    "Errors observed by a drain task",
    ["session"],
)
deliveries_total = Counter(
    "easykafka_deliveries_total",
    "Asynchronous delivery outcomes",
    ["result"],  # success | failure
)
