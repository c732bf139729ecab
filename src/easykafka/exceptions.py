"""Errors raised by the client facade."""

from __future__ import annotations


class EasyKafkaError(Exception):
    """Base class for errors raised by easykafka itself."""


class ConfigurationError(EasyKafkaError):
    """A required setting is empty (group id, or a list with no entries after splitting)."""

    def __init__(self, what: str, value: str) -> None:
        super().__init__(f"{what} must not be empty, got {value!r}")
        self.what = what
        self.value = value


class ClientClosedError(EasyKafkaError):
    """The client (or one of its sessions) was closed; closing is terminal."""

    def __init__(self, session: str) -> None:
        super().__init__(f"{session} session is closed")
        self.session = session
