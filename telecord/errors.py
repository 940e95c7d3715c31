"""Exceptions raised by the relay."""

from __future__ import annotations


class TelecordError(Exception):
    """Base class for relay errors."""


class PollError(TelecordError):
    """Fetching updates from Telegram failed. The cursor is left as it was."""

    def __init__(self, cursor: int, reason: str) -> None:
        super().__init__(f"Could not fetch updates at offset {cursor}: {reason}")
        self.cursor = cursor


class RelayError(TelecordError):
    """A single message could not be relayed to Discord."""


class EditCorrelationMiss(TelecordError):
    """An edited message has no known Discord counterpart."""

    def __init__(self, source_id: int) -> None:
        super().__init__(
            f"No Discord message is mapped to Telegram message {source_id}"
        )
        self.source_id = source_id


class IdentityInitializationFailure(TelecordError):
    """The bot identity could not be resolved at startup."""
