"""Errors raised by the event-callback write path."""

from __future__ import annotations


class UnsupportedTopicError(ValueError):
    """Raised when a callback topic has no registered handler."""

    def __init__(self, topic: str) -> None:
        """Record the unsupported topic."""
        self.topic = topic
        super().__init__(f"Unsupported callback topic: {topic}")
