"""Event-callback write path."""

from __future__ import annotations

from .errors import UnsupportedTopicError
from .handler import CallbackTopic, WebhookIngestionHandler

__all__ = ["CallbackTopic", "UnsupportedTopicError", "WebhookIngestionHandler"]
