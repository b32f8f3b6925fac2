"""
Status notifications for embedding backends.

Notifications are fire-and-forget: a failing notifier must never break
an embedding call.
"""

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)


class StatusNotifier:
    """Default notifier: writes status messages to the log."""

    def notify(self, message: str) -> None:
        logger.info(f"[status] {message}")


class CallbackNotifier(StatusNotifier):
    """Forward status messages to a user-supplied callable (UI, webhook, ...)."""

    def __init__(self, callback: Callable[[str], None]):
        self.callback = callback

    def notify(self, message: str) -> None:
        self.callback(message)


class RecordingNotifier(StatusNotifier):
    """Keep every message in memory. Handy for tests and status pages."""

    def __init__(self):
        self.messages: List[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)


def safe_notify(notifier: StatusNotifier, message: str) -> None:
    """Deliver a notification, logging instead of raising on failure."""
    try:
        notifier.notify(message)
    except Exception as e:
        logger.warning(f"Status notification failed: {e}")
