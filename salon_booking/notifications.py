# salon_booking/notifications.py

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, to: str, subject: str, body: str) -> None: ...


class LoggingNotifier:
    """Default notifier; delivery transport is plugged in by deployment."""

    def send(self, to: str, subject: str, body: str) -> None:
        logger.info(f"📧 {subject} -> {to}: {body}")


def dispatch(notifier: Notifier, to: str, subject: str, body: str) -> bool:
    """Send and report success. Failures never reach the scheduling write."""
    try:
        notifier.send(to, subject, body)
    except Exception:
        logger.exception(f"Error sending '{subject}' notification to {to}")
        return False
    return True
