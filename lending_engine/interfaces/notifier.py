"""Notifier protocols — alert sink and notification channel abstractions."""
from typing import Protocol

from ..models import HealthAlertEvent


class AlertSink(Protocol):
    """Receives health alerts emitted by the engine."""

    async def emit(self, event: HealthAlertEvent) -> None: ...


class Notifier(Protocol):
    """A single delivery channel (chat bot, mailbox, ...)."""

    async def send_alert(self, message: str, subject: str = "") -> bool: ...
