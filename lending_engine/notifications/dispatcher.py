"""Alert sink that renders health alerts and fans them out to notifiers."""
from __future__ import annotations

import logging

from ..config import NotificationsConfig
from ..interfaces.notifier import Notifier
from ..models import HealthAlertEvent
from .email import EmailNotifier
from .formatting import alert_subject, build_alert_message
from .telegram import TelegramNotifier

logger = logging.getLogger(__name__)


class AlertDispatcher:
    """Deliver each alert to every configured channel.

    A failing channel is logged and skipped; it never blocks the others.
    """

    def __init__(self, notifiers: list[Notifier] | None = None) -> None:
        self._notifiers: list[Notifier] = list(notifiers or [])

    @classmethod
    def from_config(cls, config: NotificationsConfig) -> AlertDispatcher:
        notifiers: list[Notifier] = []
        if config.telegram.enabled:
            notifiers.append(TelegramNotifier(config.telegram))
        if config.email.enabled:
            notifiers.append(EmailNotifier(config.email))
        return cls(notifiers)

    async def emit(self, event: HealthAlertEvent) -> None:
        message = build_alert_message(event)
        subject = alert_subject(event)
        delivered = 0
        for notifier in self._notifiers:
            try:
                if await notifier.send_alert(message, subject=subject):
                    delivered += 1
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)
        logger.info(
            "Health alert for %s delivered to %d/%d channels",
            event.owner,
            delivered,
            len(self._notifiers),
        )
