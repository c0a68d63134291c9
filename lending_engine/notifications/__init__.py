"""Alert delivery: rendering, fan-out and notification channels."""
from .dispatcher import AlertDispatcher
from .email import EmailNotifier
from .telegram import TelegramNotifier

__all__ = ["AlertDispatcher", "EmailNotifier", "TelegramNotifier"]
