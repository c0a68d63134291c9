"""Telegram notification channel."""
import html
import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Send alerts through a Telegram bot."""

    def __init__(self, config: TelegramConfig, timeout: int = 10) -> None:
        self.bot_token = config.alert_bot_token
        self.chat_id = config.chat_id
        self.timeout = timeout

    async def send_alert(self, message: str, subject: str = "") -> bool:
        """Post ``subject`` (bold) and ``message`` to the configured chat."""
        if not self.bot_token or not self.chat_id:
            logger.warning("Telegram credentials not configured")
            return False

        text = html.escape(message)
        if subject:
            text = f"<b>{html.escape(subject)}</b>\n\n{text}"

        url = f"https://api.telegram.org/bot{self.bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_notification": False,
        }

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.post(
                url, json=payload, timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                if response.status != 200:
                    logger.error("Failed to send Telegram alert: %s", response.status)
                    return False

        logger.info("Telegram alert sent")
        return True
