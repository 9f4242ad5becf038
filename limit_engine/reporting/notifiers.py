"""User notification channels."""

import logging
import os

import httpx

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


class TelegramNotifier:
    """Sends messages to the user's Telegram chat; user ids are chat ids."""

    def __init__(
        self,
        bot_token: str | None = None,
        base_url: str = TELEGRAM_API_BASE,
        timeout: float = 10.0,
    ):
        self.bot_token = bot_token or os.environ.get("TELEGRAM_BOT_TOKEN", "")
        if not self.bot_token:
            raise ValueError("TELEGRAM_BOT_TOKEN not set")
        self.base_url = f"{base_url}/bot{self.bot_token}"
        self.timeout = timeout

    def send(self, user_id: int, message: str) -> bool:
        logger.debug("Sending Telegram notification to %d", user_id)
        try:
            resp = httpx.post(
                f"{self.base_url}/sendMessage",
                data={
                    "chat_id": str(user_id),
                    "text": message,
                    "parse_mode": "HTML",
                    "disable_web_page_preview": "true",
                },
                timeout=self.timeout,
            )
        except httpx.RequestError as e:
            logger.error("Failed to send Telegram notification to %d: %s", user_id, e)
            return False
        if resp.status_code != 200:
            logger.error(
                "Telegram API %d for chat %d: %s", resp.status_code, user_id, resp.text,
            )
            return False
        return True


class LogNotifier:
    """Notification sink used when no channel is configured."""

    def send(self, user_id: int, message: str) -> bool:
        logger.info("Notification for user %d: %s", user_id, message)
        return True
