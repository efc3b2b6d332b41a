"""Telegram notifications for admin-facing events."""
import html
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from chathub.config import settings

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"


def send_telegram_notification(message: str, client: Optional[httpx.Client] = None) -> bool:
    """
    Send an HTML message to the configured chat.

    Never raises; failures are logged.

    Returns:
        True if Telegram accepted the message
    """
    if not settings.TELEGRAM_BOT_TOKEN or not settings.TELEGRAM_CHAT_ID:
        logger.warning("Telegram bot token or chat id not configured, skipping notification")
        return False

    url = TELEGRAM_API_URL.format(token=settings.TELEGRAM_BOT_TOKEN)
    payload = {"chat_id": settings.TELEGRAM_CHAT_ID, "text": message, "parse_mode": "HTML"}

    owns_client = client is None
    client = client or httpx.Client(timeout=10.0)
    try:
        response = client.post(url, json=payload)
        if response.is_error:
            logger.error(f"Telegram notification failed: {response.status_code} {response.text}")
            return False
    except httpx.HTTPError as e:
        logger.error(f"Telegram notification error: {str(e)}")
        return False
    finally:
        if owns_client:
            client.close()

    logger.info("Telegram notification sent")
    return True


def send_new_user_notification(username: str, client: Optional[httpx.Client] = None) -> bool:
    registered_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    message = (
        "🎉 <b>New user registered!</b>\n\n"
        f"👤 Username: <code>{html.escape(username)}</code>\n"
        f"📅 Time: {registered_at}"
    )
    return send_telegram_notification(message, client=client)
