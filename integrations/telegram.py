"""
Telegram bot integration for sending reminder digests.

Sends the need reminder digest to a Telegram channel/chat.
"""

from typing import Optional
import requests
import structlog

from config import settings
from exceptions import TelegramError
from models.need import NeedReminder

logger = structlog.get_logger(__name__)


PRIORITY_EMOJIS = {
    "urgent": "🚨",
    "high": "⚠️",
    "normal": "ℹ️",
}

FLAG_EMOJIS = {
    "Perishable": "🥬",
    "Volunteer": "🙋",
}


def get_telegram_config() -> tuple[Optional[str], Optional[str]]:
    """
    Get Telegram configuration from settings.

    Returns:
        tuple: (bot_token, chat_id)
    """
    bot_token = settings.telegram_bot_token
    chat_id = settings.telegram_chat_id

    if not bot_token or not chat_id:
        logger.warning(
            "telegram_not_configured",
            has_token=bool(bot_token),
            has_chat_id=bool(chat_id)
        )

    return bot_token, chat_id


def format_reminder_message(reminders: list[NeedReminder]) -> str:
    """
    Format reminders as one Telegram message.

    Args:
        reminders: Reminders to include

    Returns:
        Markdown message string
    """
    if not reminders:
        return "✅ *All clear*\n\nNo needs are close to their deadline."

    lines = [f"⏰ *{len(reminders)} need(s) require attention*", ""]

    for reminder in reminders:
        emoji = PRIORITY_EMOJIS.get(reminder.priority, "•")
        due = reminder.needed_by.isoformat() if reminder.needed_by else "flexible"
        lines.append(f"{emoji} *{reminder.title}* (#{reminder.need_id})")
        lines.append(f"   Due: `{due}` · Remaining: {reminder.remaining_quantity}/{reminder.quantity}")
        if reminder.manager_username:
            lines.append(f"   Manager: {reminder.manager_username}")
        if reminder.flags:
            flags = [f"{FLAG_EMOJIS.get(flag, '')} {flag}".strip() for flag in reminder.flags]
            lines.append(f"   {' · '.join(flags)}")
        lines.append("")

    return "\n".join(lines).rstrip()


def send_message(message: str, parse_mode: str = "Markdown") -> bool:
    """
    Send message to Telegram.

    Args:
        message: Message text to send
        parse_mode: Telegram parse mode (Markdown or HTML)

    Returns:
        True if sent, False if Telegram is not configured

    Raises:
        TelegramError: If send fails
    """
    bot_token, chat_id = get_telegram_config()

    if not bot_token or not chat_id:
        logger.warning("telegram_not_configured_skipping_send")
        return False

    url = f"https://api.telegram.org/bot{bot_token}/sendMessage"

    payload = {
        "chat_id": chat_id,
        "text": message,
        "parse_mode": parse_mode,
        "disable_web_page_preview": True,
    }

    try:
        logger.info("sending_telegram_message", chat_id=chat_id)

        response = requests.post(url, json=payload, timeout=10)
        response.raise_for_status()

        result = response.json()

        if not result.get("ok"):
            error_msg = result.get("description", "Unknown error")
            logger.error("telegram_api_error", error=error_msg)
            raise TelegramError(f"Telegram API error: {error_msg}")

        logger.info("telegram_message_sent", message_id=result.get("result", {}).get("message_id"))
        return True

    except requests.exceptions.RequestException as e:
        logger.error("telegram_request_failed", error=str(e))
        raise TelegramError(f"Failed to send Telegram message: {str(e)}")


def send_reminders_to_telegram(reminders: list[NeedReminder]) -> bool:
    """Send the reminder digest; returns False when Telegram is not configured."""
    return send_message(format_reminder_message(reminders))
