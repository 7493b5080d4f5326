"""
Print the need reminder digest and push it to Telegram when configured.

Intended to run once a day from cron.
"""

import sys
from pathlib import Path

# Add backend to path so we can import modules
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from config import settings
from exceptions import TelegramError
from integrations.telegram import send_reminders_to_telegram
from services.reminder_service import get_reminder_service, format_digest
import structlog

logger = structlog.get_logger(__name__)


def main() -> int:
    reminders = get_reminder_service().get_upcoming()

    print(format_digest(reminders))

    if not settings.telegram_configured:
        print("\nTelegram not configured; digest printed only.")
        return 0

    try:
        send_reminders_to_telegram(reminders)
        print(f"\n✓ Sent {len(reminders)} reminder(s) to Telegram")
        return 0
    except TelegramError as e:
        logger.error("send_reminders_failed", error=e.message)
        print(f"\n✗ Failed to send reminders: {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
