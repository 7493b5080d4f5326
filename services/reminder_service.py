"""
Reminder service: needs that are about to miss their deadline.

A need is reminder-worthy when any of:
    - it is dated and due within reminder_days_warning days
    - it is perishable and undated, or due within reminder_perishable_days
    - it needs volunteers and is due within reminder_service_days
"""

from datetime import date
from typing import Optional
import structlog

from config import get_supabase_client, settings
from models.need import NeedReminder, BundleTag
from services.user_service import get_user_service
from services.urgency_service import days_until, priority_rank, remaining_quantity
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)


def reminder_flags(row: dict) -> list[str]:
    flags = []
    if row.get("is_perishable"):
        flags.append("Perishable")
    if row.get("service_required"):
        flags.append("Volunteer")
    bundle = row.get("bundle_tag")
    if bundle and bundle != BundleTag.OTHER.value:
        flags.append(f"Bundle: {bundle.replace('_', ' ')}")
    return flags


def needs_reminder(row: dict, days: Optional[int]) -> bool:
    if days is not None and days <= settings.reminder_days_warning:
        return True
    if row.get("is_perishable") and (days is None or days <= settings.reminder_perishable_days):
        return True
    if row.get("service_required") and days is not None and days <= settings.reminder_service_days:
        return True
    return False


class ReminderService:
    """Builds the reminder digest."""

    def __init__(self):
        self.db = get_supabase_client()
        self.user_service = get_user_service()

    def get_upcoming(self, today: Optional[date] = None) -> list[NeedReminder]:
        """
        Needs requiring attention, dated first by deadline then priority.

        Args:
            today: Reference date

        Returns:
            List of NeedReminder
        """
        today = today or date.today()
        logger.info("building_reminders", today=today.isoformat())

        try:
            result = self.db.table("needs").select("*").execute()
        except Exception as e:
            logger.error("get_reminder_needs_failed", error=str(e))
            raise DatabaseError("select", str(e))

        candidates = []
        for row in result.data:
            needed_by = date.fromisoformat(str(row["needed_by"])[:10]) if row.get("needed_by") else None
            days = days_until(needed_by, today)
            if needs_reminder(row, days):
                candidates.append((row, needed_by, days))

        candidates.sort(key=lambda c: (
            c[1] is None,
            c[1] or date.max,
            priority_rank(c[0].get("priority")),
            c[0]["id"],
        ))

        usernames = self.user_service.get_usernames({c[0].get("manager_id") for c in candidates})

        reminders = [
            NeedReminder(
                need_id=row["id"],
                title=row["title"],
                priority=row.get("priority") or "normal",
                category=row.get("category"),
                manager_username=usernames.get(row.get("manager_id")),
                needed_by=needed_by,
                days_until_due=days,
                remaining_quantity=remaining_quantity(row.get("quantity"), row.get("quantity_fulfilled")),
                quantity=row.get("quantity") or 0,
                flags=reminder_flags(row),
            )
            for row, needed_by, days in candidates
        ]

        logger.info("reminders_built", count=len(reminders))
        return reminders


def format_reminder(reminder: NeedReminder) -> str:
    """Plain-text block for one reminder."""
    due = reminder.needed_by.isoformat() if reminder.needed_by else "Flexible"
    if reminder.days_until_due is None:
        window = "no deadline"
    else:
        window = f"{reminder.days_until_due} days remaining"

    lines = [
        f"• Need #{reminder.need_id}: {reminder.title}",
        f"  Manager: {reminder.manager_username or 'unassigned'} | Priority: {reminder.priority}",
        f"  Due: {due} ({window})",
        f"  Remaining: {reminder.remaining_quantity}/{reminder.quantity}",
    ]
    if reminder.flags:
        lines.append(f"  Flags: {', '.join(reminder.flags)}")
    return "\n".join(lines)


def format_digest(reminders: list[NeedReminder]) -> str:
    if not reminders:
        return "All clear – no upcoming reminder-worthy needs found."
    blocks = [format_reminder(r) for r in reminders]
    return "Upcoming needs requiring attention:\n\n" + "\n\n".join(blocks)


# Singleton instance for convenience
_reminder_service: Optional[ReminderService] = None


def get_reminder_service() -> ReminderService:
    """Get or create ReminderService instance."""
    global _reminder_service
    if _reminder_service is None:
        _reminder_service = ReminderService()
    return _reminder_service
