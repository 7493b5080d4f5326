"""
Seed users, needs and events with demo data.

Run this script against an empty database (see scripts/schema.sql).
"""

import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

# Add backend to path so we can import modules
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from config import get_supabase_client, get_admin_client
import structlog

logger = structlog.get_logger(__name__)


def seed_users(db) -> dict[str, int]:
    """Insert the manager and two helpers; returns username -> id."""
    existing = db.table("users").select("id", count="exact").execute()

    if existing.count > 0:
        logger.info("users_already_seeded", count=existing.count)
        print(f"✓ Users table already has {existing.count} users")
        rows = db.table("users").select("id, username").execute().data
        return {row["username"]: row["id"] for row in rows}

    users = [
        {"username": "admin", "role": "manager"},
        {"username": "helper1", "role": "helper"},
        {"username": "helper2", "role": "helper"},
    ]

    result = db.table("users").insert(users).execute()
    logger.info("users_seeded", count=len(result.data))
    print(f"✓ Seeded {len(result.data)} users")
    return {row["username"]: row["id"] for row in result.data}


def seed_needs(db, manager_id: int) -> list[dict]:
    """Insert a few needs covering the urgency rules."""
    existing = db.table("needs").select("id", count="exact").execute()

    if existing.count > 0:
        logger.info("needs_already_seeded", count=existing.count)
        print(f"✓ Needs table already has {existing.count} needs")
        return []

    today = date.today()
    needs = [
        {
            "title": "Winter Coats",
            "description": "Adult and child coats for the shelter intake desk",
            "cost": 45.00,
            "quantity": 20,
            "priority": "urgent",
            "category": "Clothing",
            "org_type": "homeless_shelter",
            "needed_by": (today + timedelta(days=5)).isoformat(),
            "bundle_tag": "winter_clothing",
            "request_count": 6,
            "manager_id": manager_id,
        },
        {
            "title": "Fresh Produce Boxes",
            "description": "Weekly produce boxes for the pantry",
            "cost": 25.00,
            "quantity": 40,
            "priority": "high",
            "category": "Food",
            "org_type": "food_bank",
            "needed_by": (today + timedelta(days=9)).isoformat(),
            "is_perishable": True,
            "bundle_tag": "basic_food",
            "service_required": True,
            "request_count": 3,
            "manager_id": manager_id,
        },
        {
            "title": "School Supply Kits",
            "description": "Backpacks with notebooks, pencils and rulers",
            "cost": 18.50,
            "quantity": 60,
            "priority": "normal",
            "category": "Education",
            "org_type": "school",
            "bundle_tag": "other",
            "manager_id": manager_id,
        },
    ]

    result = db.table("needs").insert(needs).execute()
    logger.info("needs_seeded", count=len(result.data))
    print(f"✓ Seeded {len(result.data)} needs")
    return result.data


def seed_events(db, needs: list[dict]) -> list[dict]:
    """Schedule one event for each volunteer need."""
    if not needs:
        return []

    now = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)
    events = []
    for offset, need in enumerate(needs, start=2):
        event_type = "distribution" if need.get("service_required") else "delivery"
        start = now + timedelta(days=offset)
        events.append({
            "need_id": need["id"],
            "event_type": event_type,
            "event_start": start.isoformat(),
            "event_end": (start + timedelta(hours=3)).isoformat(),
            "location": "Community Center",
            "volunteer_slots": 5 if need.get("service_required") else 0,
        })

    result = db.table("distribution_events").insert(events).execute()
    logger.info("events_seeded", count=len(result.data))
    print(f"✓ Seeded {len(result.data)} events")
    return result.data


def seed_all():
    """Seed every table in dependency order."""
    db = get_admin_client() or get_supabase_client()

    try:
        users = seed_users(db)
        needs = seed_needs(db, users["admin"])
        seed_events(db, needs)

        print("\nSample logins:")
        for username, user_id in users.items():
            print(f"  {username} ({user_id})")

    except Exception as e:
        logger.error("seed_failed", error=str(e))
        print(f"✗ Failed to seed data: {e}")
        raise


if __name__ == "__main__":
    print("Seeding database...")
    seed_all()
    print("\nDone!")
