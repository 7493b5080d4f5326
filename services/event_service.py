"""
Event service: volunteer events scheduled against needs.

Capacity rule for signups: when volunteer_slots > 0 and the number of
*other* confirmed volunteers has reached it, a new signup is waitlisted.
Cancelling keeps the row with status "cancelled".
"""

from datetime import datetime, timezone
from typing import Optional
import structlog

from config import get_supabase_client
from models.event import (
    EventCreate,
    EventUpdate,
    EventResponse,
    EventType,
    VolunteerStatus,
)
from models.need import BundleTag
from services.user_service import get_user_service
from exceptions import (
    EventNotFoundError,
    NeedNotFoundError,
    SignupNotFoundError,
    ValidationError,
    DatabaseError
)

logger = structlog.get_logger(__name__)


def as_utc(value) -> Optional[datetime]:
    """Parse/normalise a timestamp to an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def signup_status(volunteer_slots: int, confirmed_count: int) -> VolunteerStatus:
    """Confirmed unless the event is capped and already full."""
    if volunteer_slots and volunteer_slots > 0 and confirmed_count >= volunteer_slots:
        return VolunteerStatus.WAITLIST
    return VolunteerStatus.CONFIRMED


class EventService:
    """
    Event business logic.

    Handles event CRUD, listing and volunteer signups.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "distribution_events"
        self.volunteers_table = "event_volunteers"
        self.user_service = get_user_service()

    # ===================
    # HELPERS
    # ===================

    def _get_row(self, event_id: int) -> dict:
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", event_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_event_failed", event_id=event_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise EventNotFoundError(event_id)
        return result.data[0]

    def _get_need_rows(self, need_ids: set[int]) -> dict[int, dict]:
        ids = sorted(i for i in need_ids if i is not None)
        if not ids:
            return {}
        try:
            result = self.db.table("needs").select("*").in_("id", ids).execute()
        except Exception as e:
            logger.error("get_event_needs_failed", error=str(e))
            raise DatabaseError("select", str(e))
        return {row["id"]: row for row in result.data}

    def _require_need(self, need_id: int) -> dict:
        need = self._get_need_rows({need_id}).get(need_id)
        if need is None:
            raise NeedNotFoundError(need_id)
        return need

    def _volunteer_rows(self, event_ids: list[int]) -> list[dict]:
        if not event_ids:
            return []
        try:
            result = (
                self.db.table(self.volunteers_table)
                .select("*")
                .in_("event_id", event_ids)
                .execute()
            )
        except Exception as e:
            logger.error("get_event_volunteers_failed", error=str(e))
            raise DatabaseError("select", str(e))
        return result.data

    def _normalize(self, rows: list[dict], user_id: Optional[int] = None) -> list[EventResponse]:
        """Attach need summary, volunteer counts and the caller's status."""
        needs = self._get_need_rows({row.get("need_id") for row in rows})
        volunteers = self._volunteer_rows([row["id"] for row in rows])

        events = []
        for row in rows:
            signups = [v for v in volunteers if v["event_id"] == row["id"]]
            confirmed = sum(1 for v in signups if v["status"] == VolunteerStatus.CONFIRMED.value)
            waitlist = sum(1 for v in signups if v["status"] == VolunteerStatus.WAITLIST.value)
            slots = row.get("volunteer_slots") or 0

            user_status = None
            if user_id is not None:
                mine = next((v for v in signups if v["user_id"] == user_id), None)
                user_status = mine["status"] if mine else None

            need = needs.get(row.get("need_id"), {})
            events.append(EventResponse(
                **row,
                need_title=need.get("title"),
                priority=need.get("priority"),
                bundle_tag=need.get("bundle_tag"),
                category=need.get("category"),
                service_required=need.get("service_required"),
                manager_id=need.get("manager_id"),
                confirmed_count=confirmed,
                waitlist_count=waitlist,
                remaining_slots=max(slots - confirmed, 0) if slots > 0 else None,
                user_status=user_status,
                is_confirmed=user_status == VolunteerStatus.CONFIRMED.value,
                is_waitlisted=user_status == VolunteerStatus.WAITLIST.value,
            ))
        return events

    @staticmethod
    def _iso(value: Optional[datetime]) -> Optional[str]:
        return as_utc(value).isoformat() if value is not None else None

    # ===================
    # READ OPERATIONS
    # ===================

    def get_upcoming(
        self,
        event_type: Optional[EventType] = None,
        bundle: Optional[str] = None,
        include_past: bool = False,
        limit: Optional[int] = None,
        manager_id: Optional[int] = None,
        user_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[EventResponse]:
        """
        Get events ordered by start time.

        Args:
            event_type: Only this event type
            bundle: Only events whose need carries this bundle tag (unknown tags ignored)
            include_past: Include events that already started
            limit: Max results
            manager_id: Only events on needs owned by this manager
            user_id: Fill in user_status for this user
            now: Reference time

        Returns:
            List of EventResponse
        """
        logger.info(
            "getting_upcoming_events",
            event_type=event_type,
            bundle=bundle,
            include_past=include_past,
            manager_id=manager_id
        )
        now = as_utc(now) or datetime.now(timezone.utc)

        try:
            query = self.db.table(self.table).select("*")
            if event_type:
                query = query.eq("event_type", EventType(event_type).value)
            if not include_past:
                query = query.gte("event_start", now.isoformat())
            result = query.order("event_start").execute()
        except Exception as e:
            logger.error("get_upcoming_events_failed", error=str(e))
            raise DatabaseError("select", str(e))

        events = self._normalize(result.data, user_id)

        if bundle and bundle in {b.value for b in BundleTag}:
            events = [e for e in events if e.bundle_tag == bundle]
        if manager_id is not None:
            events = [e for e in events if e.manager_id == manager_id]
        if not include_past:
            events = [e for e in events if as_utc(e.event_start) >= now]

        events.sort(key=lambda e: (as_utc(e.event_start), e.id))

        if limit is not None and limit > 0:
            events = events[:limit]

        logger.info("upcoming_events_retrieved", count=len(events))
        return events

    def get_for_need(self, need_id: int, user_id: Optional[int] = None) -> list[EventResponse]:
        """All events for one need, ordered by start."""
        logger.info("getting_need_events", need_id=need_id)
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("need_id", need_id)
                .order("event_start")
                .execute()
            )
        except Exception as e:
            logger.error("get_need_events_failed", need_id=need_id, error=str(e))
            raise DatabaseError("select", str(e))

        events = self._normalize(result.data, user_id)
        events.sort(key=lambda e: (as_utc(e.event_start), e.id))
        return events

    def get_by_id(self, event_id: int, user_id: Optional[int] = None) -> EventResponse:
        """
        Get a single event.

        Raises:
            EventNotFoundError: If event doesn't exist
        """
        return self._normalize([self._get_row(event_id)], user_id)[0]

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: EventCreate, acting_user_id: int) -> EventResponse:
        """
        Create a new event.

        Raises:
            ManagerRoleRequiredError: If acting user is not a manager
            NeedNotFoundError: If the need doesn't exist
        """
        logger.info("creating_event", need_id=data.need_id, event_type=data.event_type.value)

        self.user_service.require_manager(acting_user_id, "create events")
        self._require_need(data.need_id)

        insert_data = {
            "need_id": data.need_id,
            "event_type": data.event_type.value,
            "event_start": self._iso(data.event_start),
            "event_end": self._iso(data.event_end),
            "location": data.location or None,
            "volunteer_slots": data.volunteer_slots,
            "notes": data.notes or None,
        }

        try:
            result = self.db.table(self.table).insert(insert_data).execute()
        except Exception as e:
            logger.error("create_event_failed", need_id=data.need_id, error=str(e))
            raise DatabaseError("insert", str(e))

        event = self._normalize(result.data)[0]
        logger.info("event_created", event_id=event.id)
        return event

    def update(self, event_id: int, data: EventUpdate, acting_user_id: int) -> EventResponse:
        """
        Update an event.

        Raises:
            ManagerRoleRequiredError: If acting user is not a manager
            EventNotFoundError: If event doesn't exist
            NeedNotFoundError: If a new need_id doesn't exist
            ValidationError: Empty update or end before start
        """
        logger.info("updating_event", event_id=event_id)

        self.user_service.require_manager(acting_user_id, "update events")
        existing = self._get_row(event_id)

        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields provided to update")

        for field in ("need_id", "event_type", "event_start", "volunteer_slots"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} cannot be null", details={"field": field})

        if "need_id" in changes:
            self._require_need(changes["need_id"])

        start = as_utc(changes.get("event_start", existing.get("event_start")))
        end = as_utc(changes["event_end"]) if "event_end" in changes else as_utc(existing.get("event_end"))
        if end is not None and start is not None and end < start:
            raise ValidationError(
                "event_end cannot be earlier than event_start",
                details={"field": "event_end"}
            )

        update_data = {}
        for field, value in changes.items():
            if isinstance(value, EventType):
                value = value.value
            elif isinstance(value, datetime):
                value = self._iso(value)
            elif field in ("location", "notes"):
                value = value or None
            update_data[field] = value

        try:
            result = (
                self.db.table(self.table)
                .update(update_data)
                .eq("id", event_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_event_failed", event_id=event_id, error=str(e))
            raise DatabaseError("update", str(e))

        logger.info("event_updated", event_id=event_id, fields=sorted(changes.keys()))
        return self._normalize(result.data)[0]

    def delete(self, event_id: int, acting_user_id: int) -> bool:
        """
        Delete an event and its volunteer rows.

        Raises:
            ManagerRoleRequiredError: If acting user is not a manager
            EventNotFoundError: If event doesn't exist
        """
        logger.info("deleting_event", event_id=event_id)

        self.user_service.require_manager(acting_user_id, "delete events")
        self._get_row(event_id)

        try:
            self.db.table(self.volunteers_table).delete().eq("event_id", event_id).execute()
            self.db.table(self.table).delete().eq("id", event_id).execute()
        except Exception as e:
            logger.error("delete_event_failed", event_id=event_id, error=str(e))
            raise DatabaseError("delete", str(e))

        logger.info("event_deleted", event_id=event_id)
        return True

    # ===================
    # SIGNUPS
    # ===================

    def signup(self, event_id: int, user_id: int) -> VolunteerStatus:
        """
        Sign a volunteer up, or waitlist them when the event is full.

        Repeating a signup is an insert-or-update on (event, user); someone
        already confirmed stays confirmed.

        Raises:
            EventNotFoundError: If event doesn't exist
            UserNotFoundError: If user doesn't exist
        """
        logger.info("signing_up_for_event", event_id=event_id, user_id=user_id)

        event = self._get_row(event_id)
        self.user_service.get_by_id(user_id)

        signups = self._volunteer_rows([event_id])
        mine = next((v for v in signups if v["user_id"] == user_id), None)

        if mine and mine["status"] == VolunteerStatus.CONFIRMED.value:
            logger.info("signup_already_confirmed", event_id=event_id, user_id=user_id)
            return VolunteerStatus.CONFIRMED

        confirmed_others = sum(
            1 for v in signups
            if v["status"] == VolunteerStatus.CONFIRMED.value and v["user_id"] != user_id
        )
        status = signup_status(event.get("volunteer_slots") or 0, confirmed_others)

        try:
            self.db.table(self.volunteers_table).upsert(
                {"event_id": event_id, "user_id": user_id, "status": status.value},
                on_conflict="event_id,user_id"
            ).execute()
        except Exception as e:
            logger.error("signup_failed", event_id=event_id, user_id=user_id, error=str(e))
            raise DatabaseError("upsert", str(e))

        logger.info("signup_saved", event_id=event_id, user_id=user_id, status=status.value)
        return status

    def cancel(self, event_id: int, user_id: int) -> VolunteerStatus:
        """
        Cancel a signup, keeping the row for history.

        Raises:
            SignupNotFoundError: If the user never signed up
        """
        logger.info("cancelling_signup", event_id=event_id, user_id=user_id)

        try:
            result = (
                self.db.table(self.volunteers_table)
                .update({"status": VolunteerStatus.CANCELLED.value})
                .eq("event_id", event_id)
                .eq("user_id", user_id)
                .execute()
            )
        except Exception as e:
            logger.error("cancel_signup_failed", event_id=event_id, user_id=user_id, error=str(e))
            raise DatabaseError("update", str(e))

        if not result.data:
            raise SignupNotFoundError(event_id, user_id)

        logger.info("signup_cancelled", event_id=event_id, user_id=user_id)
        return VolunteerStatus.CANCELLED


# Singleton instance for convenience
_event_service: Optional[EventService] = None


def get_event_service() -> EventService:
    """Get or create EventService instance."""
    global _event_service
    if _event_service is None:
        _event_service = EventService()
    return _event_service
