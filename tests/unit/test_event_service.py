"""
Unit tests for EventService.

Run: pytest tests/unit/test_event_service.py -v
"""

import pytest
from datetime import datetime, timedelta, timezone

from models.event import EventCreate, EventUpdate, EventType, VolunteerStatus
from services.event_service import EventService, signup_status, as_utc
from exceptions import (
    EventNotFoundError,
    NeedNotFoundError,
    SignupNotFoundError,
    ManagerRoleRequiredError,
    UserNotFoundError,
    ValidationError,
)
from tests.factories import NeedFactory, EventFactory, UserFactory

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def need(mock_db, manager):
    return mock_db.seed("needs", [
        NeedFactory.create(manager_id=manager["id"], title="Food Drive", bundle_tag="basic_food",
                           service_required=True)
    ])[0]


@pytest.fixture
def capped_event(mock_db, need):
    """Event with room for one volunteer."""
    return mock_db.seed("distribution_events", [
        EventFactory.create(need_id=need["id"], event_start=NOW + timedelta(days=1), volunteer_slots=1)
    ])[0]


class TestHelpers:

    def test_signup_status_unlimited(self):
        assert signup_status(0, 50) == VolunteerStatus.CONFIRMED

    def test_signup_status_room_left(self):
        assert signup_status(3, 2) == VolunteerStatus.CONFIRMED

    def test_signup_status_full(self):
        assert signup_status(3, 3) == VolunteerStatus.WAITLIST

    def test_as_utc_parses_z_suffix(self):
        assert as_utc("2026-03-10T12:00:00Z") == NOW

    def test_as_utc_assumes_naive_is_utc(self):
        assert as_utc(datetime(2026, 3, 10, 12, 0)) == NOW


class TestEventServiceCreate:
    """Tests for EventService.create()"""

    def test_manager_creates_event(self, mock_db, manager, need):
        service = EventService()
        data = EventCreate(
            need_id=need["id"],
            event_type=EventType.KIT_BUILD,
            event_start=NOW,
            event_end=NOW + timedelta(hours=2),
            volunteer_slots=4,
        )

        event = service.create(data, manager["id"])

        assert event.event_type == "kit_build"
        assert event.need_title == "Food Drive"
        assert event.remaining_slots == 4
        assert event.confirmed_count == 0

    def test_unlimited_event_has_no_remaining_slots(self, mock_db, manager, need):
        service = EventService()
        data = EventCreate(need_id=need["id"], event_type=EventType.DELIVERY, event_start=NOW)

        event = service.create(data, manager["id"])

        assert event.volunteer_slots == 0
        assert event.remaining_slots is None

    def test_end_before_start_rejected_by_model(self):
        with pytest.raises(ValueError):
            EventCreate(
                need_id=1,
                event_type=EventType.DELIVERY,
                event_start=NOW,
                event_end=NOW - timedelta(hours=1),
            )

    def test_helper_cannot_create(self, mock_db, helper, need):
        data = EventCreate(need_id=need["id"], event_type=EventType.DELIVERY, event_start=NOW)

        with pytest.raises(ManagerRoleRequiredError):
            EventService().create(data, helper["id"])

    def test_unknown_need(self, mock_db, manager):
        data = EventCreate(need_id=404, event_type=EventType.DELIVERY, event_start=NOW)

        with pytest.raises(NeedNotFoundError):
            EventService().create(data, manager["id"])


class TestEventServiceReads:
    """Tests for get_upcoming() / get_for_need() / get_by_id()"""

    @pytest.fixture
    def events(self, mock_db, need, manager):
        other_need = mock_db.seed("needs", [
            NeedFactory.create(manager_id=manager["id"], title="Park Cleanup", bundle_tag="beautification")
        ])[0]
        return mock_db.seed("distribution_events", [
            EventFactory.create(need_id=need["id"], event_start=NOW + timedelta(days=3)),
            EventFactory.create(need_id=need["id"], event_start=NOW - timedelta(days=1)),
            EventFactory.create(need_id=other_need["id"], event_type="cleanup",
                                event_start=NOW + timedelta(days=1)),
        ])

    def test_upcoming_excludes_past_and_orders_by_start(self, events):
        result = EventService().get_upcoming(now=NOW)

        assert [e.id for e in result] == [events[2]["id"], events[0]["id"]]

    def test_include_past(self, events):
        result = EventService().get_upcoming(include_past=True, now=NOW)

        assert [e.id for e in result] == [events[1]["id"], events[2]["id"], events[0]["id"]]

    def test_filter_by_type(self, events):
        result = EventService().get_upcoming(event_type=EventType.CLEANUP, now=NOW)

        assert [e.need_title for e in result] == ["Park Cleanup"]

    def test_filter_by_bundle(self, events):
        result = EventService().get_upcoming(bundle="basic_food", now=NOW)

        assert [e.id for e in result] == [events[0]["id"]]

    def test_unknown_bundle_ignored(self, events):
        result = EventService().get_upcoming(bundle="nope", now=NOW)

        assert len(result) == 2

    def test_limit(self, events):
        result = EventService().get_upcoming(limit=1, now=NOW)

        assert len(result) == 1

    def test_for_need(self, events, need):
        result = EventService().get_for_need(need["id"])

        assert [e.id for e in result] == [events[1]["id"], events[0]["id"]]

    def test_get_by_id_missing(self, mock_db):
        with pytest.raises(EventNotFoundError):
            EventService().get_by_id(404)


class TestEventServiceUpdateDelete:
    """Tests for update() / delete()"""

    def test_partial_update(self, mock_db, manager, capped_event):
        service = EventService()

        event = service.update(capped_event["id"], EventUpdate(location="Gym", volunteer_slots=3), manager["id"])

        assert event.location == "Gym"
        assert event.volunteer_slots == 3
        assert event.event_type == "delivery"

    def test_clear_end(self, mock_db, manager, capped_event):
        event = EventService().update(capped_event["id"], EventUpdate(event_end=None), manager["id"])

        assert event.event_end is None

    def test_end_before_existing_start_rejected(self, mock_db, manager, capped_event):
        data = EventUpdate(event_end=NOW - timedelta(days=5))

        with pytest.raises(ValidationError):
            EventService().update(capped_event["id"], data, manager["id"])

    def test_empty_update_rejected(self, mock_db, manager, capped_event):
        with pytest.raises(ValidationError):
            EventService().update(capped_event["id"], EventUpdate(), manager["id"])

    def test_helper_cannot_update(self, mock_db, helper, capped_event):
        with pytest.raises(ManagerRoleRequiredError):
            EventService().update(capped_event["id"], EventUpdate(notes="x"), helper["id"])

    def test_delete_removes_signups(self, mock_db, manager, helper, capped_event):
        service = EventService()
        service.signup(capped_event["id"], helper["id"])

        service.delete(capped_event["id"], manager["id"])

        assert mock_db.rows("distribution_events") == []
        assert mock_db.rows("event_volunteers") == []

    def test_delete_missing(self, mock_db, manager):
        with pytest.raises(EventNotFoundError):
            EventService().delete(404, manager["id"])


class TestEventServiceSignup:
    """Tests for signup() / cancel()"""

    def test_first_signup_confirmed(self, mock_db, helper, capped_event):
        service = EventService()

        status = service.signup(capped_event["id"], helper["id"])

        assert status == VolunteerStatus.CONFIRMED
        event = service.get_by_id(capped_event["id"], user_id=helper["id"])
        assert event.confirmed_count == 1
        assert event.remaining_slots == 0
        assert event.is_confirmed is True

    def test_full_event_waitlists(self, mock_db, helper, capped_event):
        other = mock_db.seed("users", [UserFactory.create(username="helper2")])[0]
        service = EventService()
        service.signup(capped_event["id"], helper["id"])

        status = service.signup(capped_event["id"], other["id"])

        assert status == VolunteerStatus.WAITLIST
        event = service.get_by_id(capped_event["id"], user_id=other["id"])
        assert event.waitlist_count == 1
        assert event.is_waitlisted is True

    def test_repeat_signup_stays_confirmed(self, mock_db, helper, capped_event):
        service = EventService()
        service.signup(capped_event["id"], helper["id"])

        status = service.signup(capped_event["id"], helper["id"])

        assert status == VolunteerStatus.CONFIRMED
        assert len(mock_db.rows("event_volunteers")) == 1

    def test_cancel_keeps_row(self, mock_db, helper, capped_event):
        service = EventService()
        service.signup(capped_event["id"], helper["id"])

        status = service.cancel(capped_event["id"], helper["id"])

        assert status == VolunteerStatus.CANCELLED
        rows = mock_db.rows("event_volunteers")
        assert [r["status"] for r in rows] == ["cancelled"]

    def test_cancelled_slot_frees_capacity(self, mock_db, helper, capped_event):
        other = mock_db.seed("users", [UserFactory.create(username="helper2")])[0]
        service = EventService()
        service.signup(capped_event["id"], helper["id"])
        service.cancel(capped_event["id"], helper["id"])

        assert service.signup(capped_event["id"], other["id"]) == VolunteerStatus.CONFIRMED

    def test_signup_again_after_cancel_reuses_row(self, mock_db, helper, capped_event):
        service = EventService()
        service.signup(capped_event["id"], helper["id"])
        service.cancel(capped_event["id"], helper["id"])

        status = service.signup(capped_event["id"], helper["id"])

        assert status == VolunteerStatus.CONFIRMED
        assert len(mock_db.rows("event_volunteers")) == 1

    def test_cancel_without_signup(self, mock_db, helper, capped_event):
        with pytest.raises(SignupNotFoundError):
            EventService().cancel(capped_event["id"], helper["id"])

    def test_signup_unknown_event(self, mock_db, helper):
        with pytest.raises(EventNotFoundError):
            EventService().signup(404, helper["id"])

    def test_signup_unknown_user(self, mock_db, capped_event):
        with pytest.raises(UserNotFoundError):
            EventService().signup(capped_event["id"], 999)
