import uuid
from datetime import date, datetime, timezone

import pytest

from engagement.models import BookingStatus, CallBooking, CallHistoryEntry, Event
from engagement.services import booking_service
from engagement.services.call_completion import complete_call
from engagement.services.errors import InvalidArgument, NotFound
from engagement.services.lifecycle import transition_status

from conftest import T0

pytestmark = pytest.mark.django_db


def test_completion_is_stamped_on_lead(lead, clock):
    result = complete_call(lead.id, outcome="Interested in demo", actor="rep-1", clock=clock)

    lead.refresh_from_db()
    assert lead.call_completed is True
    assert lead.call_completed_at == T0
    assert lead.call_completed_by == "rep-1"
    assert lead.last_contacted == T0
    assert result.lead.id == lead.id


def test_completion_leaves_status_untouched(lead, clock):
    complete_call(lead.id, actor="rep-1", clock=clock)
    lead.refresh_from_db()
    assert lead.status == "New"

    transition_status(lead.id, "Negotiation", "rep-1")
    complete_call(lead.id, actor="rep-1", clock=clock)
    lead.refresh_from_db()
    assert lead.status == "Negotiation"


def test_completion_appends_history_with_outcome(lead, clock):
    result = complete_call(lead.id, outcome="Interested in demo", actor="rep-1", clock=clock)

    entry = CallHistoryEntry.objects.get(lead=lead)
    assert entry.outcome == "completed"
    assert entry.occurred_at == T0
    assert entry.notes == "Interested in demo"
    assert entry.booking_id == result.booking.id


def test_completion_leaves_completed_booking(lead, clock):
    result = complete_call(lead.id, actor="rep-1", clock=clock)

    booking = result.booking
    assert booking.status == BookingStatus.COMPLETED
    assert booking.scheduled_date == date(2024, 6, 1)
    assert booking.scheduled_time == "10:00"
    assert booking.scheduled_by == "rep-1"


def test_completion_does_not_collide_with_scheduled_slot(lead, clock):
    booking_service.create_booking(lead.id, date(2024, 6, 1), "10:00", owner="rep-1")

    complete_call(lead.id, actor="rep-1", clock=clock)

    assert CallBooking.objects.filter(lead=lead).count() == 2


def test_explicit_completion_time_wins_over_clock(lead, clock):
    at = datetime(2024, 5, 30, 16, 45, tzinfo=timezone.utc)
    complete_call(lead.id, completed_at=at, actor="rep-1", clock=clock)

    lead.refresh_from_db()
    assert lead.call_completed_at == at
    assert lead.last_contacted == at


def test_completion_is_logged(lead, clock):
    complete_call(lead.id, outcome="Booked onboarding", actor="rep-1", clock=clock)
    event = Event.objects.get(lead=lead, event_type="call_completed")
    assert event.payload == {"completed_at": T0.isoformat(), "outcome": "Booked onboarding"}


def test_actor_is_required(lead, clock):
    with pytest.raises(InvalidArgument) as exc:
        complete_call(lead.id, clock=clock)
    assert exc.value.field == "actor"
    lead.refresh_from_db()
    assert lead.call_completed is False


def test_unknown_lead(db, clock):
    with pytest.raises(NotFound):
        complete_call(uuid.uuid4(), actor="rep-1", clock=clock)
    assert not CallBooking.objects.exists()
