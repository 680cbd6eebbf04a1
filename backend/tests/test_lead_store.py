import uuid
from datetime import timedelta

import pytest

from engagement.models import CallBooking, CallHistoryEntry, Event, Lead
from engagement.services import booking_service, lead_store
from engagement.services.errors import InvalidArgument, NotFound

from conftest import T0

pytestmark = pytest.mark.django_db


def test_new_lead_starts_as_new(make_lead):
    lead = make_lead(phone="+1-555-0102", source="Referral")
    assert lead.status == "New"
    assert lead.is_active
    assert lead.call_completed is False
    assert Event.objects.filter(lead=lead, event_type="lead_created").exists()


@pytest.mark.parametrize("name", ["", " ", "A", "x" * 101])
def test_name_length_is_validated(make_lead, name):
    with pytest.raises(InvalidArgument) as exc:
        make_lead(name=name)
    assert exc.value.field == "name"


def test_status_cannot_be_set_on_create(make_lead):
    with pytest.raises(InvalidArgument):
        make_lead(status="Closed")


def test_update_applies_editable_fields(lead):
    updated = lead_store.update_lead(lead.id, {"notes": "Call after 5pm", "assigned_to": "rep-2"}, actor="rep-1")
    assert updated.notes == "Call after 5pm"
    assert updated.assigned_to == "rep-2"


def test_update_refuses_status(lead):
    with pytest.raises(InvalidArgument) as exc:
        lead_store.update_lead(lead.id, {"status": "Closed"})
    assert exc.value.field == "status"
    lead.refresh_from_db()
    assert lead.status == "New"


def test_contact_changes_are_logged(lead):
    lead_store.update_lead(lead.id, {"phone": "+1-555-0199", "notes": "x"}, actor="rep-1")

    events = Event.objects.filter(lead=lead, event_type="contact_updated")
    assert events.count() == 1
    assert events.get().payload == {"field": "phone", "old_value": "+1-555-0105", "new_value": "+1-555-0199"}


def test_last_write_wins(lead):
    lead_store.update_lead(lead.id, {"notes": "first"})
    lead_store.update_lead(lead.id, {"notes": "second"})
    lead.refresh_from_db()
    assert lead.notes == "second"


def test_inactive_lead_is_invisible(lead):
    lead_store.deactivate_lead(lead.id, actor="rep-1")

    with pytest.raises(NotFound):
        lead_store.get_lead(lead.id)
    with pytest.raises(NotFound):
        lead_store.update_lead(lead.id, {"notes": "x"})
    with pytest.raises(NotFound):
        lead_store.deactivate_lead(lead.id)
    assert lead not in lead_store.active_leads()
    assert Lead.objects.filter(id=lead.id).exists()


def test_history_is_ordered_by_time(lead):
    lead_store.append_history(lead.id, "not_connected", T0 + timedelta(hours=1), "rep-1")
    lead_store.append_history(lead.id, "completed", T0 + timedelta(hours=3), "rep-1")

    outcomes = [e.outcome for e in lead_store.call_history(lead.id)]
    assert outcomes == ["not_connected", "completed"]


def test_search_and_filters(make_lead):
    priya = make_lead(name="Priya Patel", email="priya@example.com")
    david = make_lead(name="David Chen", phone="+1-555-0102", created_by="rep-2")
    make_lead(name="Sarah Mitchell", assigned_to="rep-2")

    assert list(lead_store.active_leads(search="patel")) == [priya]
    assert list(lead_store.active_leads(search="0102")) == [david]
    assert {lead.name for lead in lead_store.active_leads(owner="rep-2")} == {"David Chen", "Sarah Mitchell"}
    with pytest.raises(InvalidArgument):
        list(lead_store.active_leads(status="Won"))


def test_stats_count_active_leads_per_status(make_lead):
    make_lead(name="Priya Patel")
    make_lead(name="David Chen")
    gone = make_lead(name="Tom Alvarado")
    lead_store.deactivate_lead(gone.id)

    stats = lead_store.lead_stats()
    assert stats["total"] == 2
    assert stats["new"] == 2
    assert stats["qualified"] == 0


def test_hard_delete_cascades(lead):
    booking_service.create_booking(lead.id, "2024-06-03", "10:00", owner="rep-1")
    lead_store.append_history(lead.id, "completed", T0, "rep-1")

    lead_store.hard_delete_lead(lead.id, actor="admin")

    assert not Lead.objects.filter(id=lead.id).exists()
    assert not CallBooking.objects.exists()
    assert not CallHistoryEntry.objects.exists()


def test_hard_delete_unknown_lead(db):
    with pytest.raises(NotFound):
        lead_store.hard_delete_lead(uuid.uuid4())


def test_written_event_types_are_all_known(lead, clock):
    from engagement.models import EVENT_TYPES
    from engagement.services.call_completion import complete_call
    from engagement.services.lifecycle import transition_status
    from engagement.services.rescheduler import handle_not_connected

    lead_store.update_lead(lead.id, {"email": "priya@newmail.example"}, actor="rep-1")
    booking = booking_service.create_booking(lead.id, "2024-06-03", "10:00", owner="rep-1")
    booking_service.reschedule_booking(booking.id, "rep-1", scheduled_time="11:00", clock=clock)
    booking_service.update_booking_status(booking.id, "Cancelled", "rep-1")
    handle_not_connected(lead.id, "rep-1", clock=clock)
    complete_call(lead.id, actor="rep-1", clock=clock)
    transition_status(lead.id, "Qualified", "rep-1", clock=clock)
    transition_status(lead.id, "Qualified", "rep-1", clock=clock)
    lead_store.deactivate_lead(lead.id, actor="rep-1")

    written = set(Event.objects.values_list("event_type", flat=True))
    assert written <= EVENT_TYPES
    assert {"contact_updated", "booking_rescheduled", "conversion_skipped"} <= written
