"""
Call booking service: validation, slot conflicts and booking status moves.
"""
import uuid
from datetime import date, timedelta

import pytest

from engagement.models import BookingStatus, CallBooking, CallHistoryEntry, CallOutcome, Event
from engagement.services import booking_service, booking_store, lead_store
from engagement.services.errors import Conflict, InvalidArgument, NotFound

from conftest import T0

pytestmark = pytest.mark.django_db

D = date(2024, 6, 3)


def book(lead, when=D, at="10:00", duration=None, owner="rep-1"):
    return booking_service.create_booking(lead.id, when, at, duration, owner=owner)


class TestCreateBooking:
    def test_created_booking_reads_back(self, lead):
        booking = book(lead, duration=45)

        stored = booking_store.get_booking(booking.id)
        assert stored.lead_id == lead.id
        assert stored.scheduled_date == D
        assert stored.scheduled_time == "10:00"
        assert stored.duration_minutes == 45
        assert stored.status == BookingStatus.SCHEDULED
        assert stored.scheduled_by == "rep-1"
        assert stored.reminder_sent is False

    def test_duration_defaults_to_thirty_minutes(self, lead):
        assert book(lead).duration_minutes == 30

    def test_accepts_iso_strings(self, lead):
        booking = booking_service.create_booking(lead.id, "2024-06-03", "09:30", owner="rep-1")
        assert booking.scheduled_date == D
        assert booking.scheduled_time == "09:30"

    @pytest.mark.parametrize("duration", [15, 480])
    def test_duration_bounds_are_inclusive(self, lead, duration):
        assert book(lead, duration=duration).duration_minutes == duration

    @pytest.mark.parametrize("duration", [14, 481, 0, -30, 30.5, "30", True])
    def test_duration_out_of_range_is_rejected(self, lead, duration):
        with pytest.raises(InvalidArgument) as exc:
            book(lead, duration=duration)
        assert exc.value.field == "duration_minutes"
        assert not CallBooking.objects.exists()

    @pytest.mark.parametrize("value", ["2024-13-01", "03/06/2024", "", None, 20240603])
    def test_malformed_date_is_rejected(self, lead, value):
        with pytest.raises(InvalidArgument) as exc:
            book(lead, when=value)
        assert exc.value.field == "scheduled_date"

    @pytest.mark.parametrize("value", ["24:00", "9:00", "10:60", "10-00", "", None, "10:00:00"])
    def test_malformed_time_is_rejected(self, lead, value):
        with pytest.raises(InvalidArgument) as exc:
            book(lead, at=value)
        assert exc.value.field == "scheduled_time"

    def test_owner_is_required(self, lead):
        with pytest.raises(InvalidArgument) as exc:
            book(lead, owner=None)
        assert exc.value.field == "owner"

    def test_unknown_lead(self, db):
        with pytest.raises(NotFound):
            booking_service.create_booking(uuid.uuid4(), D, "10:00", owner="rep-1")

    def test_inactive_lead(self, lead):
        lead_store.deactivate_lead(lead.id, actor="rep-1")
        with pytest.raises(NotFound):
            book(lead)

    def test_creation_is_logged(self, lead):
        booking = book(lead)
        event = Event.objects.get(lead=lead, event_type="booking_created")
        assert event.payload["id"] == str(booking.id)
        assert event.payload["duration_minutes"] == 30


class TestSlotConflicts:
    def test_second_booking_for_same_slot_conflicts(self, lead):
        first = book(lead)

        with pytest.raises(Conflict) as exc:
            book(lead, owner="rep-2")

        assert exc.value.existing["id"] == str(first.id)
        assert exc.value.existing["scheduled_time"] == "10:00"
        assert exc.value.to_dict()["existing_booking"]["id"] == str(first.id)
        assert CallBooking.objects.filter(lead=lead).count() == 1

    def test_other_times_and_other_leads_do_not_conflict(self, lead, make_lead):
        other = make_lead(name="David Chen")
        book(lead)
        book(lead, at="10:30")
        book(lead, when=D + timedelta(days=1))
        book(other)
        assert CallBooking.objects.count() == 4

    def test_completed_booking_frees_the_slot_by_default(self, lead):
        first = book(lead)
        booking_service.update_booking_status(first.id, BookingStatus.COMPLETED, "rep-1")

        second = book(lead)
        assert second.id != first.id

    def test_completed_booking_blocks_when_configured(self, lead, settings):
        settings.BOOKING_BLOCKING_STATUSES = ["Scheduled", "Completed"]
        first = book(lead)
        booking_service.update_booking_status(first.id, BookingStatus.COMPLETED, "rep-1")

        with pytest.raises(Conflict) as exc:
            book(lead)
        assert exc.value.existing["status"] == "Completed"

    def test_scheduled_always_blocks_even_if_left_out_of_policy(self, lead, settings):
        settings.BOOKING_BLOCKING_STATUSES = ["Completed"]
        book(lead)
        with pytest.raises(Conflict):
            book(lead)

    def test_cancelled_slot_can_be_rebooked(self, lead):
        first = book(lead)
        booking_service.update_booking_status(first.id, BookingStatus.CANCELLED, "rep-1")
        book(lead)

        statuses = sorted(CallBooking.objects.filter(lead=lead).values_list("status", flat=True))
        assert statuses == ["Cancelled", "Scheduled"]

    def test_race_past_the_precheck_is_settled_by_the_constraint(self, lead, monkeypatch):
        first = book(lead)
        # Simulate the second request having passed its pre-check before the first committed
        monkeypatch.setattr(booking_service, "check_slot", lambda *args, **kwargs: None)

        with pytest.raises(Conflict) as exc:
            book(lead, owner="rep-2")

        assert exc.value.existing["id"] == str(first.id)
        scheduled = CallBooking.objects.filter(
            lead=lead, scheduled_date=D, scheduled_time="10:00", status=BookingStatus.SCHEDULED,
        )
        assert scheduled.count() == 1


class TestBookingStatus:
    @pytest.mark.parametrize("target", ["Completed", "Cancelled", "No Show"])
    def test_scheduled_moves_to_terminal(self, lead, target):
        booking = book(lead)
        updated = booking_service.update_booking_status(booking.id, target, "rep-1")
        assert updated.status == target
        assert Event.objects.filter(lead=lead, event_type="booking_status_changed").count() == 1

    def test_terminal_booking_cannot_reopen(self, lead):
        booking = book(lead)
        booking_service.update_booking_status(booking.id, "Cancelled", "rep-1")

        with pytest.raises(InvalidArgument):
            booking_service.update_booking_status(booking.id, "Scheduled", "rep-1")
        with pytest.raises(InvalidArgument):
            booking_service.update_booking_status(booking.id, "Completed", "rep-1")

    def test_same_status_is_a_noop(self, lead):
        booking = book(lead)
        booking_service.update_booking_status(booking.id, "Scheduled", "rep-1")
        assert not Event.objects.filter(event_type="booking_status_changed").exists()

    def test_unknown_status_is_rejected(self, lead):
        booking = book(lead)
        with pytest.raises(InvalidArgument) as exc:
            booking_service.update_booking_status(booking.id, "Done", "rep-1")
        assert exc.value.field == "status"

    def test_only_owner_can_change_status(self, lead):
        booking = book(lead)
        with pytest.raises(NotFound):
            booking_service.update_booking_status(booking.id, "Cancelled", "rep-2")


class TestReschedule:
    def test_moves_booking_and_records_history(self, lead, clock):
        booking = book(lead)

        moved = booking_service.reschedule_booking(
            booking.id, "rep-1", scheduled_time="15:00", clock=clock,
        )

        assert moved.scheduled_time == "15:00"
        entry = CallHistoryEntry.objects.get(lead=lead)
        assert entry.outcome == CallOutcome.RESCHEDULED
        assert entry.occurred_at == T0
        assert entry.booking_id == booking.id

    def test_moving_onto_held_slot_conflicts(self, lead):
        held = book(lead, at="15:00")
        booking = book(lead)

        with pytest.raises(Conflict) as exc:
            booking_service.reschedule_booking(booking.id, "rep-1", scheduled_time="15:00")

        assert exc.value.existing["id"] == str(held.id)
        booking.refresh_from_db()
        assert booking.scheduled_time == "10:00"

    def test_duration_only_change_skips_slot_check(self, lead):
        booking = book(lead)
        moved = booking_service.reschedule_booking(booking.id, "rep-1", duration_minutes=60)
        assert moved.duration_minutes == 60

    def test_closed_booking_cannot_move(self, lead):
        booking = book(lead)
        booking_service.update_booking_status(booking.id, "No Show", "rep-1")
        with pytest.raises(InvalidArgument):
            booking_service.reschedule_booking(booking.id, "rep-1", scheduled_time="11:00")

    def test_no_changes_returns_booking_untouched(self, lead):
        booking = book(lead)
        same = booking_service.reschedule_booking(booking.id, "rep-1")
        assert same.id == booking.id
        assert not CallHistoryEntry.objects.exists()


class TestQueries:
    def test_delete_is_owner_scoped(self, lead):
        booking = book(lead)
        with pytest.raises(NotFound):
            booking_service.delete_booking(booking.id, "rep-2")

        booking_service.delete_booking(booking.id, "rep-1")
        assert not CallBooking.objects.exists()

    def test_stats_per_owner(self, lead):
        first = book(lead)
        book(lead, at="11:00")
        book(lead, at="12:00", owner="rep-2")
        booking_service.update_booking_status(first.id, "No Show", "rep-1")

        assert booking_store.booking_stats(owner="rep-1") == {
            "total": 2, "scheduled": 1, "completed": 0, "cancelled": 0, "no_show": 1,
        }
        assert booking_store.booking_stats()["total"] == 3

    def test_upcoming_is_scheduled_from_today_soonest_first(self, lead, clock):
        today = clock().date()
        later = book(lead, when=today + timedelta(days=2))
        soon = book(lead, when=today, at="16:00")
        book(lead, when=today - timedelta(days=1))
        done = book(lead, when=today + timedelta(days=1))
        booking_service.update_booking_status(done.id, "Completed", "rep-1")

        upcoming = list(booking_service.upcoming_for("rep-1", clock=clock))
        assert [b.id for b in upcoming] == [soon.id, later.id]

    def test_upcoming_respects_limit(self, lead, clock):
        for hour in range(10, 15):
            book(lead, when=clock().date(), at=f"{hour}:00")
        assert len(booking_service.upcoming_for("rep-1", clock=clock, limit=3)) == 3

    def test_range_query_is_inclusive(self, lead):
        book(lead, when=D)
        book(lead, when=D + timedelta(days=2))
        book(lead, when=D + timedelta(days=3))
        assert booking_store.bookings_in_range("rep-1", D, D + timedelta(days=2)).count() == 2
