"""
Call booking service — validation, slot conflict checks, and status moves.

create_booking() runs a pre-check against the configured blocking statuses
(fast path with a useful error) and then inserts through the booking store,
whose unique constraint settles any race. Both paths raise the same Conflict.

Booking lifecycle: Scheduled -> Completed | Cancelled | No Show. Terminal
bookings are never reopened.
"""
import logging
import re
from datetime import date, datetime

from django.conf import settings
from django.db import transaction

from engagement.models import (
    CallBooking, BookingStatus, CallHistoryEntry, CallOutcome, Event, TERMINAL_BOOKING_STATUSES,
)
from engagement.services import booking_store, lead_store
from engagement.services.errors import Conflict, InvalidArgument
from engagement.utils import utcnow

logger = logging.getLogger(__name__)

_TIME_TOKEN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


# ─── Argument parsing ────────────────────────────────────────────────────────

def parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidArgument("scheduled_date", f"Malformed date {value!r}; expected YYYY-MM-DD")


def parse_time(value) -> str:
    if isinstance(value, str) and _TIME_TOKEN.match(value.strip()):
        return value.strip()
    raise InvalidArgument("scheduled_time", f"Malformed time {value!r}; expected HH:MM (24h)")


def parse_duration(value) -> int:
    if value is None:
        return settings.BOOKING_DEFAULT_DURATION_MINUTES
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument("duration_minutes", "Duration must be a whole number of minutes")
    low, high = settings.BOOKING_MIN_DURATION_MINUTES, settings.BOOKING_MAX_DURATION_MINUTES
    if not low <= value <= high:
        raise InvalidArgument("duration_minutes", f"Duration must be between {low} and {high} minutes")
    return value


def _blocking_statuses() -> list[str]:
    statuses = [s for s in settings.BOOKING_BLOCKING_STATUSES if s in BookingStatus.values]
    # Scheduled always blocks; the database enforces it regardless
    if BookingStatus.SCHEDULED not in statuses:
        statuses.append(BookingStatus.SCHEDULED)
    return statuses


def check_slot(lead_id, scheduled_date: date, scheduled_time: str, exclude_id=None) -> None:
    """Raise Conflict if the slot is held by a booking in a blocking status."""
    blocking = booking_store.find_blocking(
        lead_id, scheduled_date, scheduled_time, _blocking_statuses(), exclude_id=exclude_id,
    )
    if blocking:
        raise Conflict(booking_store.SLOT_TAKEN_MESSAGE, existing=booking_store.booking_summary(blocking))


# ─── Operations ──────────────────────────────────────────────────────────────

def create_booking(
    lead_id, scheduled_date, scheduled_time, duration_minutes=None, owner: str = None, clock=utcnow,
) -> CallBooking:
    """
    Book a contact attempt for a lead.

    Raises InvalidArgument for malformed input, NotFound if the lead is missing
    or inactive, and Conflict (with the blocking booking attached) if the slot
    is already taken, whether by the pre-check or by losing a concurrent insert.
    """
    if not owner:
        raise InvalidArgument("owner", "A booking owner is required")
    scheduled_date = parse_date(scheduled_date)
    scheduled_time = parse_time(scheduled_time)
    duration_minutes = parse_duration(duration_minutes)

    lead = lead_store.get_lead(lead_id)

    check_slot(lead.id, scheduled_date, scheduled_time)

    booking = booking_store.insert_if_absent(
        lead=lead,
        scheduled_by=owner,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        duration_minutes=duration_minutes,
    )

    Event.objects.create(
        lead_id=lead.id,
        event_type="booking_created",
        actor=owner,
        payload={
            **booking_store.booking_summary(booking),
            "duration_minutes": duration_minutes,
            "booked_at": clock().isoformat(),
        },
        description=f"Call booked for {scheduled_date.isoformat()} {scheduled_time} ({duration_minutes} min)",
    )
    logger.info("Booking %s created for lead %s by %s", booking.id, lead.id, owner)
    return booking


def update_booking_status(booking_id, new_status: str, actor: str) -> CallBooking:
    """Move a Scheduled booking to a terminal status. Only the owner may do this."""
    if new_status not in BookingStatus.values:
        raise InvalidArgument("status", f"Invalid status. Must be one of: {', '.join(BookingStatus.values)}")

    with transaction.atomic():
        booking = booking_store.get_booking(booking_id, owner=actor)
        booking = CallBooking.objects.select_for_update().get(id=booking.id)
        if booking.status == new_status:
            return booking
        if booking.status in TERMINAL_BOOKING_STATUSES or new_status not in TERMINAL_BOOKING_STATUSES:
            raise InvalidArgument(
                "status", f"Cannot move a booking from {booking.status} to {new_status}",
            )

        old_status = booking.status
        booking.status = new_status
        booking.save(update_fields=["status", "updated_at"])

        Event.objects.create(
            lead_id=booking.lead_id,
            event_type="booking_status_changed",
            actor=actor,
            payload={"booking_id": str(booking.id), "old_status": old_status, "new_status": new_status},
            description=f"Booking {old_status} -> {new_status}",
        )
    return booking


def reschedule_booking(
    booking_id, actor: str, scheduled_date=None, scheduled_time=None, duration_minutes=None, clock=utcnow,
) -> CallBooking:
    """Move a still-Scheduled booking to another slot, subject to the same conflict rules."""
    with transaction.atomic():
        booking = booking_store.get_booking(booking_id, owner=actor)
        booking = CallBooking.objects.select_for_update().get(id=booking.id)

        changed = []
        if scheduled_date is not None:
            booking.scheduled_date = parse_date(scheduled_date)
            changed.append("scheduled_date")
        if scheduled_time is not None:
            booking.scheduled_time = parse_time(scheduled_time)
            changed.append("scheduled_time")
        if duration_minutes is not None:
            booking.duration_minutes = parse_duration(duration_minutes)
            changed.append("duration_minutes")
        if not changed:
            return booking
        if not booking.is_open:
            raise InvalidArgument("status", f"Cannot reschedule a booking that is {booking.status}")

        if "scheduled_date" in changed or "scheduled_time" in changed:
            check_slot(booking.lead_id, booking.scheduled_date, booking.scheduled_time, exclude_id=booking.id)
        booking_store.save_slot_change(booking, changed)

        CallHistoryEntry.objects.create(
            lead_id=booking.lead_id,
            outcome=CallOutcome.RESCHEDULED,
            occurred_at=clock(),
            actor=actor,
            booking=booking,
            notes=f"Moved to {booking.scheduled_date.isoformat()} {booking.scheduled_time}",
        )
        Event.objects.create(
            lead_id=booking.lead_id,
            event_type="booking_rescheduled",
            actor=actor,
            payload=booking_store.booking_summary(booking),
            description=f"Booking moved to {booking.scheduled_date.isoformat()} {booking.scheduled_time}",
        )
    return booking


def delete_booking(booking_id, actor: str) -> None:
    """Hard delete by the booking's owner. Cascades to nothing else."""
    booking = booking_store.get_booking(booking_id, owner=actor)
    booking.delete()
    logger.info("Booking %s hard-deleted by %s", booking_id, actor)


def upcoming_for(owner: str | None, clock=utcnow, limit: int | None = None):
    return booking_store.upcoming_bookings(
        clock().date(), owner=owner,
        limit=settings.UPCOMING_BOOKINGS_LIMIT if limit is None else limit,
    )
